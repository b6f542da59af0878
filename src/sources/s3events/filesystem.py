"""File-system existence probes."""

import logging
from abc import ABC, abstractmethod

from py4j.protocol import Py4JJavaError
from pyspark.sql import SparkSession


logger = logging.getLogger(__name__)


class FileSystemProbe(ABC):
    """Answers whether a fully-qualified path exists."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """
        Check a path for existence.

        Raises:
            OSError: If the file system could not be queried
        """


class HadoopFileSystemProbe(FileSystemProbe):
    """Probe backed by the Hadoop FileSystem of a Spark session."""

    def __init__(self, spark: SparkSession):
        self.spark = spark
        self._jvm = spark.sparkContext._jvm
        self._hadoop_conf = spark.sparkContext._jsc.hadoopConfiguration()

    def exists(self, path: str) -> bool:
        try:
            hadoop_path = self._jvm.org.apache.hadoop.fs.Path(path)
            fs = hadoop_path.getFileSystem(self._hadoop_conf)
            return bool(fs.exists(hadoop_path))
        except Py4JJavaError as e:
            raise OSError(f"Failed to check existence of {path}: {e.java_exception}") from e

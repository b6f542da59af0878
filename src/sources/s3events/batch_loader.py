"""
Batch loading.

Loads the materialized object paths as one dataset through a configurable
file-format reader and attaches the inferred partition column.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql import functions as F
from pyspark.sql.types import StringType

from src.common.config import S3EventsSourceConfig
from src.sources.errors import ConfigurationError
from src.sources.s3events.partition import PartitionColumn, infer_partition_column


logger = logging.getLogger(__name__)


class DatasetLoader(ABC):
    """Loads files into a dataset of the underlying engine."""

    @abstractmethod
    def load(self, file_format: str, options: Dict[str, Any], paths: List[str]) -> Any:
        """Load ``paths`` as one dataset."""

    @abstractmethod
    def with_derived_column(
        self, dataset: Any, column_name: str, derive_fn: Callable[[str], Optional[str]]
    ) -> Any:
        """Add a column computed from the source file path of each row."""


class SparkDatasetLoader(DatasetLoader):
    """Dataset loader backed by the Spark DataFrameReader."""

    def __init__(self, spark: SparkSession):
        self.spark = spark

    def load(self, file_format: str, options: Dict[str, Any], paths: List[str]) -> DataFrame:
        reader = self.spark.read.format(file_format)
        if options:
            reader = reader.options(**options)
        return reader.load(paths)

    def with_derived_column(
        self, dataset: DataFrame, column_name: str, derive_fn: Callable[[str], Optional[str]]
    ) -> DataFrame:
        derive_udf = F.udf(derive_fn, StringType())
        return dataset.withColumn(column_name, derive_udf(F.input_file_name()))


def parse_reader_options(raw: Optional[str]) -> Dict[str, Any]:
    """
    Parse reader options given as a JSON object.

    Args:
        raw: JSON text, e.g. '{"header": "true", "encoding": "UTF-8"}'

    Returns:
        Options dictionary (empty if raw is blank)

    Raises:
        ConfigurationError: If raw is not a JSON object
    """
    if not raw:
        return {}
    try:
        options = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Failed to parse reader options: {raw}") from e
    if not isinstance(options, dict):
        raise ConfigurationError(f"Reader options must be a JSON object: {raw}")
    return options


class BatchLoader:
    """Loads a batch of object paths with the configured format and options."""

    def __init__(
        self,
        config: S3EventsSourceConfig,
        loader: DatasetLoader,
        diagnostics: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.loader = loader
        self.log = diagnostics or logger

    def load(self, paths: List[str]) -> Any:
        """
        Load paths as one dataset.

        Args:
            paths: Non-empty list of fully-qualified object paths

        Returns:
            Dataset with the partition column attached when one was inferred
        """
        options = parse_reader_options(self.config.reader_options)
        if options:
            self.log.info(f"Reader options loaded: {options}")

        column = self._partition_column(paths)

        dataset = self.loader.load(self.config.source_file_format, options, paths)
        if column is not None:
            dataset = self.loader.with_derived_column(dataset, column.name, column.value_for)
        return dataset

    def _partition_column(self, paths: List[str]) -> Optional[PartitionColumn]:
        partition_key = self.config.partition_key
        if not self.config.attach_source_partition_column or not partition_key:
            return None
        return infer_partition_column(paths[0], partition_key, self.log)

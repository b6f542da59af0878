"""
S3 Events Incremental Source Module.

Loads the objects referenced by S3 event notifications recorded in a
versioned change-log table.
"""

from src.sources.s3events.batch_loader import BatchLoader, DatasetLoader, SparkDatasetLoader
from src.sources.s3events.checkpoint import CheckpointResolver, ResolvedRange
from src.sources.s3events.event_filter import EventFilter, EventPredicate
from src.sources.s3events.filesystem import FileSystemProbe, HadoopFileSystemProbe
from src.sources.s3events.partition import PartitionColumn, infer_partition_column
from src.sources.s3events.path_materializer import MaterializedPaths, PathMaterializer
from src.sources.s3events.source import S3EventsIncrSource

__all__ = [
    "BatchLoader",
    "DatasetLoader",
    "SparkDatasetLoader",
    "CheckpointResolver",
    "ResolvedRange",
    "EventFilter",
    "EventPredicate",
    "FileSystemProbe",
    "HadoopFileSystemProbe",
    "PartitionColumn",
    "infer_partition_column",
    "MaterializedPaths",
    "PathMaterializer",
    "S3EventsIncrSource",
]

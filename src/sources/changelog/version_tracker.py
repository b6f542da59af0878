"""
DeltaLake Version Tracker.

Lists the committed versions of a Delta change-log table so that
checkpoints can be turned into version ranges.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from delta.tables import DeltaTable
from pyspark.sql import SparkSession

from src.sources.errors import ResolutionError


logger = logging.getLogger(__name__)


@dataclass
class VersionInfo:
    """Information about a Delta table version"""

    version: int
    timestamp: datetime
    operation: str
    operation_metrics: Dict[str, Any] = field(default_factory=dict)


class VersionTracker:
    """
    Tracks Delta table versions of a change-log table.

    History is read on every call; the table is re-resolved only once.
    """

    def __init__(self, table_path: str, spark: SparkSession):
        """
        Initialize Version Tracker.

        Args:
            table_path: Path to Delta table
            spark: SparkSession instance
        """
        self.table_path = table_path
        self.spark = spark
        self.delta_table: Optional[DeltaTable] = None
        logger.info(f"Initialized VersionTracker for {table_path}")

    def _get_delta_table(self) -> DeltaTable:
        """Get or create DeltaTable instance"""
        if self.delta_table is None:
            try:
                self.delta_table = DeltaTable.forPath(self.spark, self.table_path)
            except Exception as e:
                raise ResolutionError(
                    f"Change log at {self.table_path!r} is not a readable Delta table: {e}"
                ) from e
        return self.delta_table

    def get_version_history(self) -> List[VersionInfo]:
        """
        Get the retained version history, newest first.

        Returns:
            List of VersionInfo objects
        """
        delta_table = self._get_delta_table()
        history_df = delta_table.history()

        versions = []
        for row in history_df.select("version", "timestamp", "operation", "operationMetrics").collect():
            versions.append(
                VersionInfo(
                    version=row["version"],
                    timestamp=row["timestamp"],
                    operation=row["operation"],
                    operation_metrics=row["operationMetrics"] or {},
                )
            )
        return versions

    def list_versions(self) -> List[int]:
        """
        List retained committed versions.

        Returns:
            Version numbers in ascending order
        """
        return sorted(info.version for info in self.get_version_history())

"""
Source partition inference.

Detects a ``<key>=<value>`` directory in object paths and exposes its value
as a column of the loaded dataset.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.sources.errors import ConfigurationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionColumn:
    """A column whose value comes from the ``<name>=`` directory of a file path."""

    name: str

    @property
    def marker(self) -> str:
        return f"{self.name}="

    def value_for(self, path: Optional[str]) -> Optional[str]:
        """Path segment following the marker, None if the marker is absent."""
        if path is None or self.marker not in path:
            return None
        return path.split(self.marker, 1)[1].split("/", 1)[0]


def infer_partition_column(
    sample_path: str, partition_key: str, diagnostics: Optional[logging.Logger] = None
) -> Optional[PartitionColumn]:
    """
    Infer the partition column from one path of the batch.

    Only the sample path is inspected; every file in the batch is assumed to
    share its layout.

    Args:
        sample_path: First path of the batch
        partition_key: Name of the partition field
        diagnostics: Logger for the inference record (module logger if None)

    Returns:
        PartitionColumn, or None if the path is not partitioned by the key

    Raises:
        ConfigurationError: If more than one path segment matches the key
    """
    column = PartitionColumn(partition_key)
    matching = [segment for segment in sample_path.split("/") if column.marker in segment]

    if len(matching) > 1:
        raise ConfigurationError(
            f"More than one level of partitioning exists for key {partition_key!r} in {sample_path}"
        )
    if not matching:
        return None

    (diagnostics or logger).info(f"Adding column name = {partition_key} to dataset")
    return column

"""
Change-log table abstractions.

The change-log table is a versioned table whose rows are object-store
notification events. Sources only see it through :class:`ChangeLogTable`
and the row sets it returns, so the storage engine stays swappable.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Tuple

from src.sources.errors import ResolutionError


logger = logging.getLogger(__name__)

# Sorts before every committed version; a range starting here covers the whole table.
DEFAULT_BEGIN_VERSION = -1

# Nested fields of an event row
BUCKET_NAME_FIELD = "s3.bucket.name"
OBJECT_KEY_FIELD = "s3.object.key"
OBJECT_SIZE_FIELD = "s3.object.size"


class ReadMode(str, Enum):
    """How a version range is read from the change log."""

    INCREMENTAL = "incremental"
    SNAPSHOT_WITH_FILTER = "snapshot_with_filter"


class MissingCheckpointStrategy(str, Enum):
    """What to read when no checkpoint is available."""

    READ_LATEST = "READ_LATEST"
    READ_UPTO_LATEST_COMMIT = "READ_UPTO_LATEST_COMMIT"


class VersionRange(NamedTuple):
    """Change-log versions in ``(begin, end]``."""

    begin: int
    end: int

    @property
    def caught_up(self) -> bool:
        return self.begin == self.end


@dataclass(frozen=True, order=True)
class FileReference:
    """A distinct object in the object store."""

    bucket_name: str
    object_key: str


class EventRowSet(ABC):
    """Result of reading event rows from the change log."""

    @abstractmethod
    def is_empty(self) -> bool:
        """Return True if the read produced no rows."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of event rows."""

    @abstractmethod
    def file_references(self, predicate) -> Iterable[FileReference]:
        """
        Filter rows with ``predicate`` and project them to file references.

        Args:
            predicate: EventPredicate to apply to every row

        Returns:
            File references of surviving rows (duplicates allowed)
        """


class ChangeLogTable(ABC):
    """
    Query interface over a versioned change-log table.

    Subclasses provide version listing and the two read modes;
    range resolution is shared.
    """

    @abstractmethod
    def list_committed_versions(self, base_path: str) -> List[int]:
        """Return committed versions in ascending order."""

    @abstractmethod
    def read_incremental(self, base_path: str, begin: int, end: int) -> EventRowSet:
        """Read rows committed in versions ``(begin, end]``."""

    @abstractmethod
    def read_snapshot_filtered(self, base_path: str, begin: int, end: int) -> EventRowSet:
        """Read the current table state, keeping rows committed in ``(begin, end]``."""

    def parse_checkpoint(self, checkpoint: str) -> int:
        """Convert a checkpoint token into a table version."""
        try:
            return int(checkpoint)
        except ValueError:
            raise ResolutionError(f"Invalid checkpoint token: {checkpoint!r}") from None

    def format_checkpoint(self, version: int) -> str:
        """Convert a table version into a checkpoint token."""
        return str(version)

    def resolve_range(
        self,
        base_path: str,
        checkpoint: Optional[str],
        num_versions_per_fetch: int,
        strategy: Optional[MissingCheckpointStrategy],
    ) -> Tuple[ReadMode, VersionRange]:
        """
        Compute the read mode and version range for the next fetch.

        Args:
            base_path: Root of the change-log table
            checkpoint: Last consumed version token, None if absent
            num_versions_per_fetch: Maximum number of versions to read
            strategy: Policy applied when checkpoint is None

        Returns:
            Tuple of (ReadMode, VersionRange)

        Raises:
            ResolutionError: If the table has no versions or no strategy applies
        """
        versions = self.list_committed_versions(base_path)
        begin = self.parse_checkpoint(checkpoint) if checkpoint is not None else None
        return calculate_begin_and_end_versions(
            versions, num_versions_per_fetch, begin, strategy, base_path=base_path
        )


def calculate_begin_and_end_versions(
    versions: List[int],
    num_versions_per_fetch: int,
    begin: Optional[int],
    strategy: Optional[MissingCheckpointStrategy],
    base_path: str = "",
) -> Tuple[ReadMode, VersionRange]:
    """
    Resolve a version range from the committed versions of a change log.

    With a checkpoint the range covers at most ``num_versions_per_fetch``
    versions after it. Without one, ``READ_LATEST`` yields a caught-up range at
    the latest version and ``READ_UPTO_LATEST_COMMIT`` reads everything up to it.
    """
    if not versions:
        raise ResolutionError(f"Change log at {base_path!r} has no committed versions")

    versions = sorted(versions)
    latest = versions[-1]

    if begin is None:
        if strategy is None:
            raise ResolutionError(
                f"Missing checkpoint for change log at {base_path!r} and no "
                "missing-checkpoint strategy configured"
            )
        if strategy == MissingCheckpointStrategy.READ_LATEST:
            return ReadMode.INCREMENTAL, VersionRange(latest, latest)
        return ReadMode.SNAPSHOT_WITH_FILTER, VersionRange(DEFAULT_BEGIN_VERSION, latest)

    after = [v for v in versions if v > begin][:num_versions_per_fetch]
    end = after[-1] if after else begin

    # Versions between the checkpoint and the oldest retained one are gone
    if begin < versions[0] - 1:
        logger.warning(
            f"Checkpoint {begin} predates retained history (earliest {versions[0]}), "
            "falling back to snapshot read"
        )
        return ReadMode.SNAPSHOT_WITH_FILTER, VersionRange(begin, end)

    return ReadMode.INCREMENTAL, VersionRange(begin, end)

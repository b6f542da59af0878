"""
Change-log table access.

Abstractions over the versioned table of object-store events, and the
range resolution shared by every change-log backend.
"""

from src.sources.changelog.base import (
    DEFAULT_BEGIN_VERSION,
    ChangeLogTable,
    EventRowSet,
    FileReference,
    MissingCheckpointStrategy,
    ReadMode,
    VersionRange,
    calculate_begin_and_end_versions,
)

__all__ = [
    "DEFAULT_BEGIN_VERSION",
    "ChangeLogTable",
    "EventRowSet",
    "FileReference",
    "MissingCheckpointStrategy",
    "ReadMode",
    "VersionRange",
    "calculate_begin_and_end_versions",
]

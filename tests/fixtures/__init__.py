"""Test fixtures for the S3 events incremental source."""

from tests.fixtures.changelog import (
    InMemoryChangeLog,
    InMemoryDataset,
    InMemoryDatasetLoader,
    InMemoryRowSet,
    StubProbe,
    make_event,
)

__all__ = [
    "InMemoryChangeLog",
    "InMemoryDataset",
    "InMemoryDatasetLoader",
    "InMemoryRowSet",
    "StubProbe",
    "make_event",
]

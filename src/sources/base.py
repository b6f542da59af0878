"""Incremental source capability."""

from abc import ABC, abstractmethod
from typing import Any, NamedTuple, Optional


class Batch(NamedTuple):
    """One fetch: the loaded dataset (None if nothing to load) and the next checkpoint."""

    dataset: Optional[Any]
    checkpoint: str


class IncrementalSource(ABC):
    """A source that hands out data in checkpointed batches."""

    @abstractmethod
    def fetch_next_batch(self, last_checkpoint: Optional[str], source_limit: int) -> Batch:
        """
        Fetch the data committed after ``last_checkpoint``.

        Args:
            last_checkpoint: Checkpoint returned by the previous call, None on first run
            source_limit: Size hint from the caller

        Returns:
            Batch whose checkpoint must be persisted and passed to the next call
        """

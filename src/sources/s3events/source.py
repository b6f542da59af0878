"""
S3 Events Incremental Source.

Reads object-store notification events from a change-log table and loads the
objects they reference, one checkpointed batch at a time.
"""

import logging
import time
from typing import Optional

from pyspark.sql import SparkSession

from src.common.config import S3EventsSourceConfig
from src.observability.metrics import MetricsExporter
from src.sources.base import Batch, IncrementalSource
from src.sources.changelog.base import ChangeLogTable, EventRowSet, ReadMode
from src.sources.changelog.delta_changelog import DeltaChangeLog
from src.sources.errors import SourceError
from src.sources.s3events.batch_loader import BatchLoader, DatasetLoader, SparkDatasetLoader
from src.sources.s3events.checkpoint import CheckpointResolver, ResolvedRange
from src.sources.s3events.event_filter import EventFilter
from src.sources.s3events.filesystem import FileSystemProbe, HadoopFileSystemProbe
from src.sources.s3events.path_materializer import PathMaterializer


logger = logging.getLogger(__name__)

OUTCOME_CAUGHT_UP = "caught_up"
OUTCOME_EMPTY_READ = "empty_read"
OUTCOME_NO_MATCHING_FILES = "no_matching_files"
OUTCOME_NO_EXISTING_FILES = "no_existing_files"
OUTCOME_LOADED = "loaded"
OUTCOME_FAILED = "failed"


class S3EventsIncrSource(IncrementalSource):
    """
    Incremental source over a change log of S3 event notifications.

    Each fetch resolves the next version range, reads its events, filters and
    deduplicates the referenced objects, materializes their paths and loads
    them. The returned checkpoint is the end of the range read, however many
    files were loaded.
    """

    def __init__(
        self,
        config: S3EventsSourceConfig,
        change_log: ChangeLogTable,
        dataset_loader: DatasetLoader,
        fs_probe: Optional[FileSystemProbe] = None,
        diagnostics: Optional[logging.Logger] = None,
        metrics: Optional[MetricsExporter] = None,
    ):
        """
        Initialize the source.

        Args:
            config: Source configuration
            change_log: Change-log table to read events from
            dataset_loader: Loader for the referenced files
            fs_probe: Existence probe, required when check_file_exists is set
            diagnostics: Logger receiving the source's records (module logger if None)
            metrics: Metrics recorder (metrics are not recorded if None)
        """
        self.config = config
        self.change_log = change_log
        self.log = diagnostics or logger
        self.metrics = metrics

        self.resolver = CheckpointResolver(config, change_log, diagnostics=self.log)
        self.event_filter = EventFilter.from_config(config, diagnostics=self.log)
        self.path_materializer = PathMaterializer(
            scheme=config.scheme,
            check_existence=config.check_file_exists,
            probe=fs_probe,
            max_workers=config.existence_check_parallelism,
            diagnostics=self.log,
        )
        self.batch_loader = BatchLoader(config, dataset_loader, diagnostics=self.log)

    @classmethod
    def from_spark(
        cls,
        spark: SparkSession,
        config: S3EventsSourceConfig,
        diagnostics: Optional[logging.Logger] = None,
        metrics: Optional[MetricsExporter] = None,
    ) -> "S3EventsIncrSource":
        """Build a source reading a Delta change log and loading files with Spark."""
        return cls(
            config=config,
            change_log=DeltaChangeLog(spark, commit_column=config.commit_column),
            dataset_loader=SparkDatasetLoader(spark),
            fs_probe=HadoopFileSystemProbe(spark) if config.check_file_exists else None,
            diagnostics=diagnostics,
            metrics=metrics,
        )

    def resolve(self, last_checkpoint: Optional[str]) -> ResolvedRange:
        """Resolve the range the next fetch would read, without reading it."""
        return self.resolver.resolve(last_checkpoint)

    def _read_events(self, resolved: ResolvedRange) -> EventRowSet:
        base_path = self.config.base_path
        begin, end = resolved.version_range
        if resolved.read_mode == ReadMode.INCREMENTAL:
            return self.change_log.read_incremental(base_path, begin, end)
        return self.change_log.read_snapshot_filtered(base_path, begin, end)

    def _finish(self, outcome: str, batch: Batch, resolved: ResolvedRange, started: float) -> Batch:
        if self.metrics is not None:
            self.metrics.record_batch(outcome, time.monotonic() - started)
            self.metrics.update_checkpoint(self.config.base_path, resolved.version_range.end)
        self.log.info(
            f"Fetch finished: {outcome}, checkpoint {batch.checkpoint}",
            extra={"extra": {"outcome": outcome, "checkpoint": batch.checkpoint}},
        )
        return batch

    def fetch_next_batch(self, last_checkpoint: Optional[str], source_limit: int) -> Batch:
        """
        Fetch the objects referenced by events committed after ``last_checkpoint``.

        Args:
            last_checkpoint: Checkpoint from the previous fetch, None or "" to start over
            source_limit: Size hint from the caller; ranges are bounded by
                num_instants_per_fetch instead

        Returns:
            Batch of (dataset or None, checkpoint)

        Raises:
            ConfigurationError: On missing or invalid configuration
            ResolutionError: If no version range can be resolved
        """
        started = time.monotonic()
        self.log.debug(f"Fetching next batch after {last_checkpoint!r} (source limit {source_limit})")

        try:
            return self._fetch(last_checkpoint, started)
        except SourceError as e:
            if self.metrics is not None:
                self.metrics.record_batch(OUTCOME_FAILED, time.monotonic() - started)
            self.log.error(
                f"Fetch failed after checkpoint {last_checkpoint!r}: {e}",
                extra={"extra": {"outcome": OUTCOME_FAILED, "error": type(e).__name__}},
            )
            raise

    def _fetch(self, last_checkpoint: Optional[str], started: float) -> Batch:
        resolved = self.resolver.resolve(last_checkpoint)
        end_checkpoint = resolved.end_checkpoint
        empty = Batch(None, end_checkpoint)

        if resolved.caught_up:
            self.log.warning(f"Already caught up. Begin checkpoint was: {resolved.version_range.begin}")
            return self._finish(OUTCOME_CAUGHT_UP, empty, resolved, started)

        events = self._read_events(resolved)
        if events.is_empty():
            self.log.info(f"No events committed in versions {tuple(resolved.version_range)}")
            return self._finish(OUTCOME_EMPTY_READ, empty, resolved, started)

        references = self.event_filter.apply(events)
        if not references:
            return self._finish(OUTCOME_NO_MATCHING_FILES, empty, resolved, started)

        materialized = self.path_materializer.materialize(references)
        if self.metrics is not None:
            self.metrics.record_files(len(references), len(materialized.paths))
            self.metrics.record_dropped_paths(materialized.dropped)

        self.log.info(
            f"Extracted distinct files {len(references)} subset of files that exist "
            f"{len(materialized.paths)} and some samples {materialized.paths[:10]}"
        )
        if not materialized.paths:
            return self._finish(OUTCOME_NO_EXISTING_FILES, empty, resolved, started)

        dataset = self.batch_loader.load(materialized.paths)
        return self._finish(OUTCOME_LOADED, Batch(dataset, end_checkpoint), resolved, started)

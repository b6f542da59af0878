"""Prometheus metrics exporters."""

from prometheus_client import Counter, Gauge, Histogram, start_http_server
from typing import Dict, Optional

from src.common.config import get_settings


# Batch Metrics
s3incr_batches_total = Counter(
    "s3incr_batches_total",
    "Total number of fetches by outcome",
    ["outcome"],
)

s3incr_fetch_duration_seconds = Histogram(
    "s3incr_fetch_duration_seconds",
    "Time taken to fetch one batch",
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
)

s3incr_checkpoint_version = Gauge(
    "s3incr_checkpoint_version",
    "Change-log version of the last returned checkpoint",
    ["base_path"],
)

# File Metrics
s3incr_files_extracted_total = Counter(
    "s3incr_files_extracted_total",
    "Distinct object references extracted from change-log events",
)

s3incr_files_loaded_total = Counter(
    "s3incr_files_loaded_total",
    "Object paths handed to the dataset loader",
)

s3incr_paths_dropped_total = Counter(
    "s3incr_paths_dropped_total",
    "Object references dropped during path materialization",
    ["reason"],
)


class MetricsExporter:
    """Prometheus metrics exporter."""

    def __init__(self, port: Optional[int] = None) -> None:
        """
        Initialize metrics exporter.

        Args:
            port: Port to expose metrics on (default from config)
        """
        self.settings = get_settings()
        self.port = port or self.settings.observability.metrics_port
        self._server_started = False

    def start(self) -> None:
        """Start metrics HTTP server."""
        if not self._server_started:
            start_http_server(self.port)
            self._server_started = True

    def record_batch(self, outcome: str, duration: float) -> None:
        """
        Record a finished fetch.

        Args:
            outcome: caught_up, empty_read, no_matching_files, no_existing_files, loaded or failed
            duration: Fetch duration in seconds
        """
        s3incr_batches_total.labels(outcome=outcome).inc()
        s3incr_fetch_duration_seconds.observe(duration)

    def update_checkpoint(self, base_path: str, version: int) -> None:
        s3incr_checkpoint_version.labels(base_path=base_path).set(version)

    def record_files(self, extracted: int, loaded: int) -> None:
        """
        Record file counts for a batch.

        Args:
            extracted: Distinct references that passed event filtering
            loaded: Paths that survived materialization
        """
        s3incr_files_extracted_total.inc(extracted)
        s3incr_files_loaded_total.inc(loaded)

    def record_dropped_paths(self, dropped: Dict[str, int]) -> None:
        for reason, count in dropped.items():
            if count:
                s3incr_paths_dropped_total.labels(reason=reason).inc(count)

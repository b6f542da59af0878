"""Unit tests for metrics module."""

import json
import logging
from unittest.mock import patch

from prometheus_client import REGISTRY

from src.observability.logging_config import JSONFormatter, get_logger, setup_logging
from src.observability.metrics import MetricsExporter


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetricsUnit:
    """Unit tests for the Prometheus metrics exporter."""

    def test_record_batch(self):
        """Test outcome counter and duration histogram are updated."""
        exporter = MetricsExporter(port=9999)
        before = _sample("s3incr_batches_total", {"outcome": "loaded"})
        observed = _sample("s3incr_fetch_duration_seconds_count")

        exporter.record_batch("loaded", 0.25)

        assert _sample("s3incr_batches_total", {"outcome": "loaded"}) == before + 1
        assert _sample("s3incr_fetch_duration_seconds_count") == observed + 1

    def test_update_checkpoint(self):
        """Test the checkpoint gauge is set per change log."""
        exporter = MetricsExporter(port=9999)

        exporter.update_checkpoint("s3a://bucket/changelog", 42)

        assert _sample("s3incr_checkpoint_version", {"base_path": "s3a://bucket/changelog"}) == 42

    def test_record_files(self):
        """Test extracted and loaded file counters."""
        exporter = MetricsExporter(port=9999)
        extracted = _sample("s3incr_files_extracted_total")
        loaded = _sample("s3incr_files_loaded_total")

        exporter.record_files(10, 7)

        assert _sample("s3incr_files_extracted_total") == extracted + 10
        assert _sample("s3incr_files_loaded_total") == loaded + 7

    def test_record_dropped_paths(self):
        """Test drops are counted by reason, skipping zero counts."""
        exporter = MetricsExporter(port=9999)
        not_found = _sample("s3incr_paths_dropped_total", {"reason": "not_found"})

        exporter.record_dropped_paths({"not_found": 3, "probe_failed": 0})

        assert _sample("s3incr_paths_dropped_total", {"reason": "not_found"}) == not_found + 3

    def test_port_from_settings(self, monkeypatch):
        """Test the metrics port defaults to METRICS_PORT."""
        monkeypatch.setenv("METRICS_PORT", "9123")

        assert MetricsExporter().port == 9123

    @patch("src.observability.metrics.start_http_server")
    def test_start_once(self, mock_start):
        """Test the HTTP server is started only once."""
        exporter = MetricsExporter(port=9999)

        exporter.start()
        exporter.start()

        mock_start.assert_called_once_with(9999)


class TestLoggingUnit:
    """Unit tests for structured logging."""

    def test_json_formatter_extra_fields(self):
        """Test extra fields are merged into the JSON record."""
        record = logging.LogRecord("s3incr", logging.INFO, __file__, 10, "Fetch finished", None, None)
        record.extra = {"outcome": "loaded", "checkpoint": "3"}

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Fetch finished"
        assert payload["level"] == "INFO"
        assert payload["outcome"] == "loaded"
        assert payload["checkpoint"] == "3"

    def test_get_logger(self):
        """Test named loggers are standard library loggers."""
        assert get_logger("src.sources") is logging.getLogger("src.sources")

    def test_setup_logging_level(self):
        """Test the root logger gets one JSON handler at the given level."""
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("DEBUG")

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert logging.getLogger("py4j").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

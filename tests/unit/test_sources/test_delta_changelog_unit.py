"""Unit tests for the Delta change log (mock-based, no Spark required)."""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from src.sources.changelog.base import ReadMode, VersionRange
from src.sources.errors import ResolutionError


def _history_rows(*versions):
    return [
        {
            "version": v,
            "timestamp": datetime(2024, 1, 1, 0, v),
            "operation": "WRITE",
            "operationMetrics": {"numOutputRows": "1"},
        }
        for v in versions
    ]


def _mock_delta_table(*versions):
    delta_table = MagicMock()
    history_df = MagicMock()
    history_df.select.return_value.collect.return_value = _history_rows(*versions)
    delta_table.history.return_value = history_df
    return delta_table


class TestVersionTrackerUnit:
    """Version listing from Delta history."""

    @patch("src.sources.changelog.version_tracker.DeltaTable")
    def test_list_versions_ascending(self, mock_delta_table_cls):
        """Test history (newest first) is listed in ascending order."""
        from src.sources.changelog.version_tracker import VersionTracker

        mock_delta_table_cls.forPath.return_value = _mock_delta_table(3, 2, 1)
        tracker = VersionTracker("/tmp/delta/events", MagicMock())

        assert tracker.list_versions() == [1, 2, 3]

    @patch("src.sources.changelog.version_tracker.DeltaTable")
    def test_delta_table_resolved_once(self, mock_delta_table_cls):
        """Test the Delta table is looked up once per tracker."""
        from src.sources.changelog.version_tracker import VersionTracker

        mock_delta_table_cls.forPath.return_value = _mock_delta_table(0)
        spark = MagicMock()
        tracker = VersionTracker("/tmp/delta/events", spark)

        tracker.list_versions()
        tracker.list_versions()

        mock_delta_table_cls.forPath.assert_called_once_with(spark, "/tmp/delta/events")

    @patch("src.sources.changelog.version_tracker.DeltaTable")
    def test_version_history_details(self, mock_delta_table_cls):
        """Test history rows keep their operation details, newest first."""
        from src.sources.changelog.version_tracker import VersionTracker

        delta_table = _mock_delta_table(2, 1)
        mock_delta_table_cls.forPath.return_value = delta_table
        tracker = VersionTracker("/tmp/delta/events", MagicMock())

        history = tracker.get_version_history()

        assert [info.version for info in history] == [2, 1]
        assert history[1].operation == "WRITE"
        assert history[1].operation_metrics == {"numOutputRows": "1"}
        delta_table.history.assert_called_once_with()

    @patch("src.sources.changelog.version_tracker.DeltaTable")
    def test_unreadable_table(self, mock_delta_table_cls):
        """Test a path that is not a Delta table is a resolution error."""
        from src.sources.changelog.version_tracker import VersionTracker

        mock_delta_table_cls.forPath.side_effect = Exception("is not a Delta table")
        tracker = VersionTracker("/tmp/not-delta", MagicMock())

        with pytest.raises(ResolutionError, match="not a readable Delta table"):
            tracker.list_versions()


class TestDeltaChangeLogUnit:
    """Delta reads issued for each read mode."""

    @patch("src.sources.changelog.version_tracker.DeltaTable")
    def test_resolve_range_from_history(self, mock_delta_table_cls):
        """Test range resolution uses the Delta history."""
        from src.sources.changelog.delta_changelog import DeltaChangeLog

        mock_delta_table_cls.forPath.return_value = _mock_delta_table(4, 3, 2, 1, 0)
        change_log = DeltaChangeLog(MagicMock())

        mode, version_range = change_log.resolve_range("/tmp/delta/events", "1", 2, None)

        assert mode == ReadMode.INCREMENTAL
        assert version_range == VersionRange(1, 3)

    @patch("src.sources.changelog.delta_changelog.F")
    def test_read_incremental_uses_change_feed(self, mock_functions):
        """Test incremental reads use the change feed after the checkpoint."""
        from src.sources.changelog.delta_changelog import DeltaChangeLog, SparkEventRowSet

        spark = MagicMock()
        reader = spark.read.format.return_value
        reader.option.return_value = reader

        row_set = DeltaChangeLog(spark).read_incremental("/tmp/delta/events", 2, 5)

        spark.read.format.assert_called_once_with("delta")
        reader.option.assert_any_call("readChangeFeed", "true")
        reader.option.assert_any_call("startingVersion", 3)
        reader.option.assert_any_call("endingVersion", 5)
        reader.load.assert_called_once_with("/tmp/delta/events")
        mock_functions.col.return_value.isin.assert_called_once_with(["insert", "update_postimage"])
        assert isinstance(row_set, SparkEventRowSet)

    @patch("src.sources.changelog.delta_changelog.F")
    def test_read_snapshot_time_travels_to_end(self, mock_functions):
        """Test snapshot reads pin the end version."""
        from src.sources.changelog.delta_changelog import DeltaChangeLog

        spark = MagicMock()
        reader = spark.read.format.return_value
        reader.option.return_value = reader
        snapshot_df = reader.load.return_value

        row_set = DeltaChangeLog(spark).read_snapshot_filtered("/tmp/delta/events", -1, 4)

        reader.option.assert_called_once_with("versionAsOf", 4)
        snapshot_df.filter.assert_not_called()
        assert row_set.df is snapshot_df

    @patch("src.sources.changelog.delta_changelog.F")
    def test_read_snapshot_filters_commit_column(self, mock_functions):
        """Test snapshot rows are filtered on the commit column after begin."""
        from src.sources.changelog.delta_changelog import DeltaChangeLog

        spark = MagicMock()
        reader = spark.read.format.return_value
        reader.option.return_value = reader
        snapshot_df = reader.load.return_value
        commit_col = MagicMock()
        commit_col.__gt__.return_value = "commit > 2"
        mock_functions.col.return_value = commit_col

        row_set = DeltaChangeLog(spark, commit_column="_commit").read_snapshot_filtered("/tmp/delta/events", 2, 4)

        mock_functions.col.assert_called_once_with("_commit")
        snapshot_df.filter.assert_called_once_with("commit > 2")
        assert row_set.df is snapshot_df.filter.return_value

    @patch("src.sources.changelog.delta_changelog.F")
    def test_read_snapshot_missing_commit_column(self, mock_functions):
        """Test an unresolvable commit column is a resolution error."""
        from src.sources.changelog.delta_changelog import DeltaChangeLog

        spark = MagicMock()
        reader = spark.read.format.return_value
        reader.option.return_value = reader
        reader.load.return_value.filter.side_effect = Exception("cannot resolve '_metadata.row_commit_version'")
        commit_col = MagicMock()
        commit_col.__gt__.return_value = "commit > 2"
        mock_functions.col.return_value = commit_col

        with pytest.raises(ResolutionError, match="row tracking"):
            DeltaChangeLog(spark).read_snapshot_filtered("/tmp/delta/events", 2, 4)

    def test_event_row_set(self):
        """Test row-set queries delegate to the DataFrame."""
        from src.sources.changelog.delta_changelog import SparkEventRowSet

        df = MagicMock()
        df.isEmpty.return_value = False
        df.count.return_value = 3

        row_set = SparkEventRowSet(df)

        assert row_set.is_empty() is False
        assert row_set.count() == 3

    @patch("src.sources.changelog.delta_changelog.F")
    def test_file_references_projection(self, mock_functions):
        """Test filtered rows are projected to distinct references."""
        from src.sources.changelog.base import FileReference
        from src.sources.changelog.delta_changelog import SparkEventRowSet

        df = MagicMock()
        projected = df.filter.return_value.select.return_value.distinct.return_value
        projected.collect.return_value = [
            {"bucket_name": "bucket", "object_key": "a.json"},
            {"bucket_name": "bucket", "object_key": "b.json"},
        ]
        predicate = MagicMock()

        references = SparkEventRowSet(df).file_references(predicate)

        df.filter.assert_called_once_with(predicate.to_column.return_value)
        assert references == [FileReference("bucket", "a.json"), FileReference("bucket", "b.json")]

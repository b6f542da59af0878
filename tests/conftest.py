"""
Pytest configuration and shared fixtures for S3 events source tests.
"""

import os
import shutil
import uuid

import pytest

from src.common.config import S3EventsSourceConfig, get_settings
from tests.fixtures.changelog import (
    InMemoryChangeLog,
    InMemoryDatasetLoader,
    StubProbe,
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep S3INCR_* variables of the developer's shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("S3INCR_"):
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def source_config():
    """Source configuration reading the whole change log on first run."""
    return S3EventsSourceConfig(
        base_path="s3a://events-bucket/changelog",
        num_instants_per_fetch=5,
        missing_checkpoint_strategy="READ_UPTO_LATEST_COMMIT",
        source_file_format="parquet",
        _env_file=None,
    )


@pytest.fixture
def change_log():
    """Empty in-memory change log."""
    return InMemoryChangeLog()


@pytest.fixture
def dataset_loader():
    """In-memory dataset loader."""
    return InMemoryDatasetLoader()


@pytest.fixture
def fs_probe():
    """Existence probe with no existing paths."""
    return StubProbe()


# Spark and Delta Lake Fixtures
@pytest.fixture(scope="session")
def spark_session():
    """
    Local Spark session with Delta Lake for integration tests.
    Session-scoped to reuse across tests for performance.
    """
    if shutil.which("java") is None:
        pytest.skip("Java runtime not available for Spark")
    pytest.importorskip("pyspark")
    pytest.importorskip("delta")

    from src.common.spark import SparkSettings, create_spark_session

    spark = create_spark_session(
        SparkSettings(app_name="s3incr-tests", master_url="local[2]", _env_file=None)
    )
    spark.sparkContext.setLogLevel("ERROR")

    yield spark

    spark.stop()


@pytest.fixture
def delta_table_path(tmp_path):
    """
    Provide a unique Delta table path for each test.
    Cleans up after test completes.
    """
    table_name = f"test_{uuid.uuid4().hex[:8]}"
    table_path = tmp_path / "delta-tables" / table_name
    table_path.mkdir(parents=True, exist_ok=True)

    yield str(table_path)

    if table_path.exists():
        shutil.rmtree(table_path, ignore_errors=True)

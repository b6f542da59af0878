"""Spark session factory for Delta Lake backed sources."""

import logging
from typing import Optional

from delta import configure_spark_with_delta_pip
from pydantic_settings import BaseSettings, SettingsConfigDict
from pyspark.sql import SparkSession


logger = logging.getLogger(__name__)


class SparkSettings(BaseSettings):
    """Apache Spark configuration."""

    model_config = SettingsConfigDict(env_prefix="SPARK_", env_file=".env", extra="ignore")

    app_name: str = "s3-events-incr-source"
    master_url: str = "local[*]"
    driver_memory: str = "1g"
    warehouse_dir: str = "/tmp/spark-warehouse"
    s3_endpoint: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None


def create_spark_session(settings: Optional[SparkSettings] = None) -> SparkSession:
    """
    Create a SparkSession with Delta Lake configuration.

    Args:
        settings: Spark settings (read from environment if None)

    Returns:
        SparkSession with the Delta extension and catalog enabled
    """
    settings = settings or SparkSettings()
    logger.info(f"Creating Spark session {settings.app_name} on {settings.master_url}")

    builder = (
        SparkSession.builder
        .appName(settings.app_name)
        .master(settings.master_url)
        .config("spark.sql.extensions", "io.delta.sql.DeltaSparkSessionExtension")
        .config("spark.sql.catalog.spark_catalog", "org.apache.spark.sql.delta.catalog.DeltaCatalog")
        .config("spark.sql.warehouse.dir", settings.warehouse_dir)
        .config("spark.driver.memory", settings.driver_memory)
    )

    # S3A configuration for S3-compatible object stores
    if settings.s3_endpoint:
        builder = (
            builder
            .config("spark.hadoop.fs.s3a.endpoint", settings.s3_endpoint)
            .config("spark.hadoop.fs.s3a.path.style.access", "true")
        )
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        builder = (
            builder
            .config("spark.hadoop.fs.s3a.access.key", settings.aws_access_key_id)
            .config("spark.hadoop.fs.s3a.secret.key", settings.aws_secret_access_key)
        )

    return configure_spark_with_delta_pip(builder).getOrCreate()

"""Configuration management for the S3 events incremental source."""

from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.sources.changelog.base import MissingCheckpointStrategy
from src.sources.errors import ConfigurationError


PROPERTY_PREFIX = "source.s3incr."

# Dotted property key (without prefix) -> config field
PROPERTY_KEYS: Dict[str, str] = {
    "base.path": "base_path",
    "num.instants": "num_instants_per_fetch",
    "missing.checkpoint.strategy": "missing_checkpoint_strategy",
    "read.latest.on.missing.ckpt": "read_latest_on_missing_checkpoint",
    "file.format": "source_file_format",
    "key.prefix": "key_prefix",
    "ignore.key.prefix": "ignore_key_prefix",
    "ignore.key.substring": "ignore_key_substring",
    "file.extensions": "file_extensions",
    "check.file.exists": "check_file_exists",
    "check.file.exists.parallelism": "existence_check_parallelism",
    "source.partition.exists": "attach_source_partition_column",
    "partitionpath.field": "partition_path_field",
    "spark.datasource.options": "reader_options",
    "fs.prefix": "fs_prefix",
    "commit.column": "commit_column",
}


class S3EventsSourceConfig(BaseSettings):
    """Options of the S3 events incremental source."""

    model_config = SettingsConfigDict(
        env_prefix="S3INCR_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    base_path: Optional[str] = None
    num_instants_per_fetch: int = Field(default=5, ge=1)
    missing_checkpoint_strategy: Optional[MissingCheckpointStrategy] = None
    read_latest_on_missing_checkpoint: bool = False
    source_file_format: str = "parquet"
    key_prefix: Optional[str] = None
    ignore_key_prefix: Optional[str] = None
    ignore_key_substring: Optional[str] = None
    file_extensions: Optional[str] = None
    check_file_exists: bool = False
    existence_check_parallelism: int = Field(default=8, ge=1)
    attach_source_partition_column: bool = True
    partition_path_field: Optional[str] = None
    reader_options: Optional[str] = None
    fs_prefix: str = "s3"
    commit_column: str = "_metadata.row_commit_version"

    @field_validator(
        "base_path",
        "missing_checkpoint_strategy",
        "key_prefix",
        "ignore_key_prefix",
        "ignore_key_substring",
        "file_extensions",
        "partition_path_field",
        "reader_options",
        mode="before",
    )
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def extension_filters(self) -> List[str]:
        """File extensions an object key may end with."""
        raw = self.file_extensions or self.source_file_format
        return [ext.strip() for ext in raw.split(",") if ext.strip()]

    @property
    def scheme(self) -> str:
        return self.fs_prefix.lower()

    @property
    def partition_key(self) -> Optional[str]:
        """Partition field name, without any ``:type`` suffix."""
        if not self.partition_path_field:
            return None
        return self.partition_path_field.split(":")[0] or None

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> "S3EventsSourceConfig":
        """
        Build configuration from dotted property keys.

        Keys may be given with or without the ``source.s3incr.`` prefix.

        Args:
            properties: Mapping of property key to raw string value

        Returns:
            S3EventsSourceConfig instance

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        values: Dict[str, Any] = {}
        for key, value in properties.items():
            short_key = key[len(PROPERTY_PREFIX):] if key.startswith(PROPERTY_PREFIX) else key
            field_name = PROPERTY_KEYS.get(short_key)
            if field_name is None:
                raise ConfigurationError(f"Unknown source property: {key}")
            values[field_name] = value

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid source properties {dict(properties)}: {e}") from e

    def to_properties(self) -> Dict[str, Any]:
        """Return configured values keyed by their full property name."""
        return {
            PROPERTY_PREFIX + key: getattr(self, field_name)
            for key, field_name in PROPERTY_KEYS.items()
        }


class ObservabilityConfig(BaseSettings):
    """Observability configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    metrics_port: int = Field(default=8000, alias="METRICS_PORT")


class ApplicationConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    log_level: str = "INFO"
    checkpoint_file: str = ".s3incr_checkpoint.json"


class Settings(BaseSettings):
    """Main settings container."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    source: S3EventsSourceConfig = Field(default_factory=S3EventsSourceConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    app: ApplicationConfig = Field(default_factory=ApplicationConfig)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

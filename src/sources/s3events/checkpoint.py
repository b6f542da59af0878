"""
Checkpoint resolution.

Turns the checkpoint handed in by the caller into the change-log version
range and read mode of the next fetch.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.common.config import S3EventsSourceConfig
from src.sources.changelog.base import (
    ChangeLogTable,
    MissingCheckpointStrategy,
    ReadMode,
    VersionRange,
)
from src.sources.errors import ConfigurationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedRange:
    """Outcome of checkpoint resolution."""

    read_mode: ReadMode
    version_range: VersionRange
    end_checkpoint: str

    @property
    def caught_up(self) -> bool:
        return self.version_range.caught_up


def normalize_checkpoint(checkpoint: Optional[str]) -> Optional[str]:
    """An empty checkpoint is a reset and behaves like no checkpoint at all."""
    if checkpoint is None or checkpoint == "":
        return None
    return checkpoint


def effective_strategy(
    config: S3EventsSourceConfig, diagnostics: Optional[logging.Logger] = None
) -> Optional[MissingCheckpointStrategy]:
    """
    Missing-checkpoint strategy after applying the legacy flag.

    ``read_latest_on_missing_checkpoint`` predates the strategy option and
    still wins over it: when set, the strategy is always READ_LATEST.
    """
    if config.read_latest_on_missing_checkpoint:
        if (
            config.missing_checkpoint_strategy is not None
            and config.missing_checkpoint_strategy != MissingCheckpointStrategy.READ_LATEST
        ):
            (diagnostics or logger).warning(
                f"read_latest_on_missing_checkpoint overrides missing_checkpoint_strategy="
                f"{config.missing_checkpoint_strategy.value}"
            )
        return MissingCheckpointStrategy.READ_LATEST
    return config.missing_checkpoint_strategy


class CheckpointResolver:
    """Resolves checkpoints against a change-log table."""

    def __init__(
        self,
        config: S3EventsSourceConfig,
        change_log: ChangeLogTable,
        diagnostics: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.change_log = change_log
        self.log = diagnostics or logger

    def resolve(self, last_checkpoint: Optional[str]) -> ResolvedRange:
        """
        Compute the version range to read after ``last_checkpoint``.

        Args:
            last_checkpoint: Checkpoint returned by the previous fetch, if any

        Returns:
            ResolvedRange with read mode, range and the checkpoint to return

        Raises:
            ConfigurationError: If the base path is not configured
            ResolutionError: If no range can be derived from the change log
        """
        base_path = self.config.base_path
        if not base_path:
            raise ConfigurationError("Missing required property: base_path (source.s3incr.base.path)")
        if self.config.num_instants_per_fetch < 1:
            raise ConfigurationError(
                f"num_instants_per_fetch must be positive, got {self.config.num_instants_per_fetch}"
            )

        checkpoint = normalize_checkpoint(last_checkpoint)
        read_mode, version_range = self.change_log.resolve_range(
            base_path,
            checkpoint,
            self.config.num_instants_per_fetch,
            effective_strategy(self.config, self.log),
        )

        resolved = ResolvedRange(
            read_mode=read_mode,
            version_range=version_range,
            end_checkpoint=self.change_log.format_checkpoint(version_range.end),
        )
        self.log.info(
            f"Resolved checkpoint {last_checkpoint!r} to {read_mode.value} read of "
            f"versions ({version_range.begin}, {version_range.end}]"
        )
        return resolved

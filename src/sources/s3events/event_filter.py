"""
Event filtering and deduplication.

Reduces change-log event rows to the distinct set of object references
that should be loaded.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from pyspark.sql import Column
from pyspark.sql import functions as F

from src.common.config import S3EventsSourceConfig
from src.sources.changelog.base import (
    BUCKET_NAME_FIELD,
    OBJECT_KEY_FIELD,
    OBJECT_SIZE_FIELD,
    EventRowSet,
    FileReference,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventPredicate:
    """
    Conjunction of object-key and size filters.

    Every filter left as None is skipped. Bucket and key must be present and
    object size must always be positive.
    Matching is literal: no wildcard characters are interpreted.
    """

    key_prefix: Optional[str] = None
    ignore_key_prefix: Optional[str] = None
    ignore_key_substring: Optional[str] = None
    extensions: Tuple[str, ...] = ()

    def matches(self, bucket: Optional[str], key: Optional[str], size: Any) -> bool:
        """Evaluate the predicate against one event's bucket, key and size."""
        if bucket is None or key is None or size is None or size <= 0:
            return False
        if self.key_prefix and not key.startswith(self.key_prefix):
            return False
        if self.ignore_key_prefix and key.startswith(self.ignore_key_prefix):
            return False
        if self.ignore_key_substring and self.ignore_key_substring in key:
            return False
        if self.extensions and not any(key.endswith(ext) for ext in self.extensions):
            return False
        return True

    def to_column(self) -> Column:
        """Render the predicate as a Spark column expression."""
        key = F.col(OBJECT_KEY_FIELD)
        condition = F.col(BUCKET_NAME_FIELD).isNotNull() & key.isNotNull() & (F.col(OBJECT_SIZE_FIELD) > 0)
        if self.key_prefix:
            condition = condition & key.startswith(self.key_prefix)
        if self.ignore_key_prefix:
            condition = condition & ~key.startswith(self.ignore_key_prefix)
        if self.ignore_key_substring:
            condition = condition & ~key.contains(self.ignore_key_substring)
        if self.extensions:
            any_extension = key.endswith(self.extensions[0])
            for ext in self.extensions[1:]:
                any_extension = any_extension | key.endswith(ext)
            condition = condition & any_extension
        return condition

    def describe(self) -> str:
        """Human readable form, used in logs."""
        clauses = [
            f"{BUCKET_NAME_FIELD} is not null",
            f"{OBJECT_KEY_FIELD} is not null",
            f"{OBJECT_SIZE_FIELD} > 0",
        ]
        if self.key_prefix:
            clauses.append(f"{OBJECT_KEY_FIELD} starts with '{self.key_prefix}'")
        if self.ignore_key_prefix:
            clauses.append(f"{OBJECT_KEY_FIELD} not starts with '{self.ignore_key_prefix}'")
        if self.ignore_key_substring:
            clauses.append(f"{OBJECT_KEY_FIELD} not contains '{self.ignore_key_substring}'")
        if self.extensions:
            endings = " or ".join(f"'{ext}'" for ext in self.extensions)
            clauses.append(f"{OBJECT_KEY_FIELD} ends with {endings}")
        return " and ".join(clauses)


class EventFilter:
    """Applies the configured event predicate and deduplicates references."""

    def __init__(self, predicate: EventPredicate, diagnostics: Optional[logging.Logger] = None):
        self.predicate = predicate
        self.log = diagnostics or logger

    @classmethod
    def from_config(
        cls, config: S3EventsSourceConfig, diagnostics: Optional[logging.Logger] = None
    ) -> "EventFilter":
        return cls(
            EventPredicate(
                key_prefix=config.key_prefix,
                ignore_key_prefix=config.ignore_key_prefix,
                ignore_key_substring=config.ignore_key_substring,
                extensions=tuple(config.extension_filters),
            ),
            diagnostics,
        )

    def apply(self, row_set: EventRowSet) -> List[FileReference]:
        """
        Filter event rows and reduce them to distinct file references.

        Args:
            row_set: Event rows read from the change log

        Returns:
            Distinct references sorted by bucket, then key
        """
        self.log.debug(f"Filtering events with: {self.predicate.describe()}")
        references = sorted(set(row_set.file_references(self.predicate)))
        self.log.info(f"{len(references)} distinct object references matched the event filter")
        return references

"""
Path materialization.

Turns distinct object references into fully-qualified, URL-decoded paths,
optionally keeping only the ones that exist.
"""

import logging
import re
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import unquote_plus

from src.sources.changelog.base import FileReference
from src.sources.errors import ConfigurationError, TransientPathError
from src.sources.s3events.filesystem import FileSystemProbe


logger = logging.getLogger(__name__)

# A '%' that does not start a two-digit hex escape
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

DROP_DECODE_FAILED = "decode_failed"
DROP_PROBE_FAILED = "probe_failed"
DROP_NOT_FOUND = "not_found"


@dataclass
class MaterializedPaths:
    """Paths that survived materialization, plus drop counts by reason."""

    paths: List[str]
    dropped: Dict[str, int] = field(default_factory=dict)

    @property
    def dropped_count(self) -> int:
        return sum(self.dropped.values())


def build_path(scheme: str, reference: FileReference) -> str:
    return f"{scheme}://{reference.bucket_name}/{reference.object_key}"


def decode_path(path: str) -> str:
    """
    URL-decode a path as UTF-8 form data.

    Raises:
        ValueError: On malformed escapes or bytes that are not valid UTF-8
    """
    if _MALFORMED_ESCAPE.search(path):
        raise ValueError(f"Malformed escape sequence in {path}")
    return unquote_plus(path, encoding="utf-8", errors="strict")


class PathMaterializer:
    """
    Builds object-store paths from references.

    Work is split into contiguous partitions of the reference list; each
    partition is handled by one worker and results are concatenated in
    partition order.
    """

    def __init__(
        self,
        scheme: str = "s3",
        check_existence: bool = False,
        probe: Optional[FileSystemProbe] = None,
        max_workers: int = 8,
        diagnostics: Optional[logging.Logger] = None,
    ):
        if check_existence and probe is None:
            raise ConfigurationError("Existence check is enabled but no file-system probe was provided")
        self.scheme = scheme.lower()
        self.check_existence = check_existence
        self.probe = probe
        self.max_workers = max(1, max_workers)
        self.log = diagnostics or logger

    def _materialize(self, reference: FileReference) -> Optional[str]:
        """Return the decoded path, None if it does not exist."""
        raw_path = build_path(self.scheme, reference)
        try:
            path = decode_path(raw_path)
        except ValueError as e:
            raise TransientPathError(raw_path, DROP_DECODE_FAILED, f"Failed to decode {raw_path}: {e}") from e

        if not self.check_existence:
            return path

        try:
            return path if self.probe.exists(path) else None
        except OSError as e:
            raise TransientPathError(path, DROP_PROBE_FAILED, f"Error while checking path exists for {path}: {e}") from e

    def _materialize_partition(self, references: Sequence[FileReference]) -> Tuple[List[str], Counter]:
        paths: List[str] = []
        dropped: Counter = Counter()
        for reference in references:
            try:
                path = self._materialize(reference)
            except TransientPathError as e:
                dropped[e.reason] += 1
                if e.reason == DROP_DECODE_FAILED:
                    self.log.warning(f"Failed to add cloud file: {e}")
                else:
                    self.log.error(str(e), exc_info=e.__cause__)
                continue
            if path is None:
                dropped[DROP_NOT_FOUND] += 1
            else:
                paths.append(path)
        return paths, dropped

    def _partition(self, references: Sequence[FileReference]) -> List[Sequence[FileReference]]:
        num_partitions = min(self.max_workers, len(references))
        size, remainder = divmod(len(references), num_partitions)
        partitions = []
        start = 0
        for index in range(num_partitions):
            stop = start + size + (1 if index < remainder else 0)
            partitions.append(references[start:stop])
            start = stop
        return partitions

    def materialize(self, references: Sequence[FileReference]) -> MaterializedPaths:
        """
        Build paths for all references.

        Args:
            references: Distinct file references, in the order paths should come out

        Returns:
            MaterializedPaths with surviving paths and drop counts
        """
        if not references:
            return MaterializedPaths(paths=[])

        partitions = self._partition(references)
        with ThreadPoolExecutor(max_workers=len(partitions)) as executor:
            results = list(executor.map(self._materialize_partition, partitions))

        paths: List[str] = []
        dropped: Counter = Counter()
        for partition_paths, partition_dropped in results:
            paths.extend(partition_paths)
            dropped.update(partition_dropped)

        self.log.info(
            f"Materialized {len(paths)} of {len(references)} paths "
            f"(existence check {'on' if self.check_existence else 'off'})"
        )
        return MaterializedPaths(paths=paths, dropped=dict(dropped))

"""Local persistence of source checkpoints."""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from src.sources.errors import ConfigurationError


logger = logging.getLogger(__name__)


class FileCheckpointStore:
    """Keeps the last checkpoint of a source in a JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        """
        Return the stored checkpoint, None if nothing was stored yet.

        Raises:
            ConfigurationError: If the file is not a JSON object
        """
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Checkpoint file {self.path} is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise ConfigurationError(f"Checkpoint file {self.path} must hold a JSON object")
        return payload.get("checkpoint")

    def save(self, checkpoint: str) -> None:
        """Store ``checkpoint``, replacing the file atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"checkpoint": checkpoint, "updated_at": datetime.now().isoformat()}

        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info(f"Saved checkpoint {checkpoint} to {self.path}")

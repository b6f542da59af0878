"""Exception hierarchy for incremental sources."""


class SourceError(Exception):
    """Base class for incremental source failures."""


class ConfigurationError(SourceError):
    """Invalid or missing source configuration. Aborts the fetch."""


class ResolutionError(SourceError):
    """The change-log version range could not be resolved. Aborts the fetch."""


class TransientPathError(SourceError):
    """A single object reference could not be turned into a usable path.

    Raised and handled inside path materialization; the reference is dropped
    and the batch continues.
    """

    def __init__(self, path: str, reason: str, message: str):
        super().__init__(message)
        self.path = path
        self.reason = reason

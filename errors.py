class TrainLogError(Exception):
    """Base class for errors raised by the workout log core."""


class CatalogLoadError(TrainLogError):
    """The exercise catalog asset is missing or malformed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"failed to load exercise catalog {path}: {reason}")
        self.path = path
        self.reason = reason


class StorageCommitError(TrainLogError):
    """Staged workout changes could not be written to storage."""

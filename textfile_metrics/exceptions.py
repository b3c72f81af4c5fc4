"""Exceptions raised by textfile_metrics."""


class MetricsError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(MetricsError, ValueError):
    """A command, configuration value or metric identity is invalid."""


class StorageError(MetricsError, OSError):
    """The backing metrics file could not be opened, read or written."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path

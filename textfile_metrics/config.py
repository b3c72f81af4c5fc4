"""Configuration loader for textfile_metrics.

Reads defaults, `.configs` (environment variables format) and OS environment variables (env wins).
"""
import logging
import os
import tempfile
from typing import Optional

from dotenv import dotenv_values

from .exceptions import ValidationError

# node_exporter's textfile collector only picks up files ending in .prom
DEFAULT_METRICS_FILENAME = "metrics.prom"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_default_path: Optional[str] = None
_default_path_used = False


def init_default_path(path: str) -> None:
    """Set the process-wide default metrics path.

    Must be called by the host application at most once, and before any store
    resolved the default.
    """
    global _default_path
    if not path:
        raise ValidationError("Default metrics path must not be empty")
    if _default_path is not None:
        raise ValidationError(f"Default metrics path already initialized to {_default_path}")
    if _default_path_used:
        raise ValidationError("Default metrics path was already used; initialize it before first use")
    _default_path = path


def default_metrics_path() -> str:
    global _default_path_used
    _default_path_used = True
    if _default_path is not None:
        return _default_path
    return os.path.join(tempfile.gettempdir(), DEFAULT_METRICS_FILENAME)


def reset_default_path() -> None:
    """Forget any initialized default. Intended for tests."""
    global _default_path, _default_path_used
    _default_path = None
    _default_path_used = False


class Config:
    def __init__(self, config_file: Optional[str] = None):
        # defaults
        self.METRICS_PATH = ""
        self.LOG_LEVEL = "INFO"
        self.OMIT_EMPTY_HELP = False

        # load file if provided (environment variables format: KEY=VALUE)
        cfg_path = config_file or os.getenv("CONFIG_FILE") or os.path.join(os.getcwd(), ".configs")
        if cfg_path and os.path.isfile(cfg_path):
            try:
                values = dotenv_values(cfg_path)
            except (OSError, UnicodeDecodeError) as e:
                raise ValidationError(f"Failed to read config file {cfg_path}: {e}") from e
            for key, value in values.items():
                if value is not None and hasattr(self, key):
                    setattr(self, key, value)

        # environment overrides
        # empty means the process-wide default, resolved by the store on first use
        self.METRICS_PATH = os.getenv("METRICS_PATH", self.METRICS_PATH)
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", self.LOG_LEVEL).upper()
        self.OMIT_EMPTY_HELP = os.getenv("OMIT_EMPTY_HELP", str(self.OMIT_EMPTY_HELP)).lower() == "true"

    @property
    def log_level(self) -> int:
        return getattr(logging, self.LOG_LEVEL, logging.INFO)

    def validate(self) -> None:
        if self.LOG_LEVEL not in _LOG_LEVELS:
            raise ValidationError(f"Unknown LOG_LEVEL {self.LOG_LEVEL!r}; expected one of {_LOG_LEVELS}")

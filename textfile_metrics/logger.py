"""Logging setup for the textfile_metrics package logger."""
import logging

from .config import Config

LOGGER_NAME = "textfile_metrics"


def get_logger(cfg: Config) -> logging.Logger:
    """Configure and return the package logger.

    Modules log through ``logging.getLogger(__name__)``, so everything under
    ``textfile_metrics.*`` follows the level set here.
    """
    cfg.validate()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(cfg.log_level)

    # small stdout handler for normal logs
    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
        logger.addHandler(ch)

    return logger

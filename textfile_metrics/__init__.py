from .config import Config, default_metrics_path, init_default_path
from .exceptions import MetricsError, StorageError, ValidationError
from .logger import get_logger
from .merge import MergeEngine
from .metrics import Metrics
from .models import HistogramCommand, MetricFamily, Sample, Snapshot, UpdateCommand
from .parser import TextFormatParser
from .renderer import TextFormatRenderer
from .storage import FileStore, StorageAdapter

__all__ = [
    "Config",
    "default_metrics_path",
    "init_default_path",
    "MetricsError",
    "StorageError",
    "ValidationError",
    "get_logger",
    "MergeEngine",
    "Metrics",
    "HistogramCommand",
    "MetricFamily",
    "Sample",
    "Snapshot",
    "UpdateCommand",
    "TextFormatParser",
    "TextFormatRenderer",
    "FileStore",
    "StorageAdapter",
]

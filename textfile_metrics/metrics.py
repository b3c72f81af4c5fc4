"""Instrumentation helpers that turn metric calls into storage update commands."""
from typing import Mapping, Optional, Sequence, Tuple

from .exceptions import ValidationError
from .models import (
    COUNTER,
    GAUGE,
    INCREMENT_FLOAT,
    INCREMENT_INTEGER,
    SET,
    HistogramCommand,
    UpdateCommand,
)
from .renderer import TextFormatRenderer
from .storage import StorageAdapter

DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


def _split_labels(labels: Optional[Mapping[str, str]]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    if not labels:
        return (), ()
    return tuple(labels.keys()), tuple(str(v) for v in labels.values())


class Metrics:
    """Counter, gauge and histogram updates against a storage backend.

    Label order follows the mapping's insertion order and becomes the family's
    label-name order the first time a metric is stored. Later updates may list
    the same labels in any order.
    """

    def __init__(self, storage: StorageAdapter, renderer: Optional[TextFormatRenderer] = None):
        self.storage = storage
        self.renderer = renderer or TextFormatRenderer()

    def increment(self, name: str, value: int = 1, labels: Optional[Mapping[str, str]] = None, help_text: str = "") -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"Counter {name} increment must be an integer, got {value!r}")
        self._increment_counter(name, value, INCREMENT_INTEGER, labels, help_text)

    def increment_float(self, name: str, value: float = 1.0, labels: Optional[Mapping[str, str]] = None, help_text: str = "") -> None:
        self._increment_counter(name, value, INCREMENT_FLOAT, labels, help_text)

    def set_gauge(self, name: str, value: float, labels: Optional[Mapping[str, str]] = None, help_text: str = "") -> None:
        label_names, label_values = _split_labels(labels)
        self.storage.update_gauge(
            UpdateCommand(name, GAUGE, SET, value, label_names, label_values, help_text=help_text)
        )

    def add_gauge(self, name: str, value: float, labels: Optional[Mapping[str, str]] = None, help_text: str = "") -> None:
        """Add ``value`` (which may be negative) to a gauge."""
        label_names, label_values = _split_labels(labels)
        self.storage.update_gauge(
            UpdateCommand(name, GAUGE, INCREMENT_FLOAT, value, label_names, label_values, help_text=help_text)
        )

    def record_histogram(
        self,
        name: str,
        value: float,
        buckets: Sequence[float] = DEFAULT_BUCKETS,
        labels: Optional[Mapping[str, str]] = None,
        help_text: str = "",
    ) -> None:
        label_names, label_values = _split_labels(labels)
        self.storage.update_histogram(
            HistogramCommand(name, value, buckets, label_names, label_values, help_text=help_text)
        )

    def to_prometheus(self) -> str:
        return self.renderer.render(self.storage.collect())

    def _increment_counter(self, name, value, operation, labels, help_text) -> None:
        # counters only go up
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value < 0:
            raise ValidationError(f"Counter {name} cannot be decreased (got {value})")
        label_names, label_values = _split_labels(labels)
        self.storage.update_counter(
            UpdateCommand(name, COUNTER, operation, value, label_names, label_values, help_text=help_text)
        )

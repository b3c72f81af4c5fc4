"""Metric families, samples, snapshots and the update commands that change them."""
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .exceptions import ValidationError
from .keys import family_key, value_key

COUNTER = "counter"
GAUGE = "gauge"
HISTOGRAM = "histogram"
METRIC_TYPES = (COUNTER, GAUGE, HISTOGRAM)

INCREMENT_INTEGER = "increment_integer"
INCREMENT_FLOAT = "increment_float"
SET = "set"
OPERATIONS = (INCREMENT_INTEGER, INCREMENT_FLOAT, SET)

BUCKET_LABEL = "le"
BUCKET_SUFFIX = "_bucket"
SUM_SUFFIX = "_sum"
COUNT_SUFFIX = "_count"
HISTOGRAM_SUFFIXES = (BUCKET_SUFFIX, SUM_SUFFIX, COUNT_SUFFIX)
INF_BOUND = "+Inf"


def _is_name(text: str, extra_first: str) -> bool:
    if not text:
        return False
    first = text[0]
    if not (first.isascii() and (first.isalpha() or first in extra_first)):
        return False
    return all(c.isascii() and (c.isalnum() or c in extra_first) for c in text[1:])


def is_metric_name(text: str) -> bool:
    return _is_name(text, "_:")


def is_label_name(text: str) -> bool:
    return _is_name(text, "_")


def format_value(value: float) -> str:
    """Render a number as plain decimal text: ``3``, ``0.25``, ``0.00001``, ``+Inf``."""
    if value == math.inf:
        return INF_BOUND
    if value == int(value):
        return str(int(value))
    return format(Decimal(repr(float(value))), "f")


def parse_bound(text: str) -> float:
    return math.inf if text == INF_BOUND else float(text)


def align_label_values(
    target_names: Sequence[str], names: Sequence[str], values: Sequence[str]
) -> Optional[Tuple[str, ...]]:
    """Reorder ``values`` from ``names`` order into ``target_names`` order.

    Returns None when the two label-name sets differ.
    """
    if tuple(names) == tuple(target_names):
        return tuple(values)
    if sorted(names) != sorted(target_names):
        return None
    by_name = dict(zip(names, values))
    return tuple(by_name[label] for label in target_names)


@dataclass
class Sample:
    """One labeled measurement. ``label_values`` line up with the family's label names."""

    name: str
    label_values: Tuple[str, ...]
    value: float

    def __post_init__(self):
        self.label_values = tuple(str(v) for v in self.label_values)
        self.value = float(self.value)

    @property
    def key(self) -> str:
        return value_key(self.name, self.label_values)


class MetricFamily:
    """All samples sharing one name, type, help text and label-name schema.

    Samples keep insertion order for rendering and are also indexed by their
    value key for merging.
    """

    def __init__(self, name: str, help_text: str = "", metric_type: str = "", label_names: Sequence[str] = ()):
        self.name = name
        self.help = help_text
        self.type = metric_type
        self.label_names = tuple(label_names)
        self._samples: List[Sample] = []
        self._index: Dict[str, int] = {}

    @property
    def key(self) -> str:
        return family_key(self.type, self.name, self.label_names)

    @property
    def samples(self) -> List[Sample]:
        return list(self._samples)

    def get(self, key: str) -> Optional[Sample]:
        pos = self._index.get(key)
        return None if pos is None else self._samples[pos]

    def add(self, sample: Sample) -> None:
        """Insert a sample, replacing any sample with the same identity in place."""
        key = sample.key
        pos = self._index.get(key)
        if pos is None:
            self._index[key] = len(self._samples)
            self._samples.append(sample)
        else:
            self._samples[pos] = sample

    def sort_samples(self, sort_key) -> None:
        self._samples.sort(key=sort_key)
        self._index = {s.key: i for i, s in enumerate(self._samples)}

    def is_bucket(self, sample: Sample) -> bool:
        return self.type == HISTOGRAM and sample.name == self.name + BUCKET_SUFFIX

    def label_names_for(self, sample: Sample) -> Tuple[str, ...]:
        if self.is_bucket(sample):
            return self.label_names + (BUCKET_LABEL,)
        return self.label_names

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetricFamily):
            return NotImplemented
        return (
            self.name == other.name
            and self.help == other.help
            and self.type == other.type
            and self.label_names == other.label_names
            and self._samples == other._samples
        )

    def __repr__(self) -> str:
        return (
            f"MetricFamily(name={self.name!r}, type={self.type!r}, "
            f"label_names={self.label_names!r}, samples={self._samples!r})"
        )


class Snapshot:
    """The full persisted state: families keyed by family key, in insertion order."""

    def __init__(self):
        self._families: List[MetricFamily] = []
        self._index: Dict[str, int] = {}

    @classmethod
    def from_families(cls, families: Sequence[MetricFamily]) -> "Snapshot":
        snapshot = cls()
        for family in families:
            snapshot.add(family)
        return snapshot

    @property
    def families(self) -> List[MetricFamily]:
        return list(self._families)

    def get(self, key: str) -> Optional[MetricFamily]:
        pos = self._index.get(key)
        return None if pos is None else self._families[pos]

    def find_by_name(self, name: str) -> Optional[MetricFamily]:
        for family in self._families:
            if family.name == name:
                return family
        return None

    def add(self, family: MetricFamily) -> None:
        key = family.key
        pos = self._index.get(key)
        if pos is None:
            self._index[key] = len(self._families)
            self._families.append(family)
        else:
            self._families[pos] = family

    def rekey(self, old_key: str, family: MetricFamily) -> None:
        """Store ``family`` at the position previously held by ``old_key``."""
        pos = self._index.pop(old_key)
        self._families[pos] = family
        self._index[family.key] = pos

    def __len__(self) -> int:
        return len(self._families)

    def __iter__(self) -> Iterator[MetricFamily]:
        return iter(self._families)


def _check_number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{what} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{what} must be finite, got {value!r}")
    return float(value)


def _check_labels(name: str, label_names: Sequence[str], label_values: Sequence[Any]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    names = tuple(label_names)
    values = tuple(str(v) for v in label_values)
    for label in names:
        if not isinstance(label, str) or not is_label_name(label):
            raise ValidationError(f"Invalid label name {label!r} for metric {name}")
    if len(set(names)) != len(names):
        raise ValidationError(f"Duplicate label names {names!r} for metric {name}")
    if len(values) != len(names):
        raise ValidationError(
            f"Metric {name} has {len(names)} label names but {len(values)} label values"
        )
    for v in values:
        if '"' in v or "\n" in v or "\r" in v:
            raise ValidationError(f"Label value {v!r} for metric {name} contains a quote or line break")
    return names, values


def _check_help(name: str, help_text: str) -> str:
    if "\n" in help_text or "\r" in help_text:
        raise ValidationError(f"Help text for metric {name} must be a single line")
    return help_text


class UpdateCommand:
    """A single counter or gauge update for one labeled sample."""

    def __init__(
        self,
        name: str,
        metric_type: str,
        operation: str,
        value: float,
        label_names: Sequence[str] = (),
        label_values: Sequence[Any] = (),
        help_text: str = "",
    ):
        if not isinstance(name, str) or not is_metric_name(name):
            raise ValidationError(f"Invalid metric name {name!r}")
        if metric_type not in METRIC_TYPES:
            raise ValidationError(f"Invalid metric type {metric_type!r} for metric {name}")
        if operation not in OPERATIONS:
            raise ValidationError(f"Invalid operation {operation!r} for metric {name}")
        self.name = name
        self.type = metric_type
        self.operation = operation
        self.value = _check_number(value, f"Value for metric {name}")
        self.label_names, self.label_values = _check_labels(name, label_names, label_values)
        self.help = _check_help(name, help_text)

    @property
    def family_key(self) -> str:
        return family_key(self.type, self.name, self.label_names)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "operation": self.operation,
            "value": self.value,
            "label_names": list(self.label_names),
            "label_values": list(self.label_values),
            "help": self.help,
        }


class HistogramCommand:
    """One observation for a histogram with the given finite, ascending bucket bounds.

    The ``+Inf`` bucket is implicit; a trailing infinite bound is dropped.
    """

    type = HISTOGRAM

    def __init__(
        self,
        name: str,
        value: float,
        buckets: Sequence[float],
        label_names: Sequence[str] = (),
        label_values: Sequence[Any] = (),
        help_text: str = "",
    ):
        if not isinstance(name, str) or not is_metric_name(name):
            raise ValidationError(f"Invalid metric name {name!r}")
        self.name = name
        self.value = _check_number(value, f"Observed value for histogram {name}")
        self.label_names, self.label_values = _check_labels(name, label_names, label_values)
        if BUCKET_LABEL in self.label_names:
            raise ValidationError(f"Histogram {name} cannot use reserved label name {BUCKET_LABEL!r}")
        self.help = _check_help(name, help_text)

        bounds = list(buckets)
        # an explicit +Inf bucket is accepted and folded into the implicit one
        if bounds and not isinstance(bounds[-1], bool) and bounds[-1] == math.inf:
            bounds.pop()
        bounds = [_check_number(b, f"Bucket bound for histogram {name}") for b in bounds]
        if not bounds:
            raise ValidationError(f"Histogram {name} needs at least one bucket")
        if any(lower >= upper for lower, upper in zip(bounds, bounds[1:])):
            raise ValidationError(f"Histogram {name} buckets must be strictly ascending: {bounds}")
        self.buckets = tuple(bounds)

    @property
    def family_key(self) -> str:
        return family_key(self.type, self.name, self.label_names)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "value": self.value,
            "buckets": list(self.buckets),
            "label_names": list(self.label_names),
            "label_values": list(self.label_values),
            "help": self.help,
        }

"""Parser for the Prometheus text exposition format (the subset this package writes).

    # HELP test_some_metric this is for testing
    # TYPE test_some_metric gauge
    test_some_metric{foo="bbb"} 35

Lines are scanned one at a time. A sample line that does not fit the grammar is
reported as a failed ``LineResult`` and skipped, since the file may be read while
another caller is halfway through rewriting it.
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .models import (
    BUCKET_LABEL,
    BUCKET_SUFFIX,
    HISTOGRAM,
    HISTOGRAM_SUFFIXES,
    INF_BOUND,
    METRIC_TYPES,
    MetricFamily,
    Sample,
    align_label_values,
    is_label_name,
    is_metric_name,
)

logger = logging.getLogger(__name__)

META_TYPES = ("HELP", "TYPE")

_NAME_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_:")
_VALUE_CHARS = frozenset("0123456789+-.eE")


@dataclass
class SampleLine:
    name: str
    label_names: Tuple[str, ...] = ()
    label_values: Tuple[str, ...] = ()
    value: float = 0.0


@dataclass
class LineResult:
    """Outcome of scanning one sample line: either ``sample`` or ``error`` is set."""

    sample: Optional[SampleLine] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.sample is not None


def _fail(error: str) -> LineResult:
    return LineResult(error=error)


def parse_value(text: str) -> Optional[float]:
    """Parse a sample value; returns None for anything that is not a finite decimal."""
    if not text or not set(text) <= _VALUE_CHARS:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_line(line: str) -> LineResult:
    """Scan ``name{label="value",...} value``. The label block is optional."""
    n = len(line)
    pos = 0
    while pos < n and line[pos] in _NAME_CHARS:
        pos += 1
    name = line[:pos]
    if not is_metric_name(name):
        return _fail("invalid metric name")

    names: List[str] = []
    values: List[str] = []
    if pos < n and line[pos] == "{":
        pos += 1
        while True:
            if pos < n and line[pos] == "}":
                pos += 1
                break
            eq = line.find("=", pos)
            if eq == -1:
                return _fail("label without '='")
            label = line[pos:eq]
            if not is_label_name(label):
                return _fail(f"invalid label name {label!r}")
            if label in names:
                return _fail(f"duplicate label name {label!r}")
            if eq + 1 >= n or line[eq + 1] != '"':
                return _fail(f"value of label {label!r} is not quoted")
            end = line.find('"', eq + 2)
            if end == -1:
                return _fail(f"unterminated value for label {label!r}")
            names.append(label)
            values.append(line[eq + 2:end])
            pos = end + 1
            if pos >= n:
                return _fail("unbalanced braces")
            if line[pos] == ",":
                pos += 1
            elif line[pos] != "}":
                return _fail(f"unexpected {line[pos]!r} after label {label!r}")

    if pos >= n or line[pos] != " ":
        return _fail("missing value")
    value_text = line[pos:].strip(" ")
    if " " in value_text:
        return _fail("unexpected content after value")
    value = parse_value(value_text)
    if value is None:
        return _fail(f"invalid value {value_text!r}")
    return LineResult(SampleLine(name, tuple(names), tuple(values), value))


def _parse_meta(line: str) -> Optional[Tuple[str, str, str]]:
    """Return (kind, metric name, content) for HELP/TYPE lines, None for plain comments."""
    parts = line[1:].lstrip(" ").split(" ", 2)
    if len(parts) < 2 or parts[0] not in META_TYPES or not is_metric_name(parts[1]):
        return None
    content = parts[2] if len(parts) > 2 else ""
    return parts[0].lower(), parts[1], content


class TextFormatParser:
    def parse(self, text: str) -> List[MetricFamily]:
        """Parse exposition text into metric families, in order of first appearance.

        HELP/TYPE lines may appear anywhere in the text; they are applied when the
        families are built. A family's label-name order is taken from its first
        sample line; later lines with a different label set are skipped.
        """
        meta: Dict[str, Dict[str, str]] = {}
        parsed: List[Tuple[int, SampleLine]] = []

        lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        for lineno, line in enumerate(lines, 1):
            if not line.strip():
                continue
            if line.startswith("#"):
                entry = _parse_meta(line)
                if entry is not None:
                    kind, name, content = entry
                    meta.setdefault(name, {}).setdefault(kind, content.strip() if kind == "type" else content)
                continue
            result = parse_line(line)
            if not result.ok:
                logger.debug("Skipping malformed metrics line %d (%s): %r", lineno, result.error, line)
                continue
            parsed.append((lineno, result.sample))

        families: Dict[str, MetricFamily] = {}
        for lineno, sample in parsed:
            family_name, is_bucket = self._family_name(sample.name, meta)
            names, values = sample.label_names, sample.label_values
            bound = None
            if is_bucket:
                if BUCKET_LABEL not in names:
                    logger.debug("Skipping bucket line %d without %r label", lineno, BUCKET_LABEL)
                    continue
                i = names.index(BUCKET_LABEL)
                bound = values[i]
                if bound != INF_BOUND and parse_value(bound) is None:
                    logger.debug("Skipping bucket line %d with invalid bound %r", lineno, bound)
                    continue
                names = names[:i] + names[i + 1:]
                values = values[:i] + values[i + 1:]

            family = families.get(family_name)
            if family is None:
                info = meta.get(family_name, {})
                metric_type = info.get("type", "")
                if metric_type not in METRIC_TYPES:
                    metric_type = ""
                family = MetricFamily(family_name, info.get("help", ""), metric_type, names)
                families[family_name] = family

            aligned = align_label_values(family.label_names, names, values)
            if aligned is None:
                logger.debug(
                    "Skipping line %d: labels %s do not match %s for metric %s",
                    lineno, list(names), list(family.label_names), family_name,
                )
                continue
            if bound is not None:
                aligned = aligned + (bound,)
            family.add(Sample(sample.name, aligned, sample.value))

        return list(families.values())

    @staticmethod
    def _family_name(sample_name: str, meta: Dict[str, Dict[str, str]]) -> Tuple[str, bool]:
        for suffix in HISTOGRAM_SUFFIXES:
            if sample_name.endswith(suffix):
                base = sample_name[: -len(suffix)]
                if meta.get(base, {}).get("type") == HISTOGRAM:
                    return base, suffix == BUCKET_SUFFIX
        return sample_name, False

"""Canonical identity keys for metric families and samples.

Keys are the only way a freshly parsed snapshot is matched against an
incoming update, so they must be pure functions of their inputs.
"""
import json
from typing import Sequence

PREFIX = "prom"


def _encode(items: Sequence[str]) -> str:
    # JSON keeps order and escapes separators, so ("a:b",) and ("a", "b") differ
    return json.dumps([str(item) for item in items], separators=(",", ":"))


def family_key(metric_type: str, name: str, label_names: Sequence[str]) -> str:
    """Identity of a metric family: type, name and ordered label names."""
    return ":".join((PREFIX, metric_type, name, _encode(label_names)))


def value_key(name: str, label_values: Sequence[str]) -> str:
    """Identity of a sample within its family: sample name and label values."""
    return ":".join((PREFIX, name, _encode(label_values)))

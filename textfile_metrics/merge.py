"""Merges update commands into a snapshot.

The engine is pure with respect to storage: it mutates and returns the snapshot
it was given and leaves persisting it to the caller.
"""
import logging
from typing import Tuple, Union

from .exceptions import ValidationError
from .keys import value_key
from .models import (
    BUCKET_SUFFIX,
    COUNT_SUFFIX,
    HISTOGRAM,
    HISTOGRAM_SUFFIXES,
    INCREMENT_FLOAT,
    INF_BOUND,
    SET,
    SUM_SUFFIX,
    HistogramCommand,
    MetricFamily,
    Sample,
    Snapshot,
    UpdateCommand,
    align_label_values,
    format_value,
    parse_bound,
)

logger = logging.getLogger(__name__)

Command = Union[UpdateCommand, HistogramCommand]


class MergeEngine:
    def apply(self, snapshot: Snapshot, command: UpdateCommand) -> Snapshot:
        """Apply one counter/gauge command: increments add to the stored value, set overwrites it."""
        family, label_values = self._family_for(snapshot, command)
        self._merge_sample(family, command.name, label_values, command.operation, command.value)
        family.sort_samples(self._sort_key(family))
        return snapshot

    def apply_histogram(self, snapshot: Snapshot, command: HistogramCommand) -> Snapshot:
        """Record one observation with cumulative bucket semantics.

        Every bucket whose bound is >= the observed value, plus ``+Inf``, is incremented.
        Lower buckets keep their value (0 when they did not exist yet).
        """
        family, own_values = self._family_for(snapshot, command)
        bucket_name = command.name + BUCKET_SUFFIX

        for bound in command.buckets:
            label_values = own_values + (format_value(bound),)
            if command.value <= bound:
                self._merge_sample(family, bucket_name, label_values, INCREMENT_FLOAT, 1.0)
            elif family.get(value_key(bucket_name, label_values)) is None:
                family.add(Sample(bucket_name, label_values, 0.0))
        self._merge_sample(family, bucket_name, own_values + (INF_BOUND,), INCREMENT_FLOAT, 1.0)

        self._merge_sample(family, command.name + SUM_SUFFIX, own_values, INCREMENT_FLOAT, command.value)
        self._merge_sample(family, command.name + COUNT_SUFFIX, own_values, INCREMENT_FLOAT, 1.0)

        family.sort_samples(self._sort_key(family))
        return snapshot

    @staticmethod
    def _merge_sample(family: MetricFamily, name: str, label_values: Tuple[str, ...], operation: str, operand: float) -> None:
        if operation == SET:
            value = operand
        else:
            current = family.get(value_key(name, label_values))
            value = (current.value if current is not None else 0.0) + operand
        family.add(Sample(name, label_values, value))

    @staticmethod
    def _family_for(snapshot: Snapshot, command: Command) -> Tuple[MetricFamily, Tuple[str, ...]]:
        """Find or create the family for ``command``.

        Returns the family and the command's label values in the family's label order.
        """
        family = snapshot.get(command.family_key)
        if family is not None:
            if command.help:
                family.help = command.help
            return family, command.label_values

        existing = snapshot.find_by_name(command.name)
        if existing is None:
            _check_histogram_names(snapshot, command)
            family = MetricFamily(command.name, command.help, command.type, command.label_names)
            snapshot.add(family)
            logger.debug("Created %s family %s with labels %s", command.type, command.name, list(command.label_names))
            return family, command.label_values

        # the same label set in another order belongs to the stored family
        label_values = align_label_values(existing.label_names, command.label_names, command.label_values)
        if label_values is not None and existing.type in ("", command.type):
            old_key = existing.key
            # families read from files without a TYPE line adopt the type of the first update
            existing.type = command.type
            if command.help:
                existing.help = command.help
            if existing.key != old_key:
                snapshot.rekey(old_key, existing)
            return existing, label_values

        raise ValidationError(
            f"Metric {command.name} is already stored as {existing.type or 'untyped'} "
            f"with labels {list(existing.label_names)}; cannot update it as {command.type} "
            f"with labels {list(command.label_names)}"
        )

    @staticmethod
    def _sort_key(family: MetricFamily):
        width = len(family.label_names)

        def key(sample: Sample):
            own = sample.label_values[:width]
            if family.type != HISTOGRAM:
                return own, 0, 0.0
            if family.is_bucket(sample):
                return own, 0, parse_bound(sample.label_values[width])
            if sample.name == family.name + SUM_SUFFIX:
                return own, 1, 0.0
            if sample.name == family.name + COUNT_SUFFIX:
                return own, 2, 0.0
            return own, 3, 0.0

        return key


def _check_histogram_names(snapshot: Snapshot, command: Command) -> None:
    """Reject names that would collide with a histogram's bucket/sum/count samples on re-parse."""
    for suffix in HISTOGRAM_SUFFIXES:
        if command.type == HISTOGRAM:
            clash = snapshot.find_by_name(command.name + suffix)
            if clash is not None:
                raise ValidationError(f"Histogram {command.name} collides with stored metric {clash.name}")
        elif command.name.endswith(suffix):
            base = snapshot.find_by_name(command.name[: -len(suffix)])
            if base is not None and base.type == HISTOGRAM:
                raise ValidationError(f"Metric {command.name} collides with histogram {base.name}")

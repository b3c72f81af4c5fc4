import math
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from textfile_metrics import HistogramCommand, MetricFamily, Sample, Snapshot, UpdateCommand, ValidationError
from textfile_metrics.models import COUNTER, GAUGE, INCREMENT_INTEGER, SET, format_value


def test_format_value_is_plain_decimal():
    assert format_value(3.0) == '3'
    assert format_value(-2.0) == '-2'
    assert format_value(0.25) == '0.25'
    assert format_value(1e-05) == '0.00001'
    assert format_value(1e16) == '10000000000000000'
    assert format_value(math.inf) == '+Inf'


def test_family_add_replaces_by_identity():
    family = MetricFamily('temp', 'Temperature', GAUGE, ['room'])
    family.add(Sample('temp', ('kitchen',), 20))
    family.add(Sample('temp', ('hall',), 18))
    family.add(Sample('temp', ('kitchen',), 21))

    assert [s.label_values for s in family] == [('kitchen',), ('hall',)]
    assert family.get(Sample('temp', ('kitchen',), 0).key).value == 21.0


def test_snapshot_keeps_insertion_order():
    snapshot = Snapshot.from_families([
        MetricFamily('b', metric_type=GAUGE),
        MetricFamily('a', metric_type=COUNTER),
    ])
    assert [f.name for f in snapshot] == ['b', 'a']
    assert snapshot.find_by_name('a').type == COUNTER
    assert snapshot.get(MetricFamily('a', metric_type=COUNTER).key) is not None


def test_update_command_rejects_misaligned_labels():
    with pytest.raises(ValidationError):
        UpdateCommand('jobs', COUNTER, INCREMENT_INTEGER, 1, ['queue'], [])


@pytest.mark.parametrize('kwargs', [
    {'name': ''},
    {'name': '9lives'},
    {'metric_type': 'summary'},
    {'operation': 'decrement'},
    {'value': float('nan')},
    {'value': float('-inf')},
    {'value': '3'},
    {'label_names': ['bad-name'], 'label_values': ['x']},
    {'label_names': ['a', 'a'], 'label_values': ['x', 'y']},
    {'label_names': ['a'], 'label_values': ['say "hi"']},
    {'help_text': 'two\nlines'},
])
def test_update_command_validation(kwargs):
    args = {'name': 'jobs', 'metric_type': GAUGE, 'operation': SET, 'value': 1}
    args.update(kwargs)
    with pytest.raises(ValidationError):
        UpdateCommand(**args)


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        UpdateCommand('jobs', GAUGE, SET, float('nan'))


@pytest.mark.parametrize('buckets', [[], [5, 1], [1, 1], [float('inf')], [1, float('inf'), 5]])
def test_histogram_command_rejects_bad_buckets(buckets):
    with pytest.raises(ValidationError):
        HistogramCommand('latency', 1.0, buckets)


def test_histogram_command_reserves_le_label():
    with pytest.raises(ValidationError):
        HistogramCommand('latency', 1.0, [1], ['le'], ['x'])


def test_command_to_dict():
    cmd = UpdateCommand('jobs', COUNTER, INCREMENT_INTEGER, 2, ['queue'], ['mail'], help_text='Jobs run')
    assert cmd.to_dict() == {
        'name': 'jobs',
        'type': 'counter',
        'operation': 'increment_integer',
        'value': 2.0,
        'label_names': ['queue'],
        'label_values': ['mail'],
        'help': 'Jobs run',
    }


def test_trailing_inf_bucket_is_folded_into_implicit_one():
    cmd = HistogramCommand('latency', 1.0, [0.5, 1, float('inf')])
    assert cmd.buckets == (0.5, 1.0)

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from textfile_metrics import FileStore, Metrics, TextFormatRenderer, ValidationError


@pytest.fixture
def metrics(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv('METRICS_PATH', raising=False)
    monkeypatch.delenv('CONFIG_FILE', raising=False)
    store = FileStore(path=str(tmp_path / 'metrics.prom'))
    store.flush()
    return Metrics(store)


def test_counter_increments_n_times(metrics):
    for _ in range(3):
        metrics.increment('backup_checks_total', labels={'job': 'daily', 'status': 'success'}, help_text='Backup checks')

    assert metrics.to_prometheus() == (
        '# HELP backup_checks_total Backup checks\n'
        '# TYPE backup_checks_total counter\n'
        'backup_checks_total{job="daily",status="success"} 3\n'
    )


def test_counter_rejects_decrease_and_non_integers(metrics):
    with pytest.raises(ValidationError):
        metrics.increment('jobs_total', -1)
    with pytest.raises(ValidationError):
        metrics.increment('jobs_total', 1.5)
    with pytest.raises(ValidationError):
        metrics.increment_float('jobs_total', -0.5)
    assert metrics.to_prometheus() == '\n'


def test_float_counter(metrics):
    metrics.increment_float('cpu_seconds_total', 0.25)
    metrics.increment_float('cpu_seconds_total', 0.5)
    assert 'cpu_seconds_total 0.75\n' in metrics.to_prometheus()


def test_gauge_set_and_add(metrics):
    metrics.set_gauge('queue_depth', 10, labels={'queue': 'mail'})
    metrics.add_gauge('queue_depth', -3, labels={'queue': 'mail'})
    assert 'queue_depth{queue="mail"} 7\n' in metrics.to_prometheus()


def test_record_histogram(metrics):
    metrics.record_histogram('backup_check_duration_seconds', 0.5, buckets=[0.1, 1], help_text='Check duration')
    metrics.record_histogram('backup_check_duration_seconds', 2, buckets=[0.1, 1], help_text='Check duration')

    assert metrics.to_prometheus().splitlines() == [
        '# HELP backup_check_duration_seconds Check duration',
        '# TYPE backup_check_duration_seconds histogram',
        'backup_check_duration_seconds_bucket{le="0.1"} 0',
        'backup_check_duration_seconds_bucket{le="1"} 1',
        'backup_check_duration_seconds_bucket{le="+Inf"} 2',
        'backup_check_duration_seconds_sum 2.5',
        'backup_check_duration_seconds_count 2',
    ]


def test_default_buckets(metrics):
    metrics.record_histogram('latency_seconds', 0.07)
    lines = metrics.to_prometheus().splitlines()
    assert 'latency_seconds_bucket{le="0.05"} 0' in lines
    assert 'latency_seconds_bucket{le="0.1"} 1' in lines
    assert 'latency_seconds_bucket{le="10"} 1' in lines


def test_custom_renderer(tmp_path):
    store = FileStore(path=str(tmp_path / 'custom.prom'))
    metrics = Metrics(store, renderer=TextFormatRenderer(omit_empty_help=True))
    metrics.set_gauge('up', 1)
    assert metrics.to_prometheus() == '# TYPE up gauge\nup 1\n'


def test_label_mapping_order_does_not_matter(metrics):
    metrics.increment('req_total', labels={'method': 'get', 'code': '200'})
    metrics.increment('req_total', labels={'code': '200', 'method': 'get'})
    assert metrics.to_prometheus() == (
        '# HELP req_total \n'
        '# TYPE req_total counter\n'
        'req_total{method="get",code="200"} 2\n'
    )

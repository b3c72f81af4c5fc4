import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from textfile_metrics import MetricFamily, Sample, TextFormatRenderer


def test_render_counter_family():
    family = MetricFamily('requests_total', 'Total requests', 'counter', ['method', 'code'])
    family.add(Sample('requests_total', ('get', '200'), 3))
    family.add(Sample('requests_total', ('post', '500'), 0.5))

    assert TextFormatRenderer().render([family]) == (
        '# HELP requests_total Total requests\n'
        '# TYPE requests_total counter\n'
        'requests_total{method="get",code="200"} 3\n'
        'requests_total{method="post",code="500"} 0.5\n'
    )


def test_render_without_labels_and_empty_help():
    family = MetricFamily('up', metric_type='gauge')
    family.add(Sample('up', (), 1))

    assert TextFormatRenderer().render([family]) == '# HELP up \n# TYPE up gauge\nup 1\n'
    assert TextFormatRenderer(omit_empty_help=True).render([family]) == '# TYPE up gauge\nup 1\n'


def test_untyped_family_has_no_type_line():
    family = MetricFamily('legacy', 'Old metric')
    family.add(Sample('legacy', (), 2))
    assert TextFormatRenderer().render([family]) == '# HELP legacy Old metric\nlegacy 2\n'


def test_histogram_buckets_render_le_label():
    family = MetricFamily('latency', '', 'histogram', ['path'])
    family.add(Sample('latency_bucket', ('/', '0.5'), 1))
    family.add(Sample('latency_bucket', ('/', '+Inf'), 2))
    family.add(Sample('latency_sum', ('/',), 1.25))
    family.add(Sample('latency_count', ('/',), 2))

    lines = TextFormatRenderer(omit_empty_help=True).render([family]).splitlines()
    assert lines == [
        '# TYPE latency histogram',
        'latency_bucket{path="/",le="0.5"} 1',
        'latency_bucket{path="/",le="+Inf"} 2',
        'latency_sum{path="/"} 1.25',
        'latency_count{path="/"} 2',
    ]


def test_small_and_large_values_avoid_scientific_notation():
    family = MetricFamily('tiny', metric_type='gauge')
    family.add(Sample('tiny', (), 0.00001))
    family.add(Sample('tiny_big', (), 1e17))
    output = TextFormatRenderer().render([family])
    assert 'tiny 0.00001\n' in output
    assert 'tiny_big 100000000000000000\n' in output
    assert 'e' not in output.split('\n', 2)[2]


def test_families_render_in_input_order_with_trailing_newline():
    a = MetricFamily('a', metric_type='gauge')
    a.add(Sample('a', (), 1))
    b = MetricFamily('b', metric_type='gauge')
    b.add(Sample('b', (), 2))
    output = TextFormatRenderer(omit_empty_help=True).render([b, a])
    assert output == '# TYPE b gauge\nb 2\n# TYPE a gauge\na 1\n'
    assert output.endswith('\n')


def test_render_nothing():
    assert TextFormatRenderer().render([]) == '\n'

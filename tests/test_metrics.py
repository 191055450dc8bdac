"""Tests for the Prometheus counter sink."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from greetings.observability.metrics import (
    BACKEND_ERROR,
    BACKEND_TOTAL,
    GREETINGS_ERROR,
    GREETINGS_TOTAL,
    MetricsSink,
    prometheus_name,
)


class TestMetricsSink:
    """Test cases for MetricsSink."""

    def test_counter_starts_at_zero(self, metrics):
        assert metrics.value(GREETINGS_TOTAL, name="World") == 0.0

    def test_increment_is_per_label_set(self, metrics):
        metrics.counter(GREETINGS_TOTAL, name="Alice").increment()
        metrics.counter(GREETINGS_TOTAL, name="Alice").increment()
        metrics.counter(GREETINGS_TOTAL, name="Bob").increment()

        assert metrics.value(GREETINGS_TOTAL, name="Alice") == 2.0
        assert metrics.value(GREETINGS_TOTAL, name="Bob") == 1.0

    def test_unlabelled_counter(self, metrics):
        metrics.counter(BACKEND_TOTAL).increment()

        assert metrics.value(BACKEND_TOTAL) == 1.0
        assert metrics.value(BACKEND_ERROR) == 0.0

    def test_label_names_must_not_change(self, metrics):
        metrics.counter(GREETINGS_ERROR, name="World")

        with pytest.raises(ValueError):
            metrics.counter(GREETINGS_ERROR)

    def test_handle_describes_its_event(self, metrics):
        handle = metrics.counter(GREETINGS_TOTAL, name="World")

        assert handle.event.name == GREETINGS_TOTAL
        assert handle.event.labels == {"name": "World"}

    def test_sinks_do_not_share_counters(self):
        first, second = MetricsSink(), MetricsSink()
        first.counter(BACKEND_TOTAL).increment()

        assert second.value(BACKEND_TOTAL) == 0.0

    def test_exposition_uses_prometheus_names(self, metrics):
        metrics.counter(GREETINGS_TOTAL, name="World").increment()
        metrics.counter(GREETINGS_ERROR, name="World").increment()

        text = metrics.exposition().decode()
        assert 'greetings_total{name="World"} 1.0' in text
        assert 'greetings_error_total{name="World"} 1.0' in text

    def test_concurrent_increments_are_not_lost(self, metrics):
        def work(_):
            metrics.counter(GREETINGS_TOTAL, name="World").increment()

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(work, range(200)))

        assert metrics.value(GREETINGS_TOTAL, name="World") == 200.0


def test_prometheus_name():
    assert prometheus_name("greetings.total") == "greetings_total"
    assert prometheus_name("greetingsbackend.error") == "greetingsbackend_error"


def test_label_may_be_called_name(metrics):
    handle = metrics.counter(GREETINGS_TOTAL, name="World")
    handle.increment()

    assert handle.event.labels == {"name": "World"}
    assert metrics.value(GREETINGS_TOTAL, name="World") == 1.0

"""
Prometheus counters for the greeting services.

Tracks:
- greetings.total{name}        front service requests
- greetings.error{name}        local work failures in the front service
- greetingsbackend.total       backend requests
- greetingsbackend.error       backend rejections

Metric names use the dotted style of the dashboards that consume them; they are
exposed Prometheus-style (``greetings.total`` -> ``greetings_total``,
``greetings.error`` -> ``greetings_error_total``).

CRITICAL: Exactly-once
----------------------
Each triggering event calls ``increment()`` once. prometheus_client counters
are lock-protected, and ``MetricsSink`` guards its own get-or-create, so
callers never need external locking.
"""

import re
import threading
from typing import Dict, Optional, Tuple

from prometheus_client import CollectorRegistry, Counter, generate_latest

from greetings.types import MetricEvent

GREETINGS_TOTAL = "greetings.total"
GREETINGS_ERROR = "greetings.error"
BACKEND_TOTAL = "greetingsbackend.total"
BACKEND_ERROR = "greetingsbackend.error"

METRIC_DESCRIPTIONS = {
    GREETINGS_TOTAL: "Greeting requests received by the front service",
    GREETINGS_ERROR: "Greeting requests whose local work failed",
    BACKEND_TOTAL: "Requests received by the backend service",
    BACKEND_ERROR: "Requests rejected by the backend service",
}

_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_:]")


def prometheus_name(name: str) -> str:
    """Map a dotted metric name onto a valid Prometheus metric name."""
    return _INVALID_CHARS.sub("_", name)


class CounterHandle:
    """A counter bound to one label set. Increment only."""

    def __init__(self, child: Counter, event: MetricEvent):
        self._child = child
        self.event = event

    def increment(self) -> None:
        self._child.inc()


class MetricsSink:
    """
    Counter registry keyed by metric name + label set.

    Args:
        registry: Prometheus registry to register counters in. Each sink gets its
            own registry by default so services (and tests) never share counters.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._counters: Dict[str, Tuple[Counter, Tuple[str, ...]]] = {}
        self._lock = threading.Lock()

    def counter(self, metric: str, **labels: str) -> CounterHandle:
        """
        Get the counter ``metric`` for this label set, creating it on first use.

        Raises:
            ValueError: If ``metric`` was previously used with different label names
        """
        label_names = tuple(sorted(labels))
        counter = self._get_or_create(metric, label_names)
        child = counter.labels(**{k: str(v) for k, v in labels.items()}) if label_names else counter
        return CounterHandle(child, MetricEvent(name=metric, labels={k: str(v) for k, v in labels.items()}))

    def value(self, metric: str, **labels: str) -> float:
        """Current value of a counter (0.0 if it was never incremented)."""
        sample = prometheus_name(metric)
        if not sample.endswith("_total"):
            sample += "_total"
        value = self.registry.get_sample_value(sample, {k: str(v) for k, v in labels.items()})
        return value or 0.0

    def exposition(self) -> bytes:
        """Prometheus text format of every counter in this sink."""
        return generate_latest(self.registry)

    def _get_or_create(self, name: str, label_names: Tuple[str, ...]) -> Counter:
        with self._lock:
            existing = self._counters.get(name)
            if existing is not None:
                counter, known_labels = existing
                if known_labels != label_names:
                    raise ValueError(
                        f"Metric {name!r} uses labels {list(known_labels)}, got {list(label_names)}"
                    )
                return counter

            counter = Counter(
                prometheus_name(name),
                METRIC_DESCRIPTIONS.get(name, name),
                label_names,
                registry=self.registry,
            )
            self._counters[name] = (counter, label_names)
            return counter

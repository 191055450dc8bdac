"""
Observability package.

Per-request instrumentation primitives for the greeting services:
1. CORRELATION: request-scoped fields mirrored into every log line
2. TRACES: an explicit span tree mirrored into OpenTelemetry
3. METRICS: exactly-once Prometheus counters

Process-wide setup (log formatting, trace export, FastAPI instrumentation)
lives in ``logging_config`` and ``instrumentation``.
"""

from greetings.observability.context import CorrelationContext
from greetings.observability.metrics import MetricsSink
from greetings.observability.tracing import Span, Tracer

__all__ = ["CorrelationContext", "MetricsSink", "Span", "Tracer"]

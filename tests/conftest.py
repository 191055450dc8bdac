"""
Pytest configuration and fixtures for the greeting services.

Spans go to an in-memory exporter, counters to a private registry, and every
fault draw comes from a scripted random source, so each test controls exactly
which pipeline path runs.
"""

from typing import Iterable, List

import pytest
import structlog
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from greetings.backend.app import create_app as create_backend_app
from greetings.backend.endpoint import RemoteEndpoint
from greetings.config import Settings
from greetings.frontend.app import create_app as create_frontend_app
from greetings.frontend.client import BackendClient
from greetings.observability.metrics import MetricsSink
from greetings.observability.tracing import Tracer
from greetings.pipeline.latency import BACKEND_MAX_MS, Latency
from greetings.pipeline.orchestrator import GreetingPipeline

# Draw values for the fault-injection random source
LOCAL_OK = 0.5
LOCAL_FAIL = 0.95
ACCESS_DENIED_DRAW = 0.5
ARITHMETIC_DRAW = 0.1
ENGLISH_DRAW = 0.5
FRENCH_DRAW = 0.2
UNSUPPORTED_DRAW = 0.005


class ScriptedRandom:
    """Random source returning a fixed sequence of draws, then a default."""

    def __init__(self, draws: Iterable[float] = (), default: float = 0.5):
        self.draws: List[float] = list(draws)
        self.default = default
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if self.draws:
            return self.draws.pop(0)
        return self.default

    def script(self, *draws: float) -> None:
        self.draws.extend(draws)


@pytest.fixture
def span_exporter():
    """Collects every finished span."""
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def tracer(tracer_provider):
    return Tracer(tracer_provider)


@pytest.fixture
def metrics():
    return MetricsSink()


@pytest.fixture
def rng():
    return ScriptedRandom()


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, simulate_latency=False, json_logs=False)


@pytest.fixture
def make_pipeline(tracer, metrics, rng):
    """Factory for pipelines sharing the test tracer, metrics and random source."""

    def factory(**kwargs) -> GreetingPipeline:
        kwargs.setdefault("rng", rng)
        kwargs.setdefault("simulate_latency", False)
        return GreetingPipeline(tracer, metrics, **kwargs)

    return factory


@pytest.fixture
def pipeline(make_pipeline):
    """Pipeline with the backend call disabled."""
    return make_pipeline()


@pytest.fixture
def backend_metrics():
    """Counters of the backend service, separate from the front service's."""
    return MetricsSink()


@pytest.fixture
def endpoint(tracer, backend_metrics):
    return RemoteEndpoint(
        tracer,
        backend_metrics,
        latency=Latency(BACKEND_MAX_MS, enabled=False),
    )


@pytest.fixture
def backend_client(settings, endpoint):
    """TestClient for the backend service."""
    with TestClient(create_backend_app(settings, endpoint=endpoint)) as client:
        yield client


@pytest.fixture
def frontend_client(settings, pipeline):
    """TestClient for the front service (backend disabled)."""
    with TestClient(create_frontend_app(settings, pipeline=pipeline)) as client:
        yield client


@pytest.fixture
def wired_pipeline(make_pipeline, backend_client):
    """Pipeline calling the in-process backend service over its TestClient."""

    def factory(**kwargs) -> GreetingPipeline:
        backend = BackendClient("http://testserver", session=backend_client)
        return make_pipeline(backend=backend, **kwargs)

    return factory


def spans_by_name(exporter: InMemorySpanExporter):
    """Finished spans keyed by name (last one wins)."""
    return {span.name: span for span in exporter.get_finished_spans()}


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration a test installed."""
    yield
    structlog.reset_defaults()

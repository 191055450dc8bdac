"""
OpenTelemetry Instrumentation Setup

Initializes, once per process:
- the TracerProvider with service resource attributes
- the OTLP exporter (when a collector endpoint is configured)
- FastAPI auto-instrumentation (HTTP server spans)

Outbound calls to the backend are NOT auto-instrumented: the remote-call stage
injects its own span context into the request headers, so the backend span
hangs under that stage instead of under the inbound HTTP span.
"""

import os
from typing import Optional

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import (
    DEPLOYMENT_ENVIRONMENT,
    SERVICE_NAME,
    SERVICE_VERSION,
    Resource,
)
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from greetings import __version__
from greetings.config import Settings
from greetings.observability.logging_config import setup_logging

logger = structlog.get_logger(__name__)


def create_resource(service_name: str, environment: Optional[str] = None) -> Resource:
    """
    Creates an OpenTelemetry Resource with service metadata.

    Args:
        service_name: Unique identifier for this service (e.g., "greetings-frontend")
        environment: Deployment environment; falls back to $ENVIRONMENT

    Returns:
        OpenTelemetry Resource object
    """
    return Resource.create({
        SERVICE_NAME: service_name,
        SERVICE_VERSION: __version__,
        DEPLOYMENT_ENVIRONMENT: environment or os.getenv("ENVIRONMENT", "development"),
    })


def setup_tracing(
    service_name: str,
    otlp_endpoint: Optional[str] = None,
    environment: Optional[str] = None,
) -> TracerProvider:
    """
    Initializes distributed tracing and registers the global TracerProvider.

    BatchSpanProcessor buffers spans and exports them in the background, so an
    unreachable collector costs us traces, never requests.

    Args:
        service_name: Service identifier
        otlp_endpoint: OTel Collector gRPC endpoint; spans are not exported when None
        environment: Deployment environment resource attribute

    Returns:
        The configured TracerProvider
    """
    provider = TracerProvider(resource=create_resource(service_name, environment))

    if otlp_endpoint:
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        logger.info("tracing_initialized", service=service_name, otlp_endpoint=otlp_endpoint)
    else:
        logger.info("tracing_export_disabled", service=service_name)

    trace.set_tracer_provider(provider)
    return provider


def instrument_app(app: FastAPI) -> None:
    """Attach OpenTelemetry HTTP server spans to a FastAPI app."""
    FastAPIInstrumentor.instrument_app(app)


def initialize_observability(settings: Settings, service_name: str) -> TracerProvider:
    """
    One-line setup for logging and tracing.

    Args:
        settings: Service settings
        service_name: Unique service identifier

    Returns:
        The TracerProvider spans should be created with
    """
    setup_logging(
        level=settings.log_level,
        service_name=service_name,
        json_output=settings.json_logs,
    )
    provider = setup_tracing(service_name, settings.otlp_endpoint, settings.app_env)
    logger.info("observability_initialized", service=service_name)
    return provider

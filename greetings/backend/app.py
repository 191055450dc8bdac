"""
Backend service FastAPI application.

Endpoints:
- GET /backend?id=<int>   always 200, body "Success" or "Failed"
- GET /metrics            Prometheus scrape endpoint
- GET /health/live        liveness probe

Run with:
    uvicorn greetings.backend.app:create_app --factory --port 8081
"""

from typing import Optional

from fastapi import FastAPI, Query, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST

from greetings import __version__
from greetings.backend.endpoint import RemoteEndpoint
from greetings.config import Settings, get_settings
from greetings.observability.metrics import MetricsSink
from greetings.observability.tracing import Tracer
from greetings.pipeline.latency import BACKEND_MAX_MS, Latency


def create_app(
    settings: Optional[Settings] = None,
    endpoint: Optional[RemoteEndpoint] = None,
) -> FastAPI:
    """
    Build the backend service application.

    Args:
        settings: Service settings (defaults to the environment)
        endpoint: Pre-built handler; tests inject one wired to in-memory telemetry
    """
    settings = settings or get_settings()
    if endpoint is None:
        endpoint = RemoteEndpoint(
            Tracer(),
            MetricsSink(),
            latency=Latency(BACKEND_MAX_MS, enabled=settings.simulate_latency),
        )

    app = FastAPI(
        title="Greetings Backend",
        description="Backend service answering whether a greeting may be produced",
        version=__version__,
    )
    app.state.endpoint = endpoint

    # Sync handler: runs in the worker threadpool, one thread per request
    @app.get("/backend", response_class=PlainTextResponse)
    def backend(request: Request, greeting_id: int = Query(..., alias="id")) -> PlainTextResponse:
        body, status_code = endpoint.handle(greeting_id, carrier=request.headers)
        return PlainTextResponse(body, status_code=status_code)

    @app.get("/metrics")
    def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(content=endpoint.metrics.exposition(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health/live")
    def liveness() -> dict:
        return {"status": "alive"}

    return app

"""
Front service FastAPI application.

Endpoints:
- GET /greeting?name=<str>   200 {"id", "message"} or 500 {"id": 0, "message": "No more greetings!"}
- GET /metrics               Prometheus scrape endpoint
- GET /health/live           liveness probe

Run with:
    uvicorn greetings.frontend.app:create_app --factory --port 8080
"""

from typing import Optional

from fastapi import FastAPI, Query, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import BaseModel, Field

from greetings import __version__
from greetings.config import Settings, get_settings
from greetings.observability.metrics import MetricsSink
from greetings.observability.tracing import Tracer
from greetings.pipeline.orchestrator import GreetingPipeline
from greetings.types import DEFAULT_NAME, Greeting


class GreetingResponse(BaseModel):
    """Greeting returned to the caller."""
    id: int = Field(..., description="Request identity; 0 when no greeting could be produced")
    message: str

    @classmethod
    def from_greeting(cls, greeting: Greeting) -> "GreetingResponse":
        return cls(id=greeting.id, message=greeting.message)


def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[GreetingPipeline] = None,
) -> FastAPI:
    """
    Build the front service application.

    Args:
        settings: Service settings (defaults to the environment)
        pipeline: Pre-built pipeline; tests inject one with scripted fault draws
    """
    settings = settings or get_settings()
    if pipeline is None:
        pipeline = GreetingPipeline.from_settings(settings, Tracer(), MetricsSink())

    app = FastAPI(
        title="Greetings",
        description="Greeting service with traced, metered, fault-injected stages",
        version=__version__,
    )
    app.state.pipeline = pipeline

    # Sync handler: the pipeline blocks (simulated work, backend call)
    @app.get(
        "/greeting",
        response_model=GreetingResponse,
        responses={500: {"model": GreetingResponse}},
    )
    def greeting(name: str = Query(default=DEFAULT_NAME)) -> JSONResponse:
        result, status_code = pipeline.greet(name)
        return JSONResponse(
            status_code=status_code,
            content=GreetingResponse.from_greeting(result).model_dump(),
        )

    @app.get("/metrics")
    def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(content=pipeline.metrics.exposition(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health/live")
    def liveness() -> dict:
        return {"status": "alive", "backend_enabled": pipeline.backend_enabled}

    return app

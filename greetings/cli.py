"""CLI for the greeting services.

Starts the front service or the backend service with logging and tracing wired up.
"""

from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from greetings.backend.app import create_app as create_backend_app
from greetings.backend.endpoint import RemoteEndpoint
from greetings.config import Settings, get_settings
from greetings.frontend.app import create_app as create_frontend_app
from greetings.observability.instrumentation import initialize_observability, instrument_app
from greetings.observability.metrics import MetricsSink
from greetings.observability.tracing import Tracer
from greetings.pipeline.latency import BACKEND_MAX_MS, Latency
from greetings.pipeline.orchestrator import GreetingPipeline

app = typer.Typer(
    name="greetings",
    help="Greetings - traced, metered greeting services",
    add_completion=False,
)

console = Console()


def _apply_overrides(settings: Settings, verbose: bool, **overrides) -> Settings:
    update = {key: value for key, value in overrides.items() if value is not None}
    if verbose:
        update["log_level"] = "DEBUG"
    return settings.model_copy(update=update) if update else settings


@app.command()
def frontend(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Bind host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
    backend_enable: Optional[bool] = typer.Option(
        None,
        "--backend-enable/--no-backend-enable",
        help="Call the backend service on every request",
    ),
    backend_endpoint: Optional[str] = typer.Option(
        None,
        "--backend-endpoint",
        "-b",
        help="Base URL of the backend service",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
) -> None:
    """Run the front service (GET /greeting)."""
    settings = _apply_overrides(
        get_settings(),
        verbose,
        frontend_host=host,
        frontend_port=port,
        backend_enable=backend_enable,
        backend_endpoint=backend_endpoint.rstrip("/") if backend_endpoint else None,
    )
    provider = initialize_observability(settings, settings.frontend_service_name)
    pipeline = GreetingPipeline.from_settings(settings, Tracer(provider), MetricsSink())

    web_app = create_frontend_app(settings, pipeline=pipeline)
    instrument_app(web_app)

    console.print(
        f"[blue]Starting front service on[/blue] {settings.frontend_host}:{settings.frontend_port} "
        f"(backend {'enabled' if settings.backend_enable else 'disabled'})"
    )
    uvicorn.run(
        web_app,
        host=settings.frontend_host,
        port=settings.frontend_port,
        log_config=None,
    )


@app.command()
def backend(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Bind host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
) -> None:
    """Run the backend service (GET /backend)."""
    settings = _apply_overrides(get_settings(), verbose, backend_host=host, backend_port=port)
    provider = initialize_observability(settings, settings.backend_service_name)
    endpoint = RemoteEndpoint(
        Tracer(provider),
        MetricsSink(),
        latency=Latency(BACKEND_MAX_MS, enabled=settings.simulate_latency),
    )

    web_app = create_backend_app(settings, endpoint=endpoint)
    instrument_app(web_app)

    console.print(
        f"[blue]Starting backend service on[/blue] {settings.backend_host}:{settings.backend_port}"
    )
    uvicorn.run(
        web_app,
        host=settings.backend_host,
        port=settings.backend_port,
        log_config=None,
    )


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()

    table = Table(title="Greetings Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for name, value in settings.model_dump().items():
        table.add_row(name, str(value))

    console.print(table)


@app.callback(invoke_without_command=True)
def callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
) -> None:
    """Greetings - traced, metered greeting services."""
    if version:
        from greetings import __version__
        console.print(f"Greetings v{__version__}")
        raise typer.Exit()


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()

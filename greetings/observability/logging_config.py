"""
Structured logging configuration.

Uses structlog for event-style logging and python-json-logger to render each
record as one JSON line on stdout. Fields bound on a structlog logger (the
correlation context, trace ids) become top-level JSON keys:

    {"timestamp": "...", "level": "INFO", "logger": "greetings.pipeline.orchestrator",
     "message": "greetings_success", "greetingsId": "7", "greetingsName": "World",
     "greetingStatus": "SUCCESS", "greetingsLanguage": "english", "service": "greetings-frontend"}
"""
import logging
import sys
from typing import Any, Dict

import structlog
from pythonjsonlogger.json import JsonFormatter


def add_service_name(service_name: str) -> Any:
    """Build a processor that stamps ``service`` on every event."""

    def processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def setup_logging(
    level: str = "INFO",
    service_name: str = "greetings",
    json_output: bool = True,
) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        service_name: Service name included in every log line
        json_output: JSON lines when True, human readable console output otherwise
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_service_name(service_name),
    ]

    if json_output:
        # Event dict is handed to stdlib as `extra`; JsonFormatter renders it
        processors = shared_processors + [structlog.stdlib.render_to_log_kwargs]
        formatter: logging.Formatter = JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "logger",
            },
        )
    else:
        processors = shared_processors + [
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ]
        formatter = logging.Formatter("%(message)s")

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "logging_configured", log_level=level, json_output=json_output
    )


def get_logger(name: str, **context: Any) -> Any:
    """
    Get a structured logger, optionally pre-bound with context.

    Args:
        name: Logger name (typically __name__)
        **context: Fields attached to every event from this logger
    """
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger

"""
Backend greeting handler.

The business outcome is encoded in the body, not the status: every request
gets HTTP 200, with body ``"Success"`` or ``"Failed"``. Ids ending in 1
(1, 11, 21, ...) are always rejected, so the result is a pure function of the id.
"""

from typing import Mapping, Optional, Tuple

import structlog
from opentelemetry.trace import StatusCode

from greetings.observability.context import GREETINGS_ID, CorrelationContext
from greetings.observability.metrics import BACKEND_ERROR, BACKEND_TOTAL, MetricsSink
from greetings.observability.tracing import Tracer
from greetings.pipeline.latency import BACKEND_MAX_MS, Latency
from greetings.types import REJECTED_BODY, SUCCESS_BODY

logger = structlog.get_logger(__name__)

SPAN_NAME = "backend"
HTTP_OK = 200


def is_rejected(greeting_id: int) -> bool:
    """Ids whose decimal representation ends in 1 are rejected."""
    return greeting_id > 0 and greeting_id % 10 == 1


class RemoteEndpoint:
    """
    Instrumented handler behind ``GET /backend``.

    Args:
        tracer: Span factory
        metrics: Counter sink
        latency: Simulated processing cost (≤25ms by default)
    """

    def __init__(
        self,
        tracer: Tracer,
        metrics: MetricsSink,
        latency: Optional[Latency] = None,
    ):
        self.tracer = tracer
        self.metrics = metrics
        self.latency = latency or Latency(BACKEND_MAX_MS)

    def handle(
        self,
        greeting_id: int,
        carrier: Optional[Mapping[str, str]] = None,
    ) -> Tuple[str, int]:
        """
        Process one backend request.

        Args:
            greeting_id: The caller's request id
            carrier: Inbound headers carrying the caller's trace context

        Returns:
            (body, HTTP status); status is always 200
        """
        self.metrics.counter(BACKEND_TOTAL).increment()

        correlation = CorrelationContext()
        with correlation.scope():
            correlation.set(GREETINGS_ID, greeting_id)

            with self.tracer.start_span(SPAN_NAME, carrier=carrier) as span:
                span.set_attribute("greetingId", str(greeting_id))
                self.latency.pause()

                log = correlation.bind(logger).bind(**span.trace_context())
                if is_rejected(greeting_id):
                    log.warning("backend_bad_request")
                    self.metrics.counter(BACKEND_ERROR).increment()
                    span.set_status(StatusCode.ERROR, "Failed to process")
                    return REJECTED_BODY, HTTP_OK

                log.info("backend_success")
                span.set_status(StatusCode.OK)
                return SUCCESS_BODY, HTTP_OK

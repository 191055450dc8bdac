"""
Front service orchestration.

BUSINESS FLOW (one call to ``GreetingPipeline.greet``):
1. Assign a request id, open the correlation context and the root span,
   count the request
2. Run local work -> backend call -> language resolution, strictly in order
3. Map the result:
   - every stage succeeded            -> (Greeting, 200), root span OK
   - a recognized fault on any stage  -> (NO_GREETING, 500), root span ERROR
   - anything else                    -> propagates to the HTTP framework
4. Clear the correlation context and end the root span on every path

A backend ``Rejected`` outcome is classified here as ACCESS_DENIED; the remote
call stage itself only reports what the backend said.
"""

import itertools
import random
import threading
from typing import Optional, Sequence, Tuple

import structlog
from opentelemetry.trace import StatusCode

from greetings.config import Settings
from greetings.frontend.client import BackendClient
from greetings.observability.context import GREETINGS_ID, GREETINGS_NAME, CorrelationContext
from greetings.observability.metrics import GREETINGS_TOTAL, MetricsSink
from greetings.observability.tracing import Tracer
from greetings.pipeline.executor import RequestScope, Stage, StageExecutor
from greetings.pipeline.latency import LANGUAGE_MAX_MS, LOCAL_WORK_MAX_MS, Latency
from greetings.pipeline.stages import (
    FaultInjection,
    LanguageStage,
    LocalWorkStage,
    RemoteCallStage,
)
from greetings.types import (
    DEFAULT_NAME,
    NO_GREETING,
    Fault,
    FaultKind,
    Greeting,
    Outcome,
    Rejected,
    Success,
)

logger = structlog.get_logger(__name__)

ROOT_SPAN_NAME = "greeting"
BACKEND_REJECTED_MESSAGE = "Backend request failed"

HTTP_OK = 200
HTTP_INTERNAL_SERVER_ERROR = 500


class RequestIdSequence:
    """Thread-safe, monotonically increasing request ids."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


class GreetingPipeline:
    """
    The front service request pipeline.

    Args:
        tracer: Span factory for the per-request span tree
        metrics: Counter sink shared by all requests
        backend: Client for the backend service; None disables the remote call
        faults: Fault injection thresholds
        rng: Random source for fault draws (local work and language)
        simulate_latency: Sleep inside local stages to emulate processing cost
        first_request_id: Id given to the first request
    """

    def __init__(
        self,
        tracer: Tracer,
        metrics: MetricsSink,
        backend: Optional[BackendClient] = None,
        faults: Optional[FaultInjection] = None,
        rng: Optional[random.Random] = None,
        simulate_latency: bool = True,
        first_request_id: int = 1,
    ):
        self.tracer = tracer
        self.metrics = metrics
        self.executor = StageExecutor(metrics)

        faults = faults or FaultInjection()
        rng = rng or random.Random()
        self.stages: Sequence[Stage] = (
            LocalWorkStage(rng, faults, Latency(LOCAL_WORK_MAX_MS, enabled=simulate_latency)),
            RemoteCallStage(backend),
            LanguageStage(rng, faults, Latency(LANGUAGE_MAX_MS, enabled=simulate_latency)),
        )
        self._ids = RequestIdSequence(first_request_id)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        tracer: Tracer,
        metrics: MetricsSink,
    ) -> "GreetingPipeline":
        backend = None
        if settings.backend_enable:
            backend = BackendClient(
                settings.backend_endpoint,
                timeout=settings.backend_timeout_seconds,
            )
        faults = FaultInjection(
            failure_threshold=settings.failure_threshold,
            access_denied_threshold=settings.access_denied_threshold,
            unsupported_language_threshold=settings.unsupported_language_threshold,
            english_threshold=settings.english_threshold,
        )
        return cls(
            tracer,
            metrics,
            backend=backend,
            faults=faults,
            simulate_latency=settings.simulate_latency,
        )

    @property
    def backend_enabled(self) -> bool:
        return any(isinstance(s, RemoteCallStage) and s.enabled for s in self.stages)

    def greet(self, name: Optional[str] = None) -> Tuple[Greeting, int]:
        """
        Handle one greeting request.

        Args:
            name: Who to greet; empty or missing means "World"

        Returns:
            (greeting, HTTP status) - either (Greeting, 200) or (NO_GREETING, 500)
        """
        name = name or DEFAULT_NAME
        request_id = self._ids.next()

        correlation = CorrelationContext()
        with correlation.scope():
            correlation.set(GREETINGS_ID, request_id)
            correlation.set(GREETINGS_NAME, name)
            self.metrics.counter(GREETINGS_TOTAL, name=name).increment()

            with self.tracer.start_span(ROOT_SPAN_NAME) as root:
                root.set_attribute("greetingId", str(request_id))
                scope = RequestScope(
                    request_id=request_id,
                    name=name,
                    correlation=correlation,
                    span=root,
                )
                outcome = self._run_stages(scope)
                return self._respond(scope, outcome)

    def _run_stages(self, scope: RequestScope) -> Outcome:
        outcome: Outcome = Success()
        for stage in self.stages:
            outcome = self._classify(self.executor.execute(stage, scope).outcome)
            if isinstance(outcome, Fault):
                break
        return outcome

    @staticmethod
    def _classify(outcome: Outcome) -> Outcome:
        if isinstance(outcome, Rejected):
            return Fault(kind=FaultKind.ACCESS_DENIED, message=BACKEND_REJECTED_MESSAGE)
        return outcome

    def _respond(self, scope: RequestScope, outcome: Outcome) -> Tuple[Greeting, int]:
        log = scope.correlation.bind(logger).bind(**scope.span.trace_context())

        if isinstance(outcome, Fault):
            scope.span.set_status(StatusCode.ERROR, outcome.message)
            log.error(
                "greetings_failed",
                fault=outcome.kind.value,
                error=outcome.message,
                exc_info=outcome.cause,
            )
            return NO_GREETING, HTTP_INTERNAL_SERVER_ERROR

        scope.span.set_status(StatusCode.OK)
        log.info("greetings_success")
        return outcome.payload, HTTP_OK

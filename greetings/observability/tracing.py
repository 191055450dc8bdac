"""
Explicit span tree on top of OpenTelemetry.

HOW IT WORKS:
1. The request handler asks the ``Tracer`` for a root span
2. Each stage calls ``parent.start_child(name)``; the parent is passed in as an
   argument, never looked up from the ambient "current span"
3. Status is set once and is final; ``end()`` closes the span and hands the
   underlying OTel span to the exporters

Every call is mirrored into an OpenTelemetry SDK span, so whatever exporter the
``TracerProvider`` carries (OTLP in production, in-memory in tests) sees the
same tree this module enforces.

LIFECYCLE RULES:
- The first ``set_status`` wins; later calls before ``end()`` are ignored
- ``set_status`` / ``set_attribute`` after ``end()`` raise ``SpanStateError``
- A parent cannot end while one of its children is still open
- ``end()`` is idempotent
"""

import weakref
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Tuple

import structlog
from opentelemetry import propagate, trace
from opentelemetry.trace import Status, StatusCode

from greetings import __version__
from greetings.errors import SpanStateError

logger = structlog.get_logger(__name__)

INSTRUMENTATION_NAME = "greetings"


class Span:
    """
    A named, time-bounded unit of traced work.

    Spans are created by ``Tracer.start_span`` (roots) or ``Span.start_child``;
    do not instantiate directly.
    """

    def __init__(
        self,
        name: str,
        otel_span: trace.Span,
        tracer: "Tracer",
        parent: Optional["Span"] = None,
    ):
        self.name = name
        self._otel_span = otel_span
        self._tracer = tracer
        # Weak: the parent owns its children, not the other way around
        self._parent_ref = weakref.ref(parent) if parent is not None else None
        self._children: List["Span"] = []
        self._attributes: Dict[str, Any] = {}
        self._status = StatusCode.UNSET
        self._status_message: Optional[str] = None
        self._ended = False

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def parent(self) -> Optional["Span"]:
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def children(self) -> Tuple["Span", ...]:
        return tuple(self._children)

    @property
    def attributes(self) -> Dict[str, Any]:
        return dict(self._attributes)

    @property
    def status(self) -> StatusCode:
        return self._status

    @property
    def status_message(self) -> Optional[str]:
        return self._status_message

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def trace_id(self) -> str:
        return format(self._otel_span.get_span_context().trace_id, "032x")

    @property
    def span_id(self) -> str:
        return format(self._otel_span.get_span_context().span_id, "016x")

    def trace_context(self) -> Dict[str, str]:
        """trace_id/span_id pair for log correlation."""
        return {"trace_id": self.trace_id, "span_id": self.span_id}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def start_child(self, name: str) -> "Span":
        if self._ended:
            raise SpanStateError(f"Cannot start child {name!r}: span {self.name!r} has ended")
        child = self._tracer._start(name, parent=self)
        self._children.append(child)
        return child

    def set_attribute(self, key: str, value: Any) -> None:
        if self._ended:
            raise SpanStateError(f"Cannot set attribute {key!r}: span {self.name!r} has ended")
        self._attributes[key] = value
        self._otel_span.set_attribute(key, value)

    def set_status(self, code: StatusCode, message: Optional[str] = None) -> bool:
        """
        Set the terminal status of this span.

        Args:
            code: ``StatusCode.OK`` or ``StatusCode.ERROR``
            message: Description, kept for ERROR only (OTel drops it for OK)

        Returns:
            True if the status was applied, False if a status was already set

        Raises:
            SpanStateError: If the span has already ended
        """
        if code is StatusCode.UNSET:
            raise ValueError("UNSET is not a terminal status")
        if self._ended:
            raise SpanStateError(
                f"Cannot set status {code.name} on span {self.name!r}: span has ended"
            )
        if self._status is not StatusCode.UNSET:
            logger.debug(
                "span_status_ignored",
                span=self.name,
                status=self._status.name,
                ignored_status=code.name,
            )
            return False

        self._status = code
        self._status_message = message
        if code is StatusCode.ERROR:
            self._otel_span.set_status(Status(code, message))
        else:
            self._otel_span.set_status(Status(code))
        return True

    def record_exception(self, exc: BaseException) -> None:
        if not self._ended:
            self._otel_span.record_exception(exc)

    def end(self) -> None:
        if self._ended:
            return
        open_children = [child.name for child in self._children if not child.ended]
        if open_children:
            raise SpanStateError(
                f"Cannot end span {self.name!r} before its children: {open_children}"
            )
        self._ended = True
        self._otel_span.end()

    def inject(self, carrier: MutableMapping[str, str]) -> MutableMapping[str, str]:
        """Write this span's context (W3C traceparent) into outbound headers."""
        propagate.inject(carrier, context=trace.set_span_in_context(self._otel_span))
        return carrier

    # ------------------------------------------------------------------
    # Context manager: guaranteed end on every exit path
    # ------------------------------------------------------------------

    def __enter__(self) -> "Span":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None and not self._ended:
            self.record_exception(exc)
            if self._status is StatusCode.UNSET:
                self.set_status(StatusCode.ERROR, str(exc))
        self.end()
        return False

    def __repr__(self) -> str:
        return f"Span(name={self.name!r}, status={self._status.name}, ended={self._ended})"


class Tracer:
    """
    Factory for root spans.

    Args:
        tracer_provider: OTel provider to create spans with (defaults to the global one)
    """

    def __init__(self, tracer_provider: Optional[trace.TracerProvider] = None):
        provider = tracer_provider or trace.get_tracer_provider()
        self._otel_tracer = provider.get_tracer(INSTRUMENTATION_NAME, __version__)

    def start_span(self, name: str, carrier: Optional[Mapping[str, str]] = None) -> Span:
        """
        Start a root span for one request.

        Args:
            name: Span name
            carrier: Inbound headers; a W3C ``traceparent`` in them makes this span a
                child of the remote caller. An active framework server span (FastAPI
                instrumentation) takes precedence, it already continues that caller.
        """
        context = None
        if carrier is not None and not trace.get_current_span().get_span_context().is_valid:
            context = propagate.extract(carrier)
        otel_span = self._otel_tracer.start_span(name, context=context)
        return Span(name, otel_span, self)

    def _start(self, name: str, parent: Span) -> Span:
        context = trace.set_span_in_context(parent._otel_span)
        otel_span = self._otel_tracer.start_span(name, context=context)
        return Span(name, otel_span, self, parent=parent)

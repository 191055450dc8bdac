"""
Exception hierarchy for the greeting services.

Stage code raises ``StageFault`` subclasses; the stage executor turns them into
``Fault`` outcomes so the orchestrator can dispatch on ``FaultKind`` instead of
catching exception types. Anything that is not a ``StageFault`` is an
unrecognized failure and propagates untouched.
"""

from typing import Optional

from greetings.types import FaultKind


class GreetingsError(Exception):
    """Base exception for all greeting service errors."""


class SpanStateError(GreetingsError):
    """Raised when a span is used outside its lifecycle (after end, out of nesting order)."""


class StageFault(GreetingsError):
    """
    Base class for classified stage failures.

    Args:
        message: Human readable failure message (becomes the span status message)
        cause: Underlying exception, if the fault wraps one
    """

    kind: FaultKind

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class AccessDeniedFault(StageFault):
    kind = FaultKind.ACCESS_DENIED


class ArithmeticFault(StageFault):
    kind = FaultKind.ARITHMETIC


class UnsupportedLanguageFault(StageFault):
    kind = FaultKind.UNSUPPORTED_LANGUAGE


class ResourceAccessFault(StageFault):
    kind = FaultKind.RESOURCE_ACCESS

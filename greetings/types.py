"""Core types and data structures for the greeting pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


DEFAULT_NAME = "World"

# Backend response bodies; the business outcome travels in the body, not the status
SUCCESS_BODY = "Success"
REJECTED_BODY = "Failed"


class FaultKind(Enum):
    """Failure causes the pipeline knows how to recover from."""
    ACCESS_DENIED = "access_denied"  # local exhaustion or backend rejection
    ARITHMETIC = "arithmetic"
    UNSUPPORTED_LANGUAGE = "unsupported_language"
    RESOURCE_ACCESS = "resource_access"  # backend transport failure


class StageState(Enum):
    """Lifecycle of a single stage execution."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StageState.SUCCEEDED, StageState.FAILED)


@dataclass(frozen=True)
class Greeting:
    """Payload returned to the caller of the front service."""
    id: int
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "message": self.message}


# Returned instead of a greeting whenever a recognized fault occurs
NO_GREETING = Greeting(id=0, message="No more greetings!")


# ============================================================================
# Stage outcomes
# ============================================================================

@dataclass(frozen=True)
class Success:
    """Stage finished; ``payload`` is whatever the stage produced."""
    payload: Any = None


@dataclass(frozen=True)
class Rejected:
    """Transport succeeded but the peer refused the request."""
    reason_code: str


@dataclass(frozen=True)
class Fault:
    """Stage raised a classified fault."""
    kind: FaultKind
    message: str = ""
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)


Outcome = Union[Success, Rejected, Fault]


@dataclass
class MetricEvent:
    """A single counter increment: metric name plus its label set."""
    name: str
    labels: Dict[str, str] = field(default_factory=dict)

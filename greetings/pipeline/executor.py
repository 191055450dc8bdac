"""
Stage execution: one span, one outcome, guaranteed cleanup.

STATE MACHINE:
    PENDING -> RUNNING -> SUCCEEDED
                       -> FAILED

- PENDING -> RUNNING: child span opened under the caller's span, stage
  correlation fields set (``Stage.begin``)
- RUNNING -> SUCCEEDED: ``Stage.run`` returned; span OK
- RUNNING -> FAILED: ``Stage.run`` raised a ``StageFault``; the stage's error
  counter is incremented once, its failure field is recorded, span ERROR

Whatever happens, ``Stage.cleanup`` runs, a final status is ensured and the
span ends before ``execute`` returns or raises. Exceptions that are not
``StageFault``s are not classified: they propagate after cleanup.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

import structlog
from opentelemetry.trace import StatusCode

from greetings.errors import StageFault
from greetings.observability.context import CorrelationContext
from greetings.observability.metrics import MetricsSink
from greetings.observability.tracing import Span
from greetings.types import Fault, Outcome, Rejected, StageState, Success

logger = structlog.get_logger(__name__)


@dataclass
class RequestScope:
    """
    What a stage may touch while it runs.

    ``span`` is the caller's span when handed to the executor and the stage's own
    span inside the stage hooks. Stages must not keep a reference past their run.
    """
    request_id: int
    name: str
    correlation: CorrelationContext
    span: Span


class Stage(ABC):
    """
    Base class for a pipeline stage.

    Subclasses implement ``run`` and may override the hooks. Class attributes
    describe the failure bookkeeping the executor does on the stage's behalf.
    """

    name: str = "stage"
    # Counter incremented once when the stage fails (None: no counter)
    error_counter: Optional[str] = None
    # Correlation field and value recorded when the stage fails
    failure_field: Optional[str] = None
    failure_value: Optional[str] = None
    # Span status message on failure (None: the fault's own message)
    failure_status: Optional[str] = None

    def begin(self, scope: RequestScope) -> None:
        """Set stage correlation fields / span attributes before work starts."""

    @abstractmethod
    def run(self, scope: RequestScope) -> Any:
        """Do the work. Return a payload, ``Success`` or ``Rejected``; raise ``StageFault`` on failure."""

    def failed(self, scope: RequestScope, fault: StageFault) -> None:
        """Stage-specific bookkeeping after a classified failure."""

    def cleanup(self, scope: RequestScope) -> None:
        """Runs on every exit path, before the span ends."""

    def metric_labels(self, scope: RequestScope) -> Dict[str, str]:
        return {}


@dataclass
class StageExecution:
    """Record of one stage run."""
    stage: str
    state: StageState = StageState.PENDING
    outcome: Optional[Outcome] = None
    span: Optional[Span] = None


class StageExecutor:
    """Runs stages against a request scope and classifies their outcome."""

    def __init__(self, metrics: MetricsSink):
        self.metrics = metrics

    def execute(self, stage: Stage, scope: RequestScope) -> StageExecution:
        execution = StageExecution(stage=stage.name)

        span = scope.span.start_child(stage.name)
        stage_scope = replace(scope, span=span)
        execution.span = span
        execution.state = StageState.RUNNING

        try:
            stage.begin(stage_scope)
            result = stage.run(stage_scope)
        except StageFault as fault:
            execution.state = StageState.FAILED
            if stage.error_counter:
                self.metrics.counter(stage.error_counter, **stage.metric_labels(stage_scope)).increment()
            if stage.failure_field:
                scope.correlation.set(stage.failure_field, stage.failure_value)
            span.record_exception(fault)
            span.set_status(StatusCode.ERROR, stage.failure_status or fault.message)
            stage.failed(stage_scope, fault)
            execution.outcome = Fault(kind=fault.kind, message=fault.message, cause=fault)
            logger.debug("stage_failed", stage=stage.name, fault=fault.kind.value)
        except Exception as exc:
            execution.state = StageState.FAILED
            span.record_exception(exc)
            span.set_status(StatusCode.ERROR, str(exc))
            raise
        else:
            execution.state = StageState.SUCCEEDED
            if isinstance(result, (Success, Rejected)):
                execution.outcome = result
            else:
                execution.outcome = Success(result)
        finally:
            stage.cleanup(stage_scope)
            # No-op when the failure path already set ERROR
            span.set_status(StatusCode.OK)
            span.end()

        return execution

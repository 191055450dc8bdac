"""Front service request pipeline: stage execution and orchestration."""

from greetings.pipeline.executor import RequestScope, Stage, StageExecution, StageExecutor
from greetings.pipeline.orchestrator import GreetingPipeline

__all__ = ["GreetingPipeline", "RequestScope", "Stage", "StageExecution", "StageExecutor"]

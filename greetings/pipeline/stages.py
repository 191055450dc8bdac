"""
The three stages of the front service pipeline.

1. LocalWorkStage ("do_greetings"): simulated local work, fails ~6% of the time
2. RemoteCallStage ("call_backend"): asks the backend service about this request
3. LanguageStage ("hello_greetings"): picks a language and builds the greeting

Fault draws come from an injectable random source so tests can force any path.
"""

import random
from dataclasses import dataclass
from typing import Dict, Optional

from greetings.errors import AccessDeniedFault, ArithmeticFault, UnsupportedLanguageFault
from greetings.frontend.client import BackendClient
from greetings.observability.context import (
    GREETING_STATUS,
    GREETINGS_LANGUAGE,
    STATUS_OUT_OF_GREETINGS,
    STATUS_SUCCESS,
)
from greetings.observability.metrics import GREETINGS_ERROR
from greetings.pipeline.executor import RequestScope, Stage
from greetings.pipeline.latency import LANGUAGE_MAX_MS, LOCAL_WORK_MAX_MS, Latency
from greetings.types import REJECTED_BODY, Greeting, Rejected, Success

ENGLISH_TEMPLATE = "Hello, {}!"
# Spelling is part of the observed response contract
FRENCH_TEMPLATE = "Bonjure, {}!"

ENGLISH = "english"
FRENCH = "france"
UNSUPPORTED = "chines"


@dataclass(frozen=True)
class FaultInjection:
    """
    Thresholds for the random draws (each draw is uniform in [0, 1)).

    Attributes:
        failure_threshold: Local work fails when its draw is above this (~6%)
        access_denied_threshold: A failing second draw above this is access
            denied (~70%), otherwise arithmetic (~30%)
        unsupported_language_threshold: Language draws below this fail (~1%)
        english_threshold: Language draws above this are english, the rest france
    """
    failure_threshold: float = 0.94
    access_denied_threshold: float = 0.30
    unsupported_language_threshold: float = 0.01
    english_threshold: float = 0.30


class LocalWorkStage(Stage):
    """Simulated local work that occasionally runs out of greetings."""

    name = "do_greetings"
    error_counter = GREETINGS_ERROR
    failure_field = GREETING_STATUS
    failure_value = STATUS_OUT_OF_GREETINGS
    failure_status = "No greetings available"

    def __init__(
        self,
        rng: random.Random,
        faults: FaultInjection,
        latency: Optional[Latency] = None,
    ):
        self.rng = rng
        self.faults = faults
        self.latency = latency or Latency(LOCAL_WORK_MAX_MS)

    def metric_labels(self, scope: RequestScope) -> Dict[str, str]:
        return {"name": scope.name}

    def run(self, scope: RequestScope) -> None:
        self.latency.pause()
        scope.span.set_attribute("greetingsName", scope.name)

        if self.rng.random() > self.faults.failure_threshold:
            if self.rng.random() > self.faults.access_denied_threshold:
                raise AccessDeniedFault("No greetings available")
            raise ArithmeticFault("No greetings calculated")

    def failed(self, scope: RequestScope, fault) -> None:
        scope.span.set_attribute("greetingsStatus", STATUS_OUT_OF_GREETINGS)

    def cleanup(self, scope: RequestScope) -> None:
        # Unconditional, also after a failure: the status field always ends as SUCCESS
        scope.correlation.set(GREETING_STATUS, STATUS_SUCCESS)
        scope.span.set_attribute("greetingsStatus", STATUS_SUCCESS)


class RemoteCallStage(Stage):
    """
    Calls the backend with the request id.

    A ``"Failed"`` body comes back as ``Rejected``; turning that into a fault is
    left to the orchestrator. With no client configured the stage is a no-op.
    """

    name = "call_backend"

    def __init__(self, client: Optional[BackendClient] = None):
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def run(self, scope: RequestScope):
        scope.span.set_attribute("backendEnabled", self.enabled)
        if self.client is None:
            return Success()

        body = self.client.fetch(scope.request_id, span=scope.span)
        scope.span.set_attribute("backendResponse", body)
        if body == REJECTED_BODY:
            return Rejected(reason_code=body)
        return Success(body)


class LanguageStage(Stage):
    """Resolves the greeting language and builds the greeting."""

    name = "hello_greetings"

    def __init__(
        self,
        rng: random.Random,
        faults: FaultInjection,
        latency: Optional[Latency] = None,
    ):
        self.rng = rng
        self.faults = faults
        self.latency = latency or Latency(LANGUAGE_MAX_MS)

    def run(self, scope: RequestScope) -> Greeting:
        self.latency.pause()

        draw = self.rng.random()
        if draw < self.faults.unsupported_language_threshold:
            self._resolve(scope, UNSUPPORTED)
            raise UnsupportedLanguageFault("Language not supported")
        if draw > self.faults.english_threshold:
            self._resolve(scope, ENGLISH)
            return Greeting(id=scope.request_id, message=ENGLISH_TEMPLATE.format(scope.name))

        self._resolve(scope, FRENCH)
        return Greeting(id=scope.request_id, message=FRENCH_TEMPLATE.format(scope.name))

    @staticmethod
    def _resolve(scope: RequestScope, language: str) -> None:
        scope.correlation.set(GREETINGS_LANGUAGE, language)
        scope.span.set_attribute(GREETINGS_LANGUAGE, language)

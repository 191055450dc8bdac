"""Simulated processing cost for pipeline stages and the backend handler."""

import random
import time
from typing import Callable, Optional

# Upper bounds in milliseconds
LOCAL_WORK_MAX_MS = 100
LANGUAGE_MAX_MS = 50
BACKEND_MAX_MS = 25


class Latency:
    """
    Blocks the calling thread for a pseudo-random duration in ``[0, max_ms)``.

    Args:
        max_ms: Upper bound of the delay in milliseconds
        enabled: When False, ``pause()`` returns immediately (tests)
        rng: Random source for the delay, separate from any fault-injection draws
        sleep: Sleep function, seconds
    """

    def __init__(
        self,
        max_ms: float,
        enabled: bool = True,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_ms = max_ms
        self.enabled = enabled
        self._rng = rng or random.Random()
        self._sleep = sleep

    def pause(self) -> float:
        """Sleep and return the delay in milliseconds."""
        if not self.enabled or self.max_ms <= 0:
            return 0.0
        delay_ms = float(int(self._rng.random() * self.max_ms))
        self._sleep(delay_ms / 1000.0)
        return delay_ms

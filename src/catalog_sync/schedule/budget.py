from __future__ import annotations

import time
from typing import Callable


class RunBudget:
    """Wall-clock ceiling for one invocation, measured from construction."""

    def __init__(self, ceiling_s: float = 58 * 60, clock: Callable[[], float] = time.monotonic):
        self.ceiling_s = ceiling_s
        self._clock = clock
        self._started = clock()

    @classmethod
    def minutes(cls, ceiling_min: float, clock: Callable[[], float] = time.monotonic) -> "RunBudget":
        return cls(ceiling_min * 60.0, clock)

    def elapsed_s(self) -> float:
        return self._clock() - self._started

    def remaining_s(self) -> float:
        return max(0.0, self.ceiling_s - self.elapsed_s())

    def has_time_remaining(self) -> bool:
        return self.elapsed_s() < self.ceiling_s

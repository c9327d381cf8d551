from __future__ import annotations

import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    """How a failed call should be treated by a retry loop."""

    PERMANENT = "PERMANENT"
    TRANSIENT = "TRANSIENT"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for bounded retry behavior."""

    max_retries: int = 2
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    jitter_s: float = 0.3
    retry_statuses: tuple[int, ...] = (429, 500, 502, 503, 504)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt_index: int) -> float:
        """Delay before the retry that follows attempt `attempt_index` (0-based)."""
        delay = self.base_delay_s * (self.backoff_factor**attempt_index)
        if self.jitter_s > 0:
            delay += random.uniform(0, self.jitter_s)
        return delay


def fixed_policy(max_retries: int, delay_s: float, retry_statuses: tuple[int, ...] = ()) -> RetryPolicy:
    """Retry policy with a constant delay and no jitter."""
    return RetryPolicy(
        max_retries=max_retries,
        base_delay_s=delay_s,
        backoff_factor=1.0,
        jitter_s=0.0,
        retry_statuses=retry_statuses,
    )


class RetriesExhausted(Exception):
    """Every allowed attempt failed transiently."""

    def __init__(self, attempts: int, last_exc: BaseException):
        super().__init__(f"Failed after {attempts} attempts: {last_exc}")
        self.attempts = attempts
        self.last_exc = last_exc


class PacingDelay:
    """Uniform random pause between batches."""

    def __init__(
        self,
        min_s: float,
        max_s: float,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        if min_s < 0 or max_s < min_s:
            raise ValueError("pacing bounds must satisfy 0 <= min_s <= max_s")
        self.min_s = min_s
        self.max_s = max_s
        self._sleep = sleep
        self._rng = rng or random.Random()

    def sleep(self) -> float:
        """Sleep for a random delay and return it."""
        delay = self._rng.uniform(self.min_s, self.max_s)
        if delay > 0:
            self._sleep(delay)
        return delay


def backoff_sleep(policy: RetryPolicy, attempt_index: int, sleep: Callable[[float], None] = time.sleep) -> None:
    """Sleep for the policy's delay after a failed attempt."""
    delay = policy.delay_for(attempt_index)
    if delay > 0:
        sleep(delay)


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    classify: Callable[[BaseException], FailureKind],
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
) -> T:
    """
    Call `fn` until it succeeds or fails for good.

    PERMANENT and UNKNOWN failures are re-raised at once. TRANSIENT failures
    are retried up to `policy.max_retries` times, after which
    RetriesExhausted is raised.
    """
    for attempt in range(policy.max_attempts):
        try:
            return fn()
        except Exception as exc:
            if classify(exc) is not FailureKind.TRANSIENT:
                raise
            if attempt >= policy.max_retries:
                raise RetriesExhausted(attempt + 1, exc) from exc
            if on_retry:
                on_retry(attempt + 1, exc)
            backoff_sleep(policy, attempt, sleep)

    # max_attempts is always >= 1
    raise RuntimeError("retry loop exited unexpectedly")

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Outcome(Generic[T, R]):
    """Result of one fanned-out call: either `value` or `error` is set."""

    item: T
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _capture(fn: Callable[[T], R], item: T) -> Outcome[T, R]:
    try:
        return Outcome(item=item, value=fn(item))
    except Exception as exc:
        return Outcome(item=item, error=exc)


def fan_out(fn: Callable[[T], R], items: Sequence[T], max_workers: Optional[int] = None) -> List[Outcome[T, R]]:
    """
    Call `fn` on every item concurrently and wait for all of them.

    Each call's exception is captured in its own Outcome, so one failure never
    cancels or hides its siblings. Results keep the order of `items`.
    """
    if not items:
        return []
    if len(items) == 1:
        return [_capture(fn, items[0])]

    workers = max(1, min(len(items), max_workers or len(items)))
    with ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(_capture, fn, item) for item in items]
        return [f.result() for f in futures]

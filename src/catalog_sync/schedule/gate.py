from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence, Tuple

from catalog_sync.core.models import Progress
from catalog_sync.utils.logging import get_logger
from catalog_sync.utils.time import period_key


@dataclass(frozen=True)
class GateDecision:
    """Whether a run may start, and why not when it may not."""

    allowed: bool
    reason: str = ""
    reset: bool = False


class ScheduleGate:
    """
    Decides whether a run may start.

    A new period (calendar month) resets the checkpoint first. Runs are then
    refused outside the day-of-month windows, when the allow flag is off, or
    once the per-period run cap is reached.
    """

    def __init__(self, window_days: Sequence[Tuple[int, int]] = ((1, 3), (24, 26)), runs_per_period: int = 33):
        for start, end in window_days:
            if not 1 <= start <= end <= 31:
                raise ValueError(f"Invalid day window: {start}-{end}")
        self.window_days = tuple(tuple(w) for w in window_days)
        self.runs_per_period = runs_per_period
        self.log = get_logger("catalog_sync.schedule")

    def in_window(self, now: datetime) -> bool:
        if not self.window_days:
            return True
        return any(start <= now.day <= end for start, end in self.window_days)

    def check(self, now: datetime, progress: Progress) -> GateDecision:
        reset = False
        current = period_key(now)
        if progress.period_key != current:
            self.log.info("Period rolled over (%s -> %s); resetting progress", progress.period_key or "-", current)
            progress.reset(current)
            reset = True

        if not self.in_window(now):
            return GateDecision(False, "outside_window", reset)
        if not progress.allowed_to_run:
            return GateDecision(False, "not_allowed", reset)
        if progress.runs_this_period >= self.runs_per_period:
            return GateDecision(False, "quota_reached", reset)
        return GateDecision(True, "", reset)

    def permitted(self, now: datetime, progress: Progress) -> bool:
        return self.check(now, progress).allowed

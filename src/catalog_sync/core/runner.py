from __future__ import annotations

import time
from datetime import datetime
from typing import Callable, Optional, Sequence

from catalog_sync.core.engine import SyncEngine
from catalog_sync.core.models import RunOutcome
from catalog_sync.schedule.budget import RunBudget
from catalog_sync.schedule.gate import ScheduleGate
from catalog_sync.state.base import CandidateSource, ProgressStore
from catalog_sync.transform.dedupe import DedupeStrategy, ExternalIdDedupeStrategy
from catalog_sync.utils.logging import get_logger
from catalog_sync.utils.time import utc_now


class SyncRunner:
    """One externally triggered invocation: gate, load, drive, release."""

    def __init__(
        self,
        engine: SyncEngine,
        progress_store: ProgressStore,
        candidates: CandidateSource,
        gate: ScheduleGate,
        budget_minutes: float = 58.0,
        deduper: Optional[DedupeStrategy] = None,
        closeables: Sequence[object] = (),
        clock: Callable[[], datetime] = utc_now,
        budget_clock: Callable[[], float] = time.monotonic,
    ):
        self.engine = engine
        self.progress_store = progress_store
        self.candidates = candidates
        self.gate = gate
        self.budget_minutes = budget_minutes
        self.deduper = deduper or ExternalIdDedupeStrategy()
        self.closeables = list(closeables)
        self.clock = clock
        self.budget_clock = budget_clock
        self.log = get_logger("catalog_sync.runner")

    def run_once(self, now: Optional[datetime] = None) -> Optional[RunOutcome]:
        """
        Run if the gate allows it.

        Returns None when the run is refused. Resources listed in `closeables`
        are closed on every exit path.
        """
        now = now or self.clock()
        try:
            progress = self.progress_store.load()
            decision = self.gate.check(now, progress)
            if decision.reset:
                self.progress_store.save(progress)
            if not decision.allowed:
                self.log.info("Run not permitted: %s", decision.reason)
                return None

            budget = RunBudget.minutes(self.budget_minutes, self.budget_clock)
            candidates = self.deduper.dedupe(self.candidates.list_candidates())
            return self.engine.run(candidates, progress, budget)
        finally:
            self._cleanup()

    def _cleanup(self) -> None:
        for resource in self.closeables:
            close = getattr(resource, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as e:
                self.log.warning("Error closing %s: %s", type(resource).__name__, e)

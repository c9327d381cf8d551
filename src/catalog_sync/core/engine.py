from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from catalog_sync.core.errors import (
    EnrichmentPermanent,
    EnrichmentTransient,
    ItemFetchNotFound,
    ItemMalformed,
    StorageFailure,
)
from catalog_sync.core.models import (
    Candidate,
    Decision,
    Progress,
    RemoteRecord,
    RunOutcome,
    RunStats,
    StoredRecord,
)
from catalog_sync.core.report import SyncReport
from catalog_sync.enrich.comments import CommentsEnricher
from catalog_sync.enrich.size import SizeEnricher, resolve_size
from catalog_sync.fetch.fanout import fan_out
from catalog_sync.fetch.strategies import MetadataProvider
from catalog_sync.http.policies import PacingDelay
from catalog_sync.schedule.budget import RunBudget
from catalog_sync.sinks.base import AuditSink
from catalog_sync.state.base import CatalogStore, ProgressStore
from catalog_sync.transform.diff import classify
from catalog_sync.transform.normalizers import Projector, RecordProjector
from catalog_sync.transform.validators import IDENTITY_FIELDS, RequiredFieldsValidator, Validator
from catalog_sync.utils.logging import get_logger
from catalog_sync.utils.time import utc_now, utc_now_iso


@dataclass
class _Planned:
    """What the commit step has to do for one batch item."""

    candidate: Candidate
    removed: bool = False
    remote: Optional[RemoteRecord] = None
    existing: Optional[StoredRecord] = None
    decision: Optional[Decision] = None
    size: Optional[str] = None
    size_error: Optional[BaseException] = None
    comments: Optional[List[Dict[str, Any]]] = None


class SyncEngine:
    """
    Drives one invocation over the candidate list in small batches.

    Each batch is fetched concurrently, classified against the catalog,
    enriched, written and checkpointed before the next one starts. The run
    stops at the end of the list or when the budget runs out between batches.
    """

    def __init__(
        self,
        metadata: MetadataProvider,
        size_enricher: SizeEnricher,
        store: CatalogStore,
        progress_store: ProgressStore,
        audit_sink: AuditSink,
        comments: Optional[CommentsEnricher] = None,
        projector: Optional[Projector] = None,
        validator: Optional[Validator] = None,
        pacing: Optional[PacingDelay] = None,
        batch_size: int = 2,
        hold_after_pass: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            metadata: Remote metadata source.
            size_enricher: Bounded-retry size fetcher.
            store: Catalog store (primary + backup collections, candidates).
            progress_store: Durable checkpoint backend.
            audit_sink: Destination of the end-of-pass audit record.
            comments: Optional comment refresher.
            projector: Builds stored documents from fetched metadata.
            validator: Checks identity fields of fetched records.
            pacing: Pause between batches.
            batch_size: Items fetched concurrently per batch.
            hold_after_pass: Clear the allow flag once a pass completes, so the
                next pass waits for the next period.
            clock: Source of timestamps.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.metadata = metadata
        self.size_enricher = size_enricher
        self.store = store
        self.progress_store = progress_store
        self.audit_sink = audit_sink
        self.comments = comments or CommentsEnricher(None)
        self.projector = projector or RecordProjector()
        self.validator = validator or RequiredFieldsValidator()
        self.pacing = pacing or PacingDelay(1.0, 3.0)
        self.batch_size = batch_size
        self.hold_after_pass = hold_after_pass
        self.clock = clock
        self.log = get_logger("catalog_sync.engine")

    def run(self, candidates: Sequence[Candidate], progress: Progress, budget: RunBudget) -> RunOutcome:
        """
        Resume the pass recorded in `progress` and advance it as far as the budget allows.

        Progress is saved after every batch. Raises StorageFailure if a write
        fails; the checkpoint then points just before the failing item.
        """
        report = SyncReport(progress)
        stats = RunStats()
        # Deletions of earlier runs are already missing from `candidates`.
        offset = progress.removed_count
        position = max(0, progress.next_position())

        self.log.info(
            "Run started: candidates=%s resume_at=%s runs_this_period=%s",
            len(candidates),
            position,
            progress.runs_this_period,
        )

        while position < len(candidates) and budget.has_time_remaining():
            batch = list(candidates[position : position + self.batch_size])
            self._process_batch(batch, position, offset, report, stats)

            position += len(batch)
            progress.cursor = position - 1 + offset
            self.progress_store.save(progress)
            stats.batches += 1

            if position < len(candidates):
                delay = self.pacing.sleep()
                self.log.debug("Paused %.2fs after batch ending at %s", delay, progress.cursor)

        final_cursor = progress.cursor
        audit = None
        completed = position >= len(candidates)
        if completed:
            audit = report.flush(self.audit_sink, self.clock())
            progress.reset(progress.period_key, allowed_to_run=not self.hold_after_pass)
        else:
            progress.runs_this_period += 1
            self.log.info(
                "Budget exhausted at cursor=%s after %.0fs; run %s of this period",
                final_cursor,
                budget.elapsed_s(),
                progress.runs_this_period,
            )
        self.progress_store.save(progress)

        self.log.info(
            "Run done: completed=%s batches=%s fetched=%s failures=%s",
            completed,
            stats.batches,
            stats.fetched,
            stats.failures,
        )
        return RunOutcome(progress=progress, completed=completed, final_cursor=final_cursor, stats=stats, audit=audit)

    # ---------- batch steps ----------

    def _process_batch(
        self,
        batch: List[Candidate],
        position: int,
        offset: int,
        report: SyncReport,
        stats: RunStats,
    ) -> None:
        planned = self._fetch_and_classify(batch, stats)
        self._enrich(planned)

        for k, item in enumerate(planned):
            try:
                self._commit(item, report, stats)
            except StorageFailure:
                self._checkpoint_before(position + k, offset, report.progress)
                raise

    def _fetch_and_classify(self, batch: List[Candidate], stats: RunStats) -> List[Optional[_Planned]]:
        outcomes = fan_out(lambda c: self.metadata.fetch(c.external_id), batch)
        planned: List[Optional[_Planned]] = []

        for outcome in outcomes:
            candidate = outcome.item
            if not outcome.ok:
                if isinstance(outcome.error, ItemFetchNotFound):
                    self.log.warning("Item not found, removing: %s", candidate.external_id)
                    stats.bump_failure("not_found")
                    planned.append(_Planned(candidate=candidate, removed=True))
                else:
                    self.log.error("Error fetching %s: %s", candidate.external_id, outcome.error)
                    stats.bump_failure("fetch_error")
                    planned.append(None)
                continue

            stats.fetched += 1
            remote = outcome.value
            vr = self.validator.validate(remote, IDENTITY_FIELDS)
            if not vr.ok:
                self.log.warning("Skipping %s: %s", candidate.external_id, vr.reason)
                stats.bump_failure("malformed")
                planned.append(None)
                continue

            existing = self.store.find(candidate.external_id)
            decision = classify(existing, remote)
            planned.append(_Planned(candidate=candidate, remote=remote, existing=existing, decision=decision))

        return planned

    def _enrich(self, planned: List[Optional[_Planned]]) -> None:
        pending = [p for p in planned if p and p.decision in (Decision.INSERT, Decision.UPDATE)]
        if not pending:
            return

        def enrich_one(item: _Planned) -> None:
            external_id = item.candidate.external_id
            try:
                item.size = self.size_enricher.fetch_size(external_id)
            except (EnrichmentPermanent, EnrichmentTransient) as e:
                self.log.warning("Size fetch failed for %s: %s", external_id, e)
                item.size_error = e
            except Exception as e:
                self.log.error("Size fetch error for %s (%s): %s", external_id, type(e).__name__, e)
                item.size_error = e
            item.comments = self.comments.fetch_comments(external_id)

        fan_out(enrich_one, pending)

    def _commit(self, item: Optional[_Planned], report: SyncReport, stats: RunStats) -> None:
        if item is None:
            return

        external_id = item.candidate.external_id
        if item.removed:
            # candidate row goes last: while it exists the item is replayed
            self.store.delete(external_id)
            self.store.delete_candidate(external_id)
            report.record_removed()
            return

        remote = item.remote

        if item.decision is Decision.NO_CHANGE:
            self.log.info("No changes for %s", external_id)
            report.record_processed()
            report.record(Decision.NO_CHANGE, remote.title)
            return

        size = resolve_size(item.decision, item.existing, item.size, item.size_error)
        if size is None:
            self.log.info("Skipping insert for %s: size unavailable", external_id)
            stats.bump_failure("enrichment_skipped_insert")
            report.record_processed()
            return
        if item.size_error is not None:
            stats.bump_failure("enrichment_kept_size")

        now_iso = utc_now_iso(self.clock())
        try:
            if item.decision is Decision.INSERT:
                doc = self.projector.insert_doc(item.candidate, remote, size, item.comments, now_iso)
            else:
                doc = self.projector.update_fields(remote, size, item.comments, now_iso)
        except ItemMalformed as e:
            self.log.warning("Skipping %s: %s", external_id, e)
            stats.bump_failure("malformed")
            report.record_processed()
            return

        if item.decision is Decision.INSERT:
            self.store.insert(doc)
            self.log.info("Inserted %s", external_id)
        else:
            self.store.update(external_id, doc)
            self.log.info("Updated %s", external_id)
        report.record_processed()
        report.record(item.decision, remote.title)

    def _checkpoint_before(self, failing_position: int, offset: int, progress: Progress) -> None:
        progress.cursor = failing_position - 1 + offset
        try:
            self.progress_store.save(progress)
        except StorageFailure as e:
            self.log.error("Could not save checkpoint after storage failure: %s", e)
        self.log.error("Storage failure at %s; checkpoint left at cursor=%s", failing_position, progress.cursor)

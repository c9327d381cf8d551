from __future__ import annotations

from datetime import datetime
from typing import Optional

from catalog_sync.core.models import AuditRecord, Decision, Progress
from catalog_sync.sinks.base import AuditSink
from catalog_sync.utils.logging import get_logger
from catalog_sync.utils.time import utc_now_iso

_TITLE_KEYS = {
    Decision.INSERT: "inserted",
    Decision.UPDATE: "updated",
    Decision.NO_CHANGE: "no_change",
}


class SyncReport:
    """
    Per-pass counters and title lists.

    The accumulators live on the wrapped Progress so they survive across
    invocations along with the cursor.
    """

    def __init__(self, progress: Progress):
        self.progress = progress
        self.log = get_logger("catalog_sync.report")

    def record(self, decision: Decision, title: str) -> None:
        """Count a committed decision."""
        p = self.progress
        if decision is Decision.INSERT:
            p.inserted_count += 1
        elif decision is Decision.UPDATE:
            p.updated_count += 1
        else:
            p.no_change_count += 1
        p.title_lists.setdefault(_TITLE_KEYS[decision], []).append(title)

    def record_processed(self) -> None:
        self.progress.processed_count += 1

    def record_removed(self) -> None:
        self.progress.removed_count += 1

    def snapshot(self, now: Optional[datetime] = None) -> AuditRecord:
        p = self.progress
        return AuditRecord(
            timestamp=utc_now_iso(now),
            processed_count=p.processed_count,
            inserted_count=p.inserted_count,
            updated_count=p.updated_count,
            no_change_count=p.no_change_count,
            removed_count=p.removed_count,
            title_lists={k: list(v) for k, v in p.title_lists.items()},
        )

    def flush(self, sink: AuditSink, now: Optional[datetime] = None) -> AuditRecord:
        """Write one audit record for the finished pass and clear the accumulators."""
        record = self.snapshot(now)
        sink.write(record)
        self.log.info(
            "Pass complete: processed=%s inserted=%s updated=%s no_change=%s removed=%s",
            record.processed_count,
            record.inserted_count,
            record.updated_count,
            record.no_change_count,
            record.removed_count,
        )
        self._clear()
        return record

    def _clear(self) -> None:
        p = self.progress
        p.processed_count = 0
        p.inserted_count = 0
        p.updated_count = 0
        p.no_change_count = 0
        p.removed_count = 0
        p.title_lists = {k: [] for k in _TITLE_KEYS.values()}

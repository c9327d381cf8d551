from __future__ import annotations
from typing import Protocol
from catalog_sync.core.models import AuditRecord
from catalog_sync.state.base import CatalogStore


class AuditSink(Protocol):
    """Protocol for audit record destinations."""

    def write(self, record: AuditRecord) -> None: ...


class StoreAuditSink(AuditSink):
    """Appends audit records to the catalog store's log table."""

    def __init__(self, store: CatalogStore):
        self.store = store

    def write(self, record: AuditRecord) -> None:
        self.store.append_audit(record)

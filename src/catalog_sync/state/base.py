from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Protocol

from catalog_sync.core.models import AuditRecord, Candidate, Progress, StoredRecord


class ProgressStore(Protocol):
    """Protocol for durable checkpoint backends."""

    def load(self) -> Progress: ...

    def save(self, progress: Progress) -> None: ...

    def clear(self) -> None: ...


class CandidateSource(Protocol):
    """Ordered identity list of catalog items, read once per run."""

    def list_candidates(self) -> List[Candidate]: ...


class CatalogStore(Protocol):
    """Primary catalog collection mirrored into a backup collection on every write."""

    def find(self, external_id: str) -> Optional[StoredRecord]: ...

    def insert(self, doc: Dict[str, Any]) -> None: ...

    def update(self, external_id: str, fields: Dict[str, Any]) -> None: ...

    def delete(self, external_id: str) -> None: ...

    def delete_candidate(self, external_id: str) -> None: ...

    def list_candidates(self) -> List[Candidate]: ...

    def add_candidates(self, candidates: Iterable[Candidate]) -> int: ...

    def append_audit(self, record: AuditRecord) -> None: ...

    def close(self) -> None: ...

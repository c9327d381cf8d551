from __future__ import annotations
from typing import Dict, List, Protocol
from catalog_sync.core.models import Candidate
from catalog_sync.utils.logging import get_logger


class DedupeStrategy(Protocol):
    """Protocol for candidate deduplication strategies."""

    def key(self, candidate: Candidate) -> str: ...
    def dedupe(self, candidates: List[Candidate]) -> List[Candidate]: ...


class ExternalIdDedupeStrategy:
    """Deduplicate candidates by external id, keeping the first occurrence."""

    def __init__(self):
        self.log = get_logger("catalog_sync.dedupe")

    def key(self, candidate: Candidate) -> str:
        return (candidate.external_id or "").strip()

    def dedupe(self, candidates: List[Candidate]) -> List[Candidate]:
        """Remove blank and repeated ids while keeping traversal order."""
        seen: Dict[str, Candidate] = {}
        duplicates = 0

        for c in candidates:
            k = self.key(c)
            if not k:
                continue

            if k in seen:
                duplicates += 1
                self.log.debug("Duplicate candidate skipped: %s", k)
                continue

            seen[k] = c

        result = list(seen.values())

        self.log.info(
            "Candidate dedupe: input=%d unique=%d removed=%d",
            len(candidates),
            len(result),
            duplicates,
        )

        return result

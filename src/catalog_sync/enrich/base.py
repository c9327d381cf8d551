from __future__ import annotations

from typing import Any, Dict, List, Protocol


class SizeProvider(Protocol):
    """Protocol for download size probes; returns a byte count."""

    def probe(self, external_id: str) -> int: ...


class CommentsProvider(Protocol):
    """Protocol for fetching recent user comments of an item."""

    def fetch(self, external_id: str) -> List[Dict[str, Any]]: ...

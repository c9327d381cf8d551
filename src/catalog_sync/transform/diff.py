from __future__ import annotations
from typing import Optional

from catalog_sync.core.models import VARY_VERSION, Decision, RemoteRecord, StoredRecord


def classify(existing: Optional[StoredRecord], remote: RemoteRecord) -> Decision:
    """
    Decide what a fetched record means for the catalog.

    Only the version string is compared. A remote version of "VARY" never
    matches, so such records are refreshed on every pass.
    """
    if existing is None:
        return Decision.INSERT
    if remote.version == VARY_VERSION or existing.version != remote.version:
        return Decision.UPDATE
    return Decision.NO_CHANGE

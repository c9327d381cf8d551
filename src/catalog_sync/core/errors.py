from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base class for catalog sync errors."""


class ItemFetchNotFound(SyncError):
    """The remote source no longer knows the candidate."""

    def __init__(self, external_id: str):
        super().__init__(f"Item not found: {external_id}")
        self.external_id = external_id


class ItemFetchError(SyncError):
    """Metadata fetch failed for a reason other than NotFound."""


class ItemMalformed(SyncError):
    """Fetched metadata lacks the identity fields needed to store it."""


class HttpStatusError(SyncError):
    """Non-success HTTP status from a collaborator endpoint."""

    def __init__(self, status_code: int, url: str = ""):
        super().__init__(f"HTTP {status_code} for {url}" if url else f"HTTP {status_code}")
        self.status_code = status_code
        self.url = url


class EnrichmentError(SyncError):
    """Size enrichment failed for a candidate."""

    def __init__(self, external_id: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{external_id}: {message}")
        self.external_id = external_id
        self.status_code = status_code


class EnrichmentPermanent(EnrichmentError):
    """The enrichment endpoint refused the item; retrying will not help."""


class EnrichmentTransient(EnrichmentError):
    """Transient enrichment failures outlasted every retry."""


class StorageFailure(SyncError):
    """A catalog or checkpoint write failed; the run must stop."""

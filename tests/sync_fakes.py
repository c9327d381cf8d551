"""Shared fakes for the sync tests."""

import threading
from datetime import datetime, timezone

from catalog_sync.core.errors import ItemFetchError, ItemFetchNotFound
from catalog_sync.core.models import RemoteRecord

FIXED_NOW = datetime(2026, 10, 2, 12, 0, tzinfo=timezone.utc)
MB = 1024 * 1024


def remote(external_id, version="2.0", title=None, installs="0+"):
    return RemoteRecord(
        external_id=external_id,
        title=title or f"App {external_id}",
        version=version,
        rating="4.5",
        review_count=100,
        summary="summary",
        description="description",
        icon_url=f"https://img.example.com/{external_id}.png",
        screenshots=[f"https://img.example.com/{external_id}-1.png"],
        installs_raw=installs,
        genre="Action",
        genre_id="GAME_ACTION",
        developer="Dev Studio",
    )


class FakeMetadata:
    """Metadata provider backed by a dict; ids can be marked missing or broken."""

    def __init__(self, records, not_found=(), broken=()):
        self.records = dict(records)
        self.not_found = set(not_found)
        self.broken = set(broken)
        self.calls = []
        self._lock = threading.Lock()

    def fetch(self, external_id):
        with self._lock:
            self.calls.append(external_id)
        if external_id in self.not_found:
            raise ItemFetchNotFound(external_id)
        if external_id in self.broken:
            raise ItemFetchError(f"{external_id}: HTTP 500")
        return self.records[external_id]


class FakeSizes:
    """Size provider: per-id byte count or exception (raised on every call)."""

    def __init__(self, sizes=None, default=20 * MB):
        self.sizes = dict(sizes or {})
        self.default = default
        self.calls = []
        self._lock = threading.Lock()

    def probe(self, external_id):
        with self._lock:
            self.calls.append(external_id)
        value = self.sizes.get(external_id, self.default)
        if isinstance(value, BaseException):
            raise value
        return value


class BatchBudget:
    """Budget that allows a fixed number of batches."""

    def __init__(self, batches):
        self.left = batches

    def has_time_remaining(self):
        if self.left <= 0:
            return False
        self.left -= 1
        return True

    def elapsed_s(self):
        return 0.0


class ListSink:
    def __init__(self):
        self.records = []

    def write(self, record):
        self.records.append(record)

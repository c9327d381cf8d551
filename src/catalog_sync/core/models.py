from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

VARY_VERSION = "VARY"
UNKNOWN_SIZE = "Unknown"
TITLE_LIST_KEYS = ("inserted", "updated", "no_change")


class Decision(str, Enum):
    """Outcome of comparing a fetched record against the stored one."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    NO_CHANGE = "NO_CHANGE"


@dataclass(frozen=True)
class Candidate:
    """One catalog item to sync, in traversal order."""

    external_id: str
    flags: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RemoteRecord:
    """Metadata fetched from the remote source for one candidate."""

    external_id: str
    title: str
    version: Optional[str] = None
    rating: Optional[str] = None
    review_count: int = 0
    summary: str = ""
    description: str = ""
    icon_url: str = ""
    screenshots: List[str] = field(default_factory=list)
    installs_raw: str = ""
    genre: str = ""
    genre_id: str = ""
    developer: str = ""
    min_os: str = ""
    free: bool = True
    url: str = ""
    recent_changes: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RemoteRecord":
        """Build a record from a store-style JSON payload (appId, scoreText, ratings, ...)."""
        return cls(
            external_id=str(payload.get("appId") or payload.get("external_id") or ""),
            title=str(payload.get("title") or ""),
            version=payload.get("version"),
            rating=payload.get("scoreText"),
            review_count=int(payload.get("ratings") or 0),
            summary=payload.get("summary") or "",
            description=payload.get("description") or "",
            icon_url=payload.get("icon") or "",
            screenshots=list(payload.get("screenshots") or []),
            installs_raw=str(payload.get("installs") or ""),
            genre=payload.get("genre") or "",
            genre_id=payload.get("genreId") or "",
            developer=payload.get("developer") or "",
            min_os=payload.get("androidVersion") or "",
            free=bool(payload.get("free", True)),
            url=payload.get("url") or "",
            recent_changes=payload.get("recentChanges") or "",
        )


@dataclass
class StoredRecord:
    """Persisted catalog document, keyed by external_id."""

    external_id: str
    version: Optional[str] = None
    title: str = ""
    size: str = UNKNOWN_SIZE
    fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "StoredRecord":
        return cls(
            external_id=doc["external_id"],
            version=doc.get("version"),
            title=doc.get("title") or "",
            size=doc.get("size") or UNKNOWN_SIZE,
            fields=dict(doc),
        )


def _empty_title_lists() -> Dict[str, List[str]]:
    return {k: [] for k in TITLE_LIST_KEYS}


@dataclass
class Progress:
    """Durable checkpoint of one pass over the candidate list."""

    cursor: int = -1
    processed_count: int = 0
    inserted_count: int = 0
    updated_count: int = 0
    no_change_count: int = 0
    removed_count: int = 0
    runs_this_period: int = 0
    period_key: str = ""
    allowed_to_run: bool = True
    title_lists: Dict[str, List[str]] = field(default_factory=_empty_title_lists)

    @classmethod
    def initial(cls, period_key: str = "", allowed_to_run: bool = True) -> "Progress":
        return cls(period_key=period_key, allowed_to_run=allowed_to_run)

    def reset(self, period_key: str, allowed_to_run: bool = True) -> None:
        """Return to the start of a pass, in place."""
        fresh = Progress.initial(period_key=period_key, allowed_to_run=allowed_to_run)
        for name, value in vars(fresh).items():
            setattr(self, name, value)

    def next_position(self) -> int:
        """List position to resume at, given a candidate list re-read after deletions."""
        return self.cursor + 1 - self.removed_count

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Progress":
        titles = _empty_title_lists()
        allowed = raw.get("allowed_to_run", True)
        for key, values in (raw.get("title_lists") or {}).items():
            titles[key] = list(values or [])
        return cls(
            cursor=int(raw.get("cursor", -1)),
            processed_count=int(raw.get("processed_count", 0)),
            inserted_count=int(raw.get("inserted_count", 0)),
            updated_count=int(raw.get("updated_count", 0)),
            no_change_count=int(raw.get("no_change_count", 0)),
            removed_count=int(raw.get("removed_count", 0)),
            runs_this_period=int(raw.get("runs_this_period", 0)),
            period_key=str(raw.get("period_key", "")),
            allowed_to_run=allowed if isinstance(allowed, bool) else True,
            title_lists=titles,
        )


@dataclass(frozen=True)
class AuditRecord:
    """Summary of one completed pass over the full candidate list."""

    timestamp: str
    processed_count: int
    inserted_count: int
    updated_count: int
    no_change_count: int
    removed_count: int
    title_lists: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ValidationResult:
    """Result of record validation."""

    ok: bool
    reason: str = ""


@dataclass(frozen=True)
class SizeConfig:
    """Configuration for the download size enrichment."""

    url_template: str = "https://d.apkpure.net/b/XAPK/{id}?version=latest"
    max_retries: int = 5
    retry_delay_s: float = 2.0
    timeout_s: float = 10.0


@dataclass(frozen=True)
class ScheduleConfig:
    """Quota and time window limits for scheduled runs."""

    enabled: bool = False
    interval_minutes: int = 60
    window_days: Tuple[Tuple[int, int], ...] = ((1, 3), (24, 26))
    runs_per_period: int = 33
    run_budget_minutes: float = 58.0


@dataclass(frozen=True)
class SyncJob:
    """Configuration for a catalog sync job."""

    id: str
    name: str
    metadata_base_url: str
    db_path: str = "output/catalog.db"
    progress_path: str = "output/progress.json"
    metadata_headers: Dict[str, str] = field(default_factory=dict)
    http_timeout_s: int = 30
    batch_size: int = 2
    pacing_min_s: float = 1.0
    pacing_max_s: float = 3.0
    size: SizeConfig = field(default_factory=SizeConfig)
    comments_url_template: Optional[str] = None
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    audit_config: Dict[str, Any] = field(default_factory=lambda: {"type": "sqlite"})


@dataclass
class RunStats:
    """Counters for a single invocation."""

    batches: int = 0
    fetched: int = 0
    failures: Dict[str, int] = field(default_factory=dict)

    def bump_failure(self, key: str) -> None:
        """Increment the count for a specific failure type."""
        self.failures[key] = self.failures.get(key, 0) + 1


@dataclass
class RunOutcome:
    """What one driver invocation left behind."""

    progress: Progress
    completed: bool
    final_cursor: int
    stats: RunStats = field(default_factory=RunStats)
    audit: Optional[AuditRecord] = None


@dataclass(frozen=True)
class RequestSpec:
    """Specification for an HTTP request."""

    url: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)

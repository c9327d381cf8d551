from __future__ import annotations
import math
import random
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Protocol

from catalog_sync.core.errors import ItemMalformed
from catalog_sync.core.models import UNKNOWN_SIZE, Candidate, RemoteRecord

_MARKS = re.compile(r"[™®©]")
_DOT_IO = re.compile(r"\.io\b", re.IGNORECASE)
_SEPARATORS = re.compile(r"[/|]+")
_NON_SLUG = re.compile(r"[^a-zA-Z0-9\s-]")
_BARE_HYPHEN = re.compile(r"-(?! )")
_SPACES = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")

_INSTALL_UNITS = ((1e12, "T+"), (1e9, "B+"), (1e6, "M+"), (1e3, "K+"))


def _to_fixed(value: float, places: int) -> Decimal:
    """Round the exact binary value of `value` to `places` decimals, halves up."""
    return Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def _trim_zero(text: str) -> str:
    return text[:-2] if text.endswith(".0") else text


def format_size(size_bytes: Optional[int]) -> str:
    """Human download size: whole MB below 1000 MB, one-decimal GB above."""
    if not size_bytes:
        return UNKNOWN_SIZE
    mb = float(_to_fixed(size_bytes / (1024 * 1024), 2))
    if mb >= 1000:
        return f"{_trim_zero(str(_to_fixed(mb / 1000, 1)))}GB"
    return f"{math.floor(mb)}MB"


def slugify(title: str) -> str:
    """URL slug from a store title, keeping only the part before any subtitle."""
    text = title.split(":")[0].split(",")[0].split(" x ")[0]
    text = _BARE_HYPHEN.split(text)[0]
    text = _MARKS.sub("", text)
    text = _DOT_IO.sub("-io", text)
    text = _SEPARATORS.sub("-", text)
    text = _NON_SLUG.sub("", text)
    text = _SPACES.sub("-", text)
    text = _HYPHENS.sub("-", text)
    return text.lower().strip().strip("-")


def genre_slug(genre_id: str) -> str:
    return (genre_id or "").lower().replace("_", "-")


def parse_installs(raw: Any) -> int:
    """Parse an installs string like '1,000,000+'."""
    s = str(raw or "").replace(",", "").replace("+", "").strip()
    try:
        return int(s)
    except ValueError:
        raise ItemMalformed(f"Invalid installs string: {raw!r}") from None


def display_installs(raw: Any, rng: Optional[random.Random] = None) -> str:
    """Displayed install count: a 30-40% share of the store figure, abbreviated."""
    num = parse_installs(raw)
    percent = (rng or random).randint(30, 40)
    value = (percent / 100.0) * num
    for divider, suffix in _INSTALL_UNITS:
        if value >= divider:
            return f"{_trim_zero(str(_to_fixed(value / divider, 1)))}{suffix}"
    return f"{math.floor(value)}+"


class Projector(Protocol):
    """Protocol for turning fetched metadata into catalog documents."""

    def insert_doc(
        self,
        candidate: Candidate,
        remote: RemoteRecord,
        size: str,
        comments: Optional[List[Dict[str, Any]]],
        now_iso: str,
    ) -> Dict[str, Any]: ...

    def update_fields(
        self,
        remote: RemoteRecord,
        size: str,
        comments: Optional[List[Dict[str, Any]]],
        now_iso: str,
    ) -> Dict[str, Any]: ...


class RecordProjector:
    """Default projection of RemoteRecord onto stored documents."""

    def __init__(self, rng: Optional[random.Random] = None, platform: str = "android"):
        self.rng = rng or random.Random()
        self.platform = platform

    def insert_doc(
        self,
        candidate: Candidate,
        remote: RemoteRecord,
        size: str,
        comments: Optional[List[Dict[str, Any]]],
        now_iso: str,
    ) -> Dict[str, Any]:
        """Full document for a new catalog entry."""
        return {
            "external_id": remote.external_id,
            "slug": slugify(remote.title),
            "title": remote.title,
            "version": remote.version,
            "rating": remote.rating,
            "review_count": remote.review_count,
            "summary": remote.summary,
            "description": remote.description,
            "icon_url": remote.icon_url,
            "screenshots": list(remote.screenshots),
            "installs_display": display_installs(remote.installs_raw, self.rng),
            "size": size,
            "genre": remote.genre,
            "genre_slug": genre_slug(remote.genre_id),
            "developer": remote.developer,
            "developer_slug": slugify(remote.developer),
            "min_os": remote.min_os,
            "free": remote.free,
            "url": remote.url,
            "recent_changes": remote.recent_changes,
            "platform": self.platform,
            "download_obb": bool(candidate.flags.get("download_obb", False)),
            "available_on_store": bool(candidate.flags.get("available_on_store", True)),
            "comments": list(comments or []),
            "updated_at_utc": now_iso,
        }

    def update_fields(
        self,
        remote: RemoteRecord,
        size: str,
        comments: Optional[List[Dict[str, Any]]],
        now_iso: str,
    ) -> Dict[str, Any]:
        """Partial document merged into an existing entry."""
        fields: Dict[str, Any] = {
            "version": remote.version,
            "title": remote.title,
            "rating": remote.rating,
            "review_count": remote.review_count,
            "summary": remote.summary,
            "description": remote.description,
            "icon_url": remote.icon_url,
            "screenshots": list(remote.screenshots),
            "size": size,
            "updated_at_utc": now_iso,
        }
        # None means comments were not refreshed this time
        if comments is not None:
            fields["comments"] = list(comments)
        return fields

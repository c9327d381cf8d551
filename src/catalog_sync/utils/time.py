from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def utc_now_iso(now: Optional[datetime] = None) -> str:
    """Get current UTC time in ISO format."""
    return (now or utc_now()).astimezone(timezone.utc).isoformat(timespec="seconds")


def period_key(now: datetime) -> str:
    """Quota period a timestamp falls in (calendar month, e.g. 2026-10)."""
    return now.strftime("%Y-%m")

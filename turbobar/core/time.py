from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _zone(tz_name: str):
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def local_today(tz_name: str) -> date:
    return datetime.now(_zone(tz_name)).date()


def resolve_due_date(preset: str, today: date) -> str | None:
    """Turn a due preset into an ISO date; ``none`` and unknown presets give ``None``."""
    if preset == "today":
        return today.isoformat()
    if preset == "tomorrow":
        return (today + timedelta(days=1)).isoformat()
    return None

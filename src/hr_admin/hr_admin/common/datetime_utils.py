from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def to_date(value: Any) -> Optional[date]:
    """Coerce a date, datetime, ISO date or full ISO timestamp into a date. Returns None when not parseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            if len(text) <= 10:
                return parse_iso_date(text)
            if text[10] not in "T ":
                return None
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def now_utc() -> datetime:
    """Current UTC time without tzinfo (MySQL DATETIME columns are naive).

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return now_utc().date()


def days_ago(days: int, *, reference: Optional[date] = None) -> date:
    return (reference or today()) - timedelta(days=days)


def days_from_now(days: int, *, reference: Optional[date] = None) -> date:
    return (reference or today()) + timedelta(days=days)


def isoformat_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def ranges_overlap(a_from: date, a_to: Optional[date], b_from: date, b_to: Optional[date]) -> bool:
    """Inclusive date ranges; an open end (None) runs forever."""
    starts_before_other_ends = b_to is None or a_from <= b_to
    ends_after_other_starts = a_to is None or a_to >= b_from
    return starts_before_other_ends and ends_after_other_starts


def is_active_on(valid_from: Optional[date], valid_to: Optional[date], day: date) -> bool:
    if valid_from and valid_from > day:
        return False
    return valid_to is None or valid_to >= day

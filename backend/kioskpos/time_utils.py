# Overview: UTC clock, calendar-day boundaries and ISO-8601 parsing/serialization.

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive datetime in UTC; the only form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    """The current calendar date, in UTC."""
    return utcnow().date()


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    ISO-8601 text -> naive UTC datetime.

    Blank input gives None. A value without an offset is taken to be UTC
    already; "Z" and "+HH:MM" offsets are converted. Raises ValueError when
    malformed.
    """
    if _blank(value):
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse "YYYY-MM-DD"; None / "" -> None. Raises ValueError when malformed."""
    if _blank(value):
        return None
    return date.fromisoformat(value.strip())


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) UTC-naive bounds of a calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 in UTC with a trailing 'Z'; naive input counts as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"

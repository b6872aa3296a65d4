"""Clock and date window helpers."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so stored and filter values compare safely."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def day_end(value: date) -> datetime:
    """Return the last representable instant of a UTC day.

    Date-only upper bounds from the report screen are inclusive of the whole
    day, not just its first instant.
    """
    return day_start(value) + timedelta(days=1) - timedelta(microseconds=1)


def elapsed_ms(start: datetime, end: datetime) -> int:
    return int((as_utc(end) - as_utc(start)) / timedelta(milliseconds=1))


def parse_bound(value: str | None) -> date | datetime | None:
    """Parse a report filter bound: ``YYYY-MM-DD`` stays a whole day, anything else is an ISO timestamp."""
    if value is None or not value.strip():
        return None
    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text.replace("Z", "+00:00"))

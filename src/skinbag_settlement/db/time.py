# src/skinbag_settlement/db/time.py
"""Time utilities for database models."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from stores without tz support."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def start_of_day(value: datetime) -> datetime:
    """Return midnight UTC of the calendar day containing ``value``."""
    value = as_utc(value)
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def isoformat(value: datetime | None) -> str | None:
    """Render a timestamp as an ISO-8601 string in UTC."""
    value = as_utc(value)
    return value.isoformat() if value is not None else None

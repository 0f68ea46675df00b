"""UTC timestamp helpers shared by models and stores"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_z(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a trailing Z, e.g. 2025-01-01T10:00:00.000Z"""
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")

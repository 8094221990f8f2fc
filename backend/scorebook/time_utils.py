"""UTC helpers for ledger timestamps."""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_naive(value: datetime) -> bool:
    return value.tzinfo is None or value.utcoffset() is None


def require_utc(value: datetime | None, *, field_name: str = "timestamp") -> datetime | None:
    """Reject naive datetimes from API payloads; aware ones are moved to UTC."""

    if value is None:
        return None
    if _is_naive(value):
        raise ValueError(f"{field_name} must include a timezone offset")
    return value.astimezone(timezone.utc)


def coerce_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes for timezone-aware columns; those are UTC.
    if value is None:
        return None
    if _is_naive(value):
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

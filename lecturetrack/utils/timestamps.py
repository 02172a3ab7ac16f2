"""Timestamp helpers for documents read back from the store."""

from datetime import UTC, datetime


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (stores may return naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def parse_timestamp(value: datetime | str | None) -> datetime | None:
    """Read a stored timestamp, accepting datetimes or ISO-8601 strings."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return ensure_utc_aware(value)

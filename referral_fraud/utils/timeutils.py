"""
Timestamp helpers.

All evidence timestamps are compared as timezone-aware UTC values.
"""

from datetime import datetime, UTC


def ensure_utc(value: datetime) -> datetime:
    """Return `value` in UTC, treating naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)

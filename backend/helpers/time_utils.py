"""
Time utilities.

All security timestamps are UTC. SQLite hands DateTime columns back as naive
values, so anything compared in Python goes through ensure_aware first.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current UTC time (timezone-aware). Default clock."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Treat a naive datetime as UTC; leave aware datetimes untouched."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def format_iso8601(dt: datetime) -> str:
    """
    Format a datetime as ISO 8601 in UTC.

    Returns:
        String like "2024-01-15T10:30:00+00:00"
    """
    return ensure_aware(dt).astimezone(timezone.utc).isoformat()

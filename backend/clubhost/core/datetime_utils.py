"""Datetime utilities for consistent timezone handling across the application."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC time - standardized across the application.

    Returns:
        Current datetime in UTC timezone.
    """
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """Get current UTC time as naive datetime for database operations.

    Returns:
        Current datetime in UTC as naive datetime (no timezone info).

    Note:
        This is specifically for SQLAlchemy models that use TIMESTAMP WITHOUT TIME ZONE
        columns.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is UTC timezone-aware.

    Naive datetimes are assumed to already be in UTC.

    Args:
        dt: The datetime to ensure is UTC timezone-aware

    Returns:
        The datetime with UTC timezone, or None if input was None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def from_unix_timestamp(value: Optional[int]) -> Optional[datetime]:
    """Convert a unix timestamp (as sent by Stripe) into an aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string stored in a JSON document into an aware UTC datetime."""
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Render a datetime as an ISO-8601 UTC string for JSON documents."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()

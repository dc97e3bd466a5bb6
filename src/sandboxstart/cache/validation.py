"""Cache validation utilities for TTL and expiry checks."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Args:
        value: Timestamp string (a trailing ``Z`` is accepted) or datetime

    Returns:
        Parsed datetime, or None if the value is missing or unparseable
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    # Handle timezone-naive datetimes
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def compute_expires_at(timestamp: datetime, ttl_minutes: int) -> datetime:
    """Return the expiry time for an entry written at ``timestamp``.

    Args:
        timestamp: Creation time of the entry
        ttl_minutes: Time-to-live in minutes

    Returns:
        ``timestamp + ttl_minutes``
    """
    return timestamp + timedelta(minutes=ttl_minutes)


def is_expired(expires_at, now: Optional[datetime] = None) -> bool:
    """Check whether a cache entry is expired.

    An absent or unparseable expiry counts as expired.

    Args:
        expires_at: Expiry timestamp (ISO string or datetime) from the index
        now: Current time (defaults to the wall clock)

    Returns:
        True if the entry must not be served as fresh
    """
    expires_dt = parse_timestamp(expires_at)
    if expires_dt is None:
        return True

    now = now or utcnow()
    return now > expires_dt


def get_ttl_remaining(expires_at, now: Optional[datetime] = None) -> int:
    """Get remaining seconds until an entry expires.

    Args:
        expires_at: ISO format expiry timestamp
        now: Current time (defaults to the wall clock)

    Returns:
        Seconds remaining, 0 if expired or unparseable
    """
    expires_dt = parse_timestamp(expires_at)
    if expires_dt is None:
        return 0

    now = now or utcnow()
    remaining = (expires_dt - now).total_seconds()

    return max(0, int(remaining))

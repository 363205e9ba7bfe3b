"""
Date helpers.

All timestamps are naive UTC so values compare the same way whether the
backend returns timezone-aware columns or not.
"""
from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def forward_in_days(days: int, from_date: datetime = None) -> datetime:
    return (from_date or utcnow()) + timedelta(days=days)


def timestamp(from_date: datetime = None) -> int:
    """Milliseconds since epoch, the unit API-key payloads carry."""
    moment = from_date or utcnow()
    return int(moment.replace(tzinfo=timezone.utc).timestamp() * 1000)

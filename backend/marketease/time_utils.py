from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def _local(now: Optional[datetime]) -> datetime:
    # Naive input is UTC (same convention as stored timestamps)
    if now is None:
        return datetime.now().astimezone()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone()


def _as_utc_naive(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_local_day(now: Optional[datetime] = None) -> datetime:
    """Local midnight of the current calendar day, as UTC-naive."""
    local = _local(now)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return _as_utc_naive(midnight)


def start_of_local_week(now: Optional[datetime] = None) -> datetime:
    """Local midnight of the most recent Sunday, as UTC-naive."""
    local = _local(now)
    days_since_sunday = (local.weekday() + 1) % 7
    sunday = (local - timedelta(days=days_since_sunday)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return _as_utc_naive(sunday)

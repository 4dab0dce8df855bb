from __future__ import annotations

import time
from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return current time as tz-aware UTC datetime."""
    return datetime.now(timezone.utc)


def monotonic() -> float:
    """Clock for measuring durations; immune to wall-clock changes."""
    return time.monotonic()


def normalize_dt(dt: datetime) -> datetime:
    """Ensure datetime is tz-aware. Raises if naive."""
    if not isinstance(dt, datetime):
        raise TypeError("dt must be a datetime")
    if dt.tzinfo is None:
        raise ValueError("naive datetime is not allowed; timezone-aware required")
    return dt


def to_rfc3339(dt: datetime) -> str:
    """
    Convert tz-aware datetime to RFC3339 (UTC, with 'Z').

    Keeps microseconds.
    """
    dt = normalize_dt(dt).astimezone(timezone.utc)
    s = dt.isoformat(timespec="microseconds")
    return s.replace("+00:00", "Z")

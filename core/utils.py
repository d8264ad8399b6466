from __future__ import annotations

from datetime import datetime, date, timezone
from typing import Any, Optional


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Documents carry dates in several shapes:
    - ISO strings ("2024-05-01" or full timestamps)
    - Firestore-style exported timestamps ({"seconds": ..., "nanoseconds": ...})
    - datetime/date objects
    - epoch seconds
    Anything else is treated as missing. Naive values are taken as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        return to_datetime(as_number(seconds))
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return to_datetime(datetime.fromisoformat(s))
        except ValueError:
            return None
    return None


def to_millis(value: Any) -> int:
    # Missing dates sort before every real date.
    dt = to_datetime(value)
    if dt is None:
        return 0
    return int(dt.timestamp() * 1000)


def as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)

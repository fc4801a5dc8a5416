from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.utcnow()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    return _to_naive_utc(dt)


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


def _to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _from_epoch_seconds(seconds: float) -> Optional[datetime]:
    if math.isnan(seconds) or math.isinf(seconds):
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError):
        return None


def _structured_field(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        if name in value:
            return value[name]
        return value.get(f"_{name}")
    if hasattr(value, name):
        return getattr(value, name)
    return getattr(value, f"_{name}", None)


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Convert any timestamp shape found in stored records to a UTC-naive datetime.

    Accepted shapes:
    - datetime (aware values are converted to UTC) and date (midnight)
    - epoch milliseconds as int or float
    - ISO-8601 strings
    - timestamp objects exposing to_date() / toDate()
    - {seconds, nanoseconds} mappings or attributes (also _seconds/_nanoseconds)

    Returns None for missing or unparsable input; never raises.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return _to_naive_utc(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    if isinstance(value, (int, float)):
        return _from_epoch_seconds(value / 1000.0)

    if isinstance(value, str):
        try:
            return parse_iso_datetime(value)
        except ValueError:
            return None

    for method_name in ("to_date", "toDate"):
        method = getattr(value, method_name, None)
        if callable(method):
            try:
                converted = method()
            except Exception:
                return None
            if isinstance(converted, (datetime, date)):
                return to_datetime(converted)
            return None

    seconds = _structured_field(value, "seconds")
    if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
        nanos = _structured_field(value, "nanoseconds") or 0
        if not isinstance(nanos, (int, float)) or isinstance(nanos, bool):
            nanos = 0
        return _from_epoch_seconds(seconds + nanos / 1_000_000_000)

    return None


def month_start(now: datetime) -> datetime:
    """First instant of the calendar month containing `now`."""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


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

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def resolve_move_date(value: Union[None, str, date, datetime]) -> datetime:
    """
    Business date of a stock move, as UTC-naive datetime.

    - None -> utcnow()
    - datetime -> normalized to UTC-naive
    - date or "YYYY-MM-DD" (no time part) -> that day at the current time of day,
      so same-day moves keep their entry order
    - other ISO-8601 strings -> parse_iso_datetime

    Raises ValueError for anything unparseable.
    """
    if value is None:
        return utcnow()

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    if isinstance(value, date):
        return datetime.combine(value, utcnow().time())

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return utcnow()
        if "T" not in s and " " not in s:
            day = date.fromisoformat(s)
            return datetime.combine(day, utcnow().time())
        dt = parse_iso_datetime(s)
        if dt is None:
            raise ValueError("invalid date")
        return dt

    raise ValueError("invalid date")


def resolve_business_date(value: Union[None, str, date, datetime]) -> date:
    """
    Calendar date of a move as the caller wrote it, before UTC normalization.

    "2025-01-01T00:30:00+02:00" -> 2025-01-01 (not 2024-12-31), so document
    series roll over on the caller's New Year. None -> today (UTC).
    """
    if value is None:
        return utcnow().date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return utcnow().date()
        if "T" not in s and " " not in s:
            return date.fromisoformat(s)
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        return datetime.fromisoformat(s).date()
    raise ValueError("invalid date")


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

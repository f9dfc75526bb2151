from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    """Business 'today' (calendar date, no time)."""
    return date.today()


def date_stamp(value: Optional[date] = None) -> str:
    """YYYYMMDD stamp used in export file names."""
    return (value or today()).strftime("%Y%m%d")


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a calendar date typed by a person or a spreadsheet.

    - None / "" -> None
    - "YYYY-MM-DD" and "YYYY/MM/DD" are accepted (single-digit month/day too)
    - a trailing time part ("2024-01-01T09:00", "2024-01-01 09:00") is ignored

    Raises ValueError for anything else.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    s = s.replace("/", "-")
    for sep in ("T", " "):
        if sep in s:
            s = s.split(sep, 1)[0]

    parts = s.split("-")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"invalid date: {value!r}")
    year, month, day = (int(p) for p in parts)
    return date(year, month, day)


def to_iso_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


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

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def get_local_tz():
    """
    Resolve the local timezone used for display and "today" calculations.
    Priority:
      1) TIMEZONE env var (IANA tz name like 'America/New_York')
      2) System local timezone via datetime.now().astimezone().tzinfo
    """
    tz_env = os.getenv("TIMEZONE")
    if tz_env:
        try:
            return ZoneInfo(tz_env)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return datetime.now().astimezone().tzinfo or timezone.utc


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds (the precision we persist)."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def parse_canvas_datetime(value: str) -> datetime:
    """
    Parse Canvas ISO8601 datetime strings into timezone-aware datetimes.
    Canvas typically returns UTC with 'Z'. Example: '2025-10-01T03:59:00Z'.
    """
    if not value:
        raise ValueError("Empty datetime string")
    normalized = value.replace("Z", "+00:00")
    dt = datetime.fromisoformat(normalized)
    # Naive timestamps from Canvas are UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_optional_datetime(value: Optional[str]) -> Optional[datetime]:
    """Like parse_canvas_datetime, but None for missing or malformed values."""
    if not value or not isinstance(value, str):
        return None
    try:
        return parse_canvas_datetime(value)
    except ValueError:
        return None


def to_utc_iso_z(dt: datetime, timespec: str = "seconds") -> str:
    """Convert any datetime to a UTC ISO8601 string with trailing 'Z'."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=get_local_tz())
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.isoformat(timespec=timespec).replace("+00:00", "Z")


def to_local(dt_or_str: datetime | str) -> datetime:
    """
    Convert a UTC timestamp (datetime or ISO string) to local timezone datetime.
    If a string is provided, it will be parsed via parse_canvas_datetime first.
    """
    if isinstance(dt_or_str, str):
        dt = parse_canvas_datetime(dt_or_str)
    else:
        dt = dt_or_str
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(get_local_tz())


def format_local(dt_or_str: datetime | str, fmt: str = "%b %d, %Y, %I:%M %p") -> str:
    """Format a UTC datetime (or ISO string) in the local timezone using fmt."""
    return to_local(dt_or_str).strftime(fmt)


def date_window(now: datetime, days: int) -> tuple[str, str]:
    """(start, end) as YYYY-MM-DD strings covering ``days`` days from ``now``."""
    end = now + timedelta(days=days)
    return now.strftime("%Y-%m-%d"), end.strftime("%Y-%m-%d")

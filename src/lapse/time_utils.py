"""Helpers for dealing with timezone-aware datetimes."""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import pendulum

_TIMESTAMP_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2})(?::(\d{2}))?(\.\d+)?\s*(Z|[+-]\d{2}:?\d{2})?$"
)
_EMPTY_VALUES = {"", "null", "~", "none"}
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

END_OF_DAY = time(23, 59, 59, 999000)


def get_timezone(tz_name: str) -> ZoneInfo:
    """Return ZoneInfo instance with graceful fallback to UTC."""

    try:
        return ZoneInfo(tz_name)
    except Exception:
        return ZoneInfo("UTC")


def get_now(tz: ZoneInfo) -> datetime:
    return datetime.now(tz)


def start_of_day(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def end_of_day(day: date, tz: ZoneInfo) -> datetime:
    """Last millisecond of ``day`` (23:59:59.999 local)."""

    return datetime.combine(day, END_OF_DAY, tzinfo=tz)


def elapsed_ms(start: datetime, end: datetime) -> int:
    return int((end - start) / timedelta(milliseconds=1))


def parse_timestamp(value: str, tz: ZoneInfo) -> Optional[datetime]:
    """Parse a frontmatter timestamp.

    Accepts ``YYYY-MM-DD[T| ]HH:MM[:SS][.fff][Z|+HH:MM]``; anything else goes
    through pendulum's lenient parser. Naive values are read in ``tz``.
    Returns ``None`` instead of raising.
    """

    cleaned = value.strip().strip("\"'").strip()
    if cleaned.lower() in _EMPTY_VALUES:
        return None

    match = _TIMESTAMP_PATTERN.match(cleaned)
    if match:
        try:
            return _build_timestamp(match, tz)
        except ValueError:
            pass
    return _parse_generic(cleaned, tz)


def _build_timestamp(match: re.Match, tz: ZoneInfo) -> datetime:
    year, month, day, hour, minute = (int(match.group(idx)) for idx in range(1, 6))
    second = int(match.group(6) or 0)
    fraction = match.group(7)
    microsecond = int(fraction[1:7].ljust(6, "0")) if fraction else 0
    zone = match.group(8)
    if zone is None:
        tzinfo = tz
    elif zone == "Z":
        tzinfo = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        digits = zone[1:].replace(":", "")
        offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
        tzinfo = timezone(sign * offset)
    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tzinfo)


def _parse_generic(value: str, tz: ZoneInfo) -> Optional[datetime]:
    # pendulum accepts offsets beyond 24h that datetime rejects on conversion.
    try:
        parsed = pendulum.parse(value, strict=False, tz=tz.key)
        if isinstance(parsed, datetime):
            return datetime.fromtimestamp(parsed.timestamp(), tz=tz)
        if isinstance(parsed, date):
            return start_of_day(date(parsed.year, parsed.month, parsed.day), tz)
    except (ValueError, TypeError, OverflowError, OSError):
        return None
    return None


def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with a ``Z`` suffix; milliseconds only when present."""

    utc_value = value.astimezone(timezone.utc)
    precision = "milliseconds" if utc_value.microsecond // 1000 else "seconds"
    return utc_value.replace(tzinfo=None).isoformat(timespec=precision) + "Z"


def format_duration(milliseconds: int) -> str:
    """Render milliseconds as ``HH:MM:SS``."""

    total_seconds = max(milliseconds, 0) // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_short_date(value: datetime, tz: ZoneInfo) -> str:
    """``Jan 7, 2026`` in ``tz``."""

    local = value.astimezone(tz)
    return f"{_MONTHS[local.month - 1]} {local.day}, {local.year}"


def parse_date(value: str | None) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


__all__ = [
    "END_OF_DAY",
    "get_timezone",
    "get_now",
    "start_of_day",
    "end_of_day",
    "elapsed_ms",
    "parse_timestamp",
    "format_timestamp",
    "format_duration",
    "format_short_date",
    "parse_date",
]

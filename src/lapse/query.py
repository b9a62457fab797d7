"""Inline report queries: parsing, date ranges and entry filtering."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from lapse.glob_matcher import is_excluded
from lapse.models import DateRange, Query, TimeEntry
from lapse.time_utils import end_of_day, parse_date, start_of_day

_PERIODS = {
    "today": "today",
    "thisweek": "thisWeek",
    "thismonth": "thisMonth",
    "lastweek": "lastWeek",
    "lastmonth": "lastMonth",
}
_GROUP_BY = {"project", "date", "tag", "note"}
_DISPLAY = {"table", "summary", "chart"}
_CHART = {"bar", "pie", "none"}


@dataclass(slots=True)
class DocumentContext:
    """What the filters need to know about the document owning an entry."""

    document_id: str
    display_name: str
    project: Optional[str] = None
    tags: List[str] = field(default_factory=list)


def clean_value(value: str) -> str:
    """Strip wiki-link brackets, surrounding quotes and a leading ``#``."""

    cleaned = value.strip().replace("[[", "").replace("]]", "").strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in {'"', "'"}:
        cleaned = cleaned[1:-1].strip()
    if cleaned.startswith("#"):
        cleaned = cleaned[1:].strip()
    return cleaned


def parse_query(source: str) -> Query:
    """Build a :class:`Query` from ``key: value`` lines; unknown keys are ignored."""

    fields: Dict[str, Any] = {}
    for raw_line in source.splitlines():
        key, separator, raw_value = raw_line.partition(":")
        if not separator:
            continue
        key = key.strip().lower()
        value = clean_value(raw_value)
        if not value:
            continue
        lowered = value.lower()
        if key in {"project", "tag", "note"}:
            fields[key] = value
        elif key == "from":
            fields["from_date"] = value
        elif key == "to":
            fields["to_date"] = value
        elif key == "period" and lowered in _PERIODS:
            fields["period"] = _PERIODS[lowered]
        elif key == "group-by" and lowered in _GROUP_BY:
            fields["group_by"] = lowered
        elif key == "subgroup-by" and lowered in _GROUP_BY:
            fields["subgroup_by"] = lowered
        elif key == "display" and lowered in _DISPLAY:
            fields["display"] = lowered
        elif key == "chart" and lowered in _CHART:
            fields["chart"] = lowered
    return Query(**fields)


def week_start(day: date, first_day_of_week: int) -> date:
    """Most recent ``first_day_of_week`` (0 = Sunday) on or before ``day``."""

    weekday = (day.weekday() + 1) % 7
    return day - timedelta(days=(weekday - first_day_of_week) % 7)


def resolve_date_range(query: Query, now: datetime, *, first_day_of_week: int = 1) -> DateRange:
    tz = now.tzinfo
    today = now.date()
    period = query.period

    if period == "today":
        return DateRange(start=start_of_day(today, tz), end=end_of_day(today, tz))
    if period == "thisWeek":
        return DateRange(start=start_of_day(week_start(today, first_day_of_week), tz), end=now)
    if period == "thisMonth":
        return DateRange(start=start_of_day(today.replace(day=1), tz), end=now)
    if period == "lastWeek":
        this_week = week_start(today, first_day_of_week)
        return DateRange(
            start=start_of_day(this_week - timedelta(days=7), tz),
            end=end_of_day(this_week - timedelta(days=1), tz),
        )
    if period == "lastMonth":
        last_of_previous = today.replace(day=1) - timedelta(days=1)
        first_of_previous = last_of_previous.replace(day=1)
        return DateRange(start=start_of_day(first_of_previous, tz), end=end_of_day(last_of_previous, tz))

    start_day = parse_date(query.from_date) or today
    end_day = parse_date(query.to_date) or today
    return DateRange(start=start_of_day(start_day, tz), end=end_of_day(end_day, tz))


def _contains(haystack: Optional[str], needle: str) -> bool:
    return haystack is not None and needle.lower() in haystack.lower()


def match_entry(
    entry: TimeEntry,
    document: DocumentContext,
    query: Query,
    date_range: DateRange,
    exclude_patterns: Iterable[str] = (),
) -> bool:
    """True if ``entry`` of ``document`` passes every filter of ``query``."""

    if entry.start_time is None:
        return False
    if not (entry.is_completed or entry.is_active):
        return False
    if not date_range.contains(entry.start_time):
        return False
    if is_excluded(document.document_id, exclude_patterns):
        return False
    if query.project and not _contains(document.project, query.project):
        return False
    if query.note and not _contains(document.display_name, query.note):
        return False
    if query.tag:
        tags = [*document.tags, *entry.tags]
        if not any(_contains(tag, query.tag) for tag in tags):
            return False
    return True


__all__ = [
    "DocumentContext",
    "clean_value",
    "parse_query",
    "week_start",
    "resolve_date_range",
    "match_entry",
]

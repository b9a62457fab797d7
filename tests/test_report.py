from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from lapse.aggregate import group_entries
from lapse.models import DateRange, MatchedEntry, Query, QueryResult, TimeEntry
from lapse.report import NO_DATA_MESSAGE, render_report

START = datetime(2026, 1, 7, 9, 0, tzinfo=timezone.utc)
RANGE = DateRange(start=datetime(2026, 1, 7, tzinfo=timezone.utc), end=datetime(2026, 1, 7, 23, 59, tzinfo=timezone.utc))


def _match(note, project, minutes):
    entry = TimeEntry(label=note, start_time=START, end_time=START + timedelta(minutes=minutes), duration=minutes * 60_000)
    return MatchedEntry(
        document_id=f"{note}.md",
        note_name=note,
        project=project,
        entry=entry,
        effective_duration=entry.duration,
    )


def _result(query):
    matches = [_match("Notes", "Small", 10), _match("Build", "Big", 60)]
    return QueryResult(
        query=query,
        date_range=RANGE,
        groups=group_entries(matches, query.group_by, tz=ZoneInfo("UTC"), subgroup_by=query.subgroup_by),
        total_time=70 * 60_000,
        match_count=2,
    )


def test_empty_result_renders_placeholder():
    assert render_report(QueryResult(query=Query(), date_range=RANGE)) == NO_DATA_MESSAGE


def test_table_orders_groups_by_total():
    assert render_report(_result(Query())).splitlines() == [
        "Time tracked 2026-01-07 - 2026-01-07:",
        "- Big: 01:00:00 (1)",
        "- Small: 00:10:00 (1)",
        "Total: 01:10:00 (2 entries)",
    ]


def test_subgroups_are_indented():
    lines = render_report(_result(Query(subgroup_by="note"))).splitlines()
    assert lines[1:3] == ["- Big: 01:00:00 (1)", "  - Build: 01:00:00 (1)"]


def test_summary_prints_totals_only():
    assert render_report(_result(Query(display="summary"))).splitlines() == [
        "Time tracked 2026-01-07 - 2026-01-07:",
        "Total: 01:10:00 (2 entries)",
    ]

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from conftest import make_note
from lapse.aggregate import NO_PROJECT, NO_TAG, QueryEngine
from lapse.blob_store import JsonBlobStore
from lapse.models import Query
from lapse.mtime_cache import MtimeCache
from lapse.vault import Vault

UTC = ZoneInfo("UTC")
NOW = datetime(2026, 1, 7, 12, 0, tzinfo=UTC)


def _entry(label, start, end=None, seconds=0, tags=None):
    lines = [f'  - label: "{label}"', f"    start: {start}"]
    if end:
        lines.append(f"    end: {end}")
    lines.append(f"    duration: {seconds}")
    if tags:
        lines.append(f"    tags: [{', '.join(tags)}]")
    return lines


@pytest.fixture
def vault(tmp_path):
    root = tmp_path / "vault"
    make_note(
        root / "Work" / "Call 2026-01-07.md",
        [
            'project: "[[Clients/Acme]]"',
            "tags: [client]",
            "lapseEntries:",
            *_entry("Call", "2026-01-07T09:00:00Z", "2026-01-07T09:45:00Z", 2700, ["billable"]),
            *_entry("Yesterday", "2026-01-06T09:00:00Z", "2026-01-06T10:00:00Z", 3600),
        ],
    )
    make_note(
        root / "Work" / "Review.md",
        [
            "project: Clients/Acme",
            "lapseEntries:",
            *_entry("Review", "2026-01-07T10:00:00Z", "2026-01-07T10:30:00Z", 1800),
        ],
    )
    make_note(
        root / "Personal" / "Run.md",
        ["lapseEntries:", *_entry("Run", "2026-01-07T11:00:00Z")],
    )
    make_note(
        root / "Work" / "Archive" / "Old.md",
        [
            "project: Clients/Acme",
            "lapseEntries:",
            *_entry("Old", "2026-01-07T08:00:00Z", "2026-01-07T09:00:00Z", 3600),
        ],
    )
    make_note(root / "Plain.md", ["title: nothing tracked"])
    return Vault(root)


@pytest.fixture
async def engine(vault, tmp_path):
    cache = MtimeCache(vault, JsonBlobStore(tmp_path / "cache.json"), tz=UTC, flush_delay=60)
    yield QueryEngine(vault, cache, tz=UTC, exclude_patterns=["**/Archive"])
    await cache.shutdown()


@pytest.mark.anyio
async def test_group_by_project_sums_across_documents(engine):
    result = await engine.run(Query(period="today"), now=NOW)

    assert result.match_count == 3
    assert set(result.groups) == {"Acme", NO_PROJECT}
    assert result.groups["Acme"].total_time == 4_500_000
    assert result.groups["Acme"].count == 2
    # The running entry counts up to now.
    assert result.groups[NO_PROJECT].total_time == 3_600_000
    assert result.total_time == 8_100_000
    assert [name for name, _ in result.sorted_groups()] == ["Acme", NO_PROJECT]


@pytest.mark.anyio
async def test_other_group_keys(engine):
    by_note = await engine.run(Query(period="today", group_by="note"), now=NOW)
    by_tag = await engine.run(Query(period="today", group_by="tag"), now=NOW)
    by_date = await engine.run(Query(period="thisWeek", group_by="date"), now=NOW)

    assert list(by_note.groups) == ["Run", "Call", "Review"]
    assert by_tag.groups["#billable"].count == 1
    assert by_tag.groups[NO_TAG].count == 2
    assert set(by_date.groups) == {"Jan 6, 2026", "Jan 7, 2026"}
    assert by_date.groups["Jan 6, 2026"].total_time == 3_600_000


@pytest.mark.anyio
async def test_filters_and_subgroups(engine):
    result = await engine.run(Query(period="today", project="acme", subgroup_by="note"), now=NOW)

    assert result.match_count == 2
    assert set(result.groups["Acme"].subgroups) == {"Call", "Review"}

    tagged = await engine.run(Query(period="today", tag="client"), now=NOW)
    assert tagged.match_count == 1

    empty = await engine.run(Query(period="lastMonth"), now=NOW)
    assert empty.is_empty
    assert empty.groups == {}


@pytest.mark.anyio
async def test_failing_document_is_skipped(engine, monkeypatch):
    original = engine._cache.get_or_load

    async def flaky(document_id):
        if document_id == "Work/Review.md":
            raise RuntimeError("boom")
        return await original(document_id)

    monkeypatch.setattr(engine._cache, "get_or_load", flaky)

    result = await engine.run(Query(period="today"), now=NOW)

    assert result.match_count == 2
    assert result.groups["Acme"].total_time == 2_700_000

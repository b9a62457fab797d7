import os
from datetime import datetime, timezone

import pytest

from conftest import make_note
from lapse import mtime_cache
from lapse.blob_store import JsonBlobStore
from lapse.models import CacheRecord, TimeEntry
from lapse.mtime_cache import MtimeCache
from lapse.vault import Vault

HEADER = [
    'project: "[[Clients/Acme]]"',
    "tags: [client]",
    "lapseEntries:",
    '  - label: "Call"',
    "    start: 2026-01-07T09:00:00Z",
    "    end: 2026-01-07T09:30:00Z",
    "    duration: 1800",
]


@pytest.fixture
def vault(tmp_path):
    root = tmp_path / "vault"
    make_note(root / "Work" / "Call.md", HEADER)
    return Vault(root)


@pytest.fixture
def blob_store(tmp_path):
    return JsonBlobStore(tmp_path / "cache.json")


@pytest.fixture
def parse_calls(monkeypatch):
    calls = []
    original = mtime_cache.parse_time_data

    def counting(text, **kwargs):
        calls.append(kwargs.get("document_id"))
        return original(text, **kwargs)

    monkeypatch.setattr(mtime_cache, "parse_time_data", counting)
    return calls


@pytest.mark.anyio
async def test_unchanged_document_is_served_from_cache(vault, blob_store, parse_calls):
    cache = MtimeCache(vault, blob_store, flush_delay=60)

    first = await cache.get_or_load("Work/Call.md")
    second = await cache.get_or_load("Work/Call.md")

    assert first is second
    assert parse_calls == ["Work/Call.md"]
    assert first.project == "Clients/Acme"
    assert first.tags == ["client"]
    assert first.total_time == 1_800_000
    assert cache.flusher.is_armed
    await cache.shutdown()
    assert blob_store.path.exists()


@pytest.mark.anyio
async def test_invalidate_and_mtime_change_force_reparse(vault, blob_store, parse_calls):
    cache = MtimeCache(vault, blob_store, flush_delay=60)
    path = vault.resolve("Work/Call.md")

    first = await cache.get_or_load("Work/Call.md")
    cache.invalidate("Work/Call.md")
    second = await cache.get_or_load("Work/Call.md")

    make_note(path, [line.replace("1800", "600") for line in HEADER])
    stamp = first.last_modified + 10
    os.utime(path, (stamp, stamp))
    third = await cache.get_or_load("Work/Call.md")

    assert second is not first
    assert len(parse_calls) == 3
    assert third.last_modified == stamp
    assert third.entries[0].duration == 600_000
    await cache.shutdown()


@pytest.mark.anyio
async def test_deleted_document_reads_as_empty(vault, blob_store):
    cache = MtimeCache(vault, blob_store, flush_delay=60)
    await cache.get_or_load("Work/Call.md")

    vault.resolve("Work/Call.md").unlink()
    record = await cache.get_or_load("Work/Call.md")

    assert record.entries == []
    assert record.last_modified is None
    assert "Work/Call.md" not in cache
    await cache.shutdown()


@pytest.mark.anyio
async def test_unreadable_document_reads_as_empty(tmp_path, blob_store):
    root = tmp_path / "vault"
    root.mkdir()
    (root / "binary.md").write_bytes(b"---\n\xff\xfe\n---\n")
    cache = MtimeCache(Vault(root), blob_store, flush_delay=60)

    record = await cache.get_or_load("binary.md")

    assert record.entries == []
    assert "binary.md" not in cache


@pytest.mark.anyio
async def test_persisted_records_survive_restart(vault, blob_store, parse_calls):
    cache = MtimeCache(vault, blob_store, flush_delay=60)
    original = await cache.get_or_load("Work/Call.md")
    await cache.persist()

    restarted = MtimeCache(vault, blob_store, flush_delay=60)
    assert await restarted.load() == 1
    record = await restarted.get_or_load("Work/Call.md")

    assert parse_calls == ["Work/Call.md"]
    assert record.last_modified == original.last_modified
    assert record.entries[0].start_time == original.entries[0].start_time
    await cache.shutdown()


@pytest.mark.anyio
async def test_load_prunes_stale_records_over_threshold(vault, blob_store):
    fresh = CacheRecord(
        last_modified=1.0,
        entries=[TimeEntry(label="New", start_time=datetime(2026, 1, 1, tzinfo=timezone.utc))],
    )
    stale = CacheRecord(
        last_modified=1.0,
        entries=[TimeEntry(label="Old", start_time=datetime(2020, 1, 1, tzinfo=timezone.utc))],
    )
    await blob_store.save(
        {
            "fresh.md": fresh.model_dump(mode="json"),
            "stale.md": stale.model_dump(mode="json"),
            "broken.md": {"entries": "not a list"},
        }
    )
    cache = MtimeCache(vault, blob_store, retention_days=30, prune_threshold=1)

    count = await cache.load(now=datetime(2026, 1, 7, tzinfo=timezone.utc))

    assert count == 1
    assert cache.peek("fresh.md") is not None
    assert cache.peek("stale.md") is None
    assert cache.peek("broken.md") is None


@pytest.mark.anyio
async def test_out_of_range_offset_loads_as_empty_record(tmp_path, blob_store):
    root = tmp_path / "vault"
    make_note(root / "n.md", ["startTime: 0A-30"])
    cache = MtimeCache(Vault(root), blob_store, flush_delay=60)

    record = await cache.get_or_load("n.md")

    assert record.entries == []
    assert record.last_modified is not None
    await cache.shutdown()

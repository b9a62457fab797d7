"""Process-scoped owner of the document store, the cache and the query engine."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from lapse.aggregate import QueryEngine
from lapse.blob_store import JsonBlobStore
from lapse.config import Settings
from lapse.errors import DocumentNotFoundError
from lapse.frontmatter import parse_time_data, serialize_time_data
from lapse.labels import resolve_default_label
from lapse.logging_utils import log_event
from lapse.models import DocumentTimeData, QueryResult, TimeEntry
from lapse.mtime_cache import MtimeCache
from lapse.query import parse_query
from lapse.store import DocumentTimeStore
from lapse.time_utils import get_now, get_timezone
from lapse.timer import adjust_start, find_active_entry, start_entry, stop_active
from lapse.vault import Vault


@dataclass(slots=True)
class ActiveTimer:
    document_id: str
    entry: TimeEntry
    project: Optional[str] = None


class Lapse:
    """Wires the vault, the open-document store and the mtime cache together.

    Open documents live in :attr:`store`; everything else is read through
    :attr:`cache`. Writes go through :meth:`save_document`, which
    invalidates the cache record of the written document.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        vault: Vault | None = None,
        blob_store: JsonBlobStore | None = None,
        clock: Callable[[ZoneInfo], datetime] = get_now,
    ):
        self.settings = settings
        self.tz = get_timezone(settings.timezone)
        self.keys = settings.frontmatter_keys
        self.vault = vault or Vault(settings.vault_dir)
        self.store = DocumentTimeStore()
        self.cache = MtimeCache(
            self.vault,
            blob_store or JsonBlobStore(settings.cache_file),
            keys=self.keys,
            tz=self.tz,
            hide_timestamps=settings.hide_timestamps_in_views,
            flush_delay=settings.cache_flush_delay,
            retention_days=settings.cache_retention_days,
            prune_threshold=settings.cache_prune_threshold,
        )
        self.engine = QueryEngine(
            self.vault,
            self.cache,
            tz=self.tz,
            exclude_patterns=settings.exclude_patterns,
            first_day_of_week=settings.first_day_of_week,
            hide_timestamps=settings.hide_timestamps_in_views,
            clock=clock,
        )
        self._clock = clock

    def now(self) -> datetime:
        return self._clock(self.tz)

    async def start(self) -> None:
        await self.cache.load(now=self.now())

    async def shutdown(self) -> None:
        await self.cache.shutdown()

    async def _parse_document(self, document_id: str) -> tuple[str, DocumentTimeData]:
        text = await self.vault.read_text(document_id)
        data = parse_time_data(
            text,
            keys=self.keys,
            tz=self.tz,
            document_id=document_id,
            hide_timestamps=self.settings.hide_timestamps_in_views,
        )
        return text, data or DocumentTimeData()

    async def open_document(self, document_id: str) -> DocumentTimeData:
        """Return the in-memory data, parsing the document on first open."""

        existing = self.store.get(document_id)
        if existing is not None:
            return existing
        _, data = await self._parse_document(document_id)
        return self.store.set_if_absent(document_id, data)

    async def reload_document(self, document_id: str) -> DocumentTimeData:
        _, data = await self._parse_document(document_id)
        self.store.replace(document_id, data)
        return data

    def close_document(self, document_id: str) -> None:
        self.store.remove(document_id)

    async def save_document(self, document_id: str) -> None:
        """Write the in-memory data back into the document's frontmatter."""

        data = self.store.get(document_id)
        if data is None:
            return
        try:
            text = await self.vault.read_text(document_id)
        except DocumentNotFoundError:
            text = ""
        data.recompute_total()
        await self.vault.write_text(document_id, serialize_time_data(text, data, keys=self.keys))
        self.cache.invalidate(document_id)
        log_event(
            {
                "kind": "document_saved",
                "document_id": document_id,
                "entries": len(data.entries),
                "total": data.total_time_tracked,
            }
        )

    async def start_timer(
        self,
        document_id: str,
        label: str | None = None,
        *,
        tags: tuple[str, ...] = (),
    ) -> TimeEntry:
        data = await self.open_document(document_id)
        if not label or not label.strip():
            text: Optional[str] = None
            if self.settings.default_label_type == "frontmatter":
                text = await self.vault.read_text(document_id)
            label = resolve_default_label(self.settings, document_id, text)
        entry = start_entry(data, label.strip(), self.now(), tags=tags, document_id=document_id)
        await self.save_document(document_id)
        return entry

    async def stop_timer(self, document_id: str) -> Optional[TimeEntry]:
        data = await self.open_document(document_id)
        entry = stop_active(data, self.now())
        if entry is not None:
            await self.save_document(document_id)
        return entry

    async def adjust_timer(self, document_id: str, direction: int) -> Optional[TimeEntry]:
        """Shift the running entry's start by ``time_adjust_minutes`` per step."""

        data = await self.open_document(document_id)
        entry = find_active_entry(data)
        if entry is None:
            return None
        adjust_start(entry, direction * self.settings.time_adjust_minutes, self.now())
        await self.save_document(document_id)
        return entry

    def handle_rename(self, old_id: str, new_id: str) -> None:
        self.store.rename(old_id, new_id)
        self.cache.invalidate(old_id)
        self.cache.invalidate(new_id)

    def handle_delete(self, document_id: str) -> None:
        self.store.remove(document_id)
        self.cache.invalidate(document_id)

    async def run_query(self, source: str, *, now: datetime | None = None) -> QueryResult:
        query = parse_query(source)
        result = await self.engine.run(query, now=now or self.now())
        log_event(
            {
                "kind": "report",
                "group_by": query.group_by,
                "matches": result.match_count,
                "total": result.total_time,
            }
        )
        return result

    async def active_timers(self) -> List[ActiveTimer]:
        """Running entries of open documents, then of every other document."""

        timers: List[ActiveTimer] = []
        for document_id, data in self.store.items():
            entry = find_active_entry(data)
            if entry is not None:
                timers.append(ActiveTimer(document_id=document_id, entry=entry))
        for document_id in self.vault.list_documents():
            if document_id in self.store:
                continue
            record = await self.cache.get_or_load(document_id)
            for entry in record.entries:
                if entry.is_active:
                    timers.append(ActiveTimer(document_id, entry, record.project))
        return timers


__all__ = ["ActiveTimer", "Lapse"]

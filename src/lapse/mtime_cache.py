"""Parsed time data cached per document and validated by modification time."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from lapse.blob_store import JsonBlobStore
from lapse.debounce import DebouncedFlusher
from lapse.errors import DocumentNotFoundError
from lapse.frontmatter import parse_time_data, read_project, read_tags
from lapse.models import CacheRecord, FrontmatterKeys
from lapse.vault import Vault

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 90
DEFAULT_PRUNE_THRESHOLD = 5000


class MtimeCache:
    """Cache of :class:`CacheRecord` keyed by document id.

    A record is served only while its ``last_modified`` equals the
    document's current mtime. Misses re-parse the document and schedule a
    debounced write of the whole cache to the blob store.
    """

    def __init__(
        self,
        vault: Vault,
        blob_store: JsonBlobStore,
        *,
        keys: FrontmatterKeys | None = None,
        tz: ZoneInfo = ZoneInfo("UTC"),
        hide_timestamps: bool = True,
        flush_delay: float = 2.0,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        prune_threshold: int = DEFAULT_PRUNE_THRESHOLD,
    ):
        self._vault = vault
        self._blob_store = blob_store
        self._keys = keys or FrontmatterKeys()
        self._tz = tz
        self._hide_timestamps = hide_timestamps
        self._retention = timedelta(days=retention_days)
        self._prune_threshold = prune_threshold
        self._records: Dict[str, CacheRecord] = {}
        self._flusher = DebouncedFlusher(self.persist, delay=flush_delay)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    @property
    def flusher(self) -> DebouncedFlusher:
        return self._flusher

    def peek(self, document_id: str) -> Optional[CacheRecord]:
        return self._records.get(document_id)

    async def load(self, *, now: datetime | None = None) -> int:
        """Fill the cache from the blob store, pruning stale records if large."""

        raw = await self._blob_store.load()
        records: Dict[str, CacheRecord] = {}
        for document_id, payload in raw.items():
            try:
                records[document_id] = CacheRecord.model_validate(payload)
            except ValidationError:
                logger.debug("Dropping malformed cache record for %s", document_id)
        if len(records) > self._prune_threshold:
            records = self._prune(records, now or datetime.now(timezone.utc))
        self._records = records
        logger.info("Loaded %s cached documents from %s", len(records), self._blob_store.path)
        return len(records)

    def _prune(self, records: Dict[str, CacheRecord], now: datetime) -> Dict[str, CacheRecord]:
        cutoff = now - self._retention
        kept: Dict[str, CacheRecord] = {}
        for document_id, record in records.items():
            activity = record.latest_activity()
            if activity is None and record.last_modified is not None:
                activity = datetime.fromtimestamp(record.last_modified, tz=timezone.utc)
            if activity is not None and activity >= cutoff:
                kept[document_id] = record
        logger.info("Pruned %s cache records older than %s", len(records) - len(kept), cutoff.date())
        return kept

    async def get_or_load(self, document_id: str) -> CacheRecord:
        """Return the cached snapshot, re-parsing only when the mtime moved."""

        modified = await self._vault.modified_at(document_id)
        if modified is None:
            self._records.pop(document_id, None)
            return CacheRecord.empty()

        cached = self._records.get(document_id)
        if cached is not None and cached.last_modified == modified:
            return cached

        try:
            text = await self._vault.read_text(document_id)
        except (DocumentNotFoundError, OSError, UnicodeDecodeError) as exc:
            logger.debug("Cannot read %s: %s", document_id, exc)
            return CacheRecord.empty()

        data = parse_time_data(
            text,
            keys=self._keys,
            tz=self._tz,
            document_id=document_id,
            hide_timestamps=self._hide_timestamps,
        )
        record = CacheRecord(
            last_modified=modified,
            entries=data.entries if data is not None else [],
            project=read_project(text, self._keys),
            tags=read_tags(text, self._keys),
            total_time=data.total_time_tracked if data is not None else 0,
        )
        self._records[document_id] = record
        self._flusher.schedule()
        return record

    def invalidate(self, document_id: str) -> None:
        self._records.pop(document_id, None)

    async def persist(self) -> None:
        payload = {
            document_id: record.model_dump(mode="json")
            for document_id, record in self._records.items()
        }
        await self._blob_store.save(payload)
        logger.debug("Persisted %s cache records", len(payload))

    async def shutdown(self) -> None:
        """Wait for in-flight flushes and flush once more if one is scheduled."""

        await self._flusher.drain()


__all__ = ["MtimeCache", "DEFAULT_RETENTION_DAYS", "DEFAULT_PRUNE_THRESHOLD"]

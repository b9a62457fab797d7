"""Corpus-wide report queries over the mtime cache."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from lapse.glob_matcher import is_excluded
from lapse.models import GroupBy, GroupResult, MatchedEntry, Query, QueryResult
from lapse.mtime_cache import MtimeCache
from lapse.query import DocumentContext, match_entry, resolve_date_range
from lapse.time_utils import format_short_date, get_now
from lapse.timer import live_duration
from lapse.timestamps import display_name
from lapse.vault import Vault

logger = logging.getLogger(__name__)

NO_PROJECT = "No project"
NO_TAG = "No tag"


def group_key(match: MatchedEntry, group_by: GroupBy, tz: ZoneInfo) -> str:
    if group_by == "project":
        if not match.project:
            return NO_PROJECT
        return match.project.rstrip("/").split("/")[-1] or NO_PROJECT
    if group_by == "date":
        start = match.entry.start_time
        return format_short_date(start, tz) if start is not None else ""
    if group_by == "tag":
        return f"#{match.entry.tags[0]}" if match.entry.tags else NO_TAG
    return match.note_name


def group_entries(
    matches: Iterable[MatchedEntry],
    group_by: GroupBy,
    *,
    tz: ZoneInfo,
    subgroup_by: Optional[GroupBy] = None,
) -> Dict[str, GroupResult]:
    """Group matches in first-seen order, summing effective durations."""

    groups: Dict[str, GroupResult] = {}
    for match in matches:
        group = groups.setdefault(group_key(match, group_by, tz), GroupResult())
        group.total_time += match.effective_duration
        group.count += 1
        group.members.append(match)
    if subgroup_by is not None:
        for group in groups.values():
            group.subgroups = group_entries(group.members, subgroup_by, tz=tz)
    return groups


class QueryEngine:
    """Scans every vault document through the cache and aggregates matches."""

    def __init__(
        self,
        vault: Vault,
        cache: MtimeCache,
        *,
        tz: ZoneInfo,
        exclude_patterns: Iterable[str] = (),
        first_day_of_week: int = 1,
        hide_timestamps: bool = True,
        clock: Callable[[ZoneInfo], datetime] = get_now,
    ):
        self._vault = vault
        self._cache = cache
        self._tz = tz
        self._exclude_patterns = list(exclude_patterns)
        self._first_day_of_week = first_day_of_week
        self._hide_timestamps = hide_timestamps
        self._clock = clock

    async def collect(self, query: Query, now: datetime) -> List[MatchedEntry]:
        date_range = resolve_date_range(query, now, first_day_of_week=self._first_day_of_week)
        matches: List[MatchedEntry] = []
        for document_id in self._vault.list_documents():
            if is_excluded(document_id, self._exclude_patterns):
                continue
            try:
                record = await self._cache.get_or_load(document_id)
            except Exception:
                logger.warning("Skipping %s: failed to load time data", document_id, exc_info=True)
                continue
            document = DocumentContext(
                document_id=document_id,
                display_name=display_name(document_id, hide_timestamps=self._hide_timestamps),
                project=record.project,
                tags=record.tags,
            )
            for entry in record.entries:
                if not match_entry(entry, document, query, date_range, self._exclude_patterns):
                    continue
                matches.append(
                    MatchedEntry(
                        document_id=document_id,
                        note_name=document.display_name,
                        project=record.project,
                        entry=entry,
                        effective_duration=live_duration(entry, now),
                    )
                )
        return matches

    async def run(self, query: Query, *, now: datetime | None = None) -> QueryResult:
        """Evaluate ``query`` against the whole vault; never raises per document."""

        now = now or self._clock(self._tz)
        date_range = resolve_date_range(query, now, first_day_of_week=self._first_day_of_week)
        matches = await self.collect(query, now)
        groups = group_entries(matches, query.group_by, tz=self._tz, subgroup_by=query.subgroup_by)
        return QueryResult(
            query=query,
            date_range=date_range,
            groups=groups,
            total_time=sum(match.effective_duration for match in matches),
            match_count=len(matches),
        )


__all__ = ["NO_PROJECT", "NO_TAG", "group_key", "group_entries", "QueryEngine"]

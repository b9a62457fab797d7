"""Starting, stopping and measuring entries of a single document.

These helpers keep at most one active entry per document.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional

from lapse.errors import ActiveEntryError
from lapse.models import DocumentTimeData, TimeEntry
from lapse.time_utils import elapsed_ms


def find_active_entry(data: DocumentTimeData) -> Optional[TimeEntry]:
    return next((entry for entry in data.entries if entry.is_active), None)


def live_duration(entry: TimeEntry, now: datetime) -> int:
    """Effective duration: stored for completed entries, plus the running segment otherwise."""

    if entry.end_time is not None or entry.start_time is None:
        return entry.duration
    if entry.is_paused:
        return entry.duration
    return entry.duration + max(elapsed_ms(entry.start_time, now), 0)


def start_entry(
    data: DocumentTimeData,
    label: str,
    now: datetime,
    *,
    tags: Iterable[str] = (),
    document_id: str = "",
) -> TimeEntry:
    active = find_active_entry(data)
    if active is not None:
        raise ActiveEntryError(document_id, active.id)
    entry = TimeEntry(label=label, start_time=now, tags=list(tags))
    data.entries.append(entry)
    return entry


def stop_entry(entry: TimeEntry, now: datetime) -> TimeEntry:
    entry.duration = live_duration(entry, now)
    entry.end_time = now
    entry.is_paused = False
    return entry


def stop_active(data: DocumentTimeData, now: datetime) -> Optional[TimeEntry]:
    active = find_active_entry(data)
    if active is None:
        return None
    stop_entry(active, now)
    data.recompute_total()
    return active


def adjust_start(entry: TimeEntry, minutes: int, now: datetime) -> TimeEntry:
    """Move a running entry's start by ``minutes``; never past ``now``."""

    if not entry.is_active or entry.start_time is None:
        return entry
    shifted = entry.start_time + timedelta(minutes=minutes)
    entry.start_time = min(shifted, now)
    return entry


def total_including_active(data: DocumentTimeData, now: datetime) -> int:
    return sum(
        live_duration(entry, now)
        for entry in data.entries
        if entry.is_completed or entry.is_active
    )


def total_since(data: DocumentTimeData, since: datetime, now: datetime) -> int:
    return sum(
        live_duration(entry, now)
        for entry in data.entries
        if entry.start_time is not None and entry.start_time >= since
    )


__all__ = [
    "find_active_entry",
    "live_duration",
    "start_entry",
    "stop_entry",
    "stop_active",
    "adjust_start",
    "total_including_active",
    "total_since",
]

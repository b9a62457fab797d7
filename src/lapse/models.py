"""Data models shared across the project."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

GroupBy = Literal["project", "date", "tag", "note"]
Period = Literal["today", "thisWeek", "thisMonth", "lastWeek", "lastMonth"]
DisplayMode = Literal["table", "summary", "chart"]
ChartKind = Literal["bar", "pie", "none"]

UNTITLED_LABEL = "Untitled"


def new_entry_id() -> str:
    return uuid.uuid4().hex


class FrontmatterKeys(BaseModel):
    """Header key names read and written by the frontmatter codec."""

    model_config = ConfigDict(frozen=True)

    start_time: str = "startTime"
    end_time: str = "endTime"
    entries: str = "lapseEntries"
    total_time: str = "totalTimeTracked"
    project: str = "project"
    tags: str = "tags"


class TimeEntry(BaseModel):
    """One tracked interval.

    ``duration`` is in milliseconds. For a running entry it holds the time
    accumulated before the current run segment started at ``start_time``.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_entry_id)
    label: str = UNTITLED_LABEL
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: int = Field(0, ge=0)
    is_paused: bool = False
    tags: List[str] = Field(default_factory=list)

    @field_validator("start_time", "end_time")
    @classmethod
    def _truncate_to_milliseconds(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Frontmatter stores milliseconds.
        if value is None:
            return value
        return value.replace(microsecond=value.microsecond // 1000 * 1000)

    @property
    def is_active(self) -> bool:
        return self.start_time is not None and self.end_time is None

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None


class DocumentTimeData(BaseModel):
    """Parsed time entries of a single document."""

    entries: List[TimeEntry] = Field(default_factory=list)
    total_time_tracked: int = 0

    @classmethod
    def from_entries(cls, entries: List[TimeEntry]) -> "DocumentTimeData":
        return cls(entries=entries, total_time_tracked=completed_total(entries))

    def recompute_total(self) -> int:
        self.total_time_tracked = completed_total(self.entries)
        return self.total_time_tracked


def completed_total(entries: List[TimeEntry]) -> int:
    return sum(entry.duration for entry in entries if entry.end_time is not None)


class CacheRecord(BaseModel):
    """Snapshot of a document's time data, valid while its mtime is unchanged."""

    last_modified: Optional[float] = None
    entries: List[TimeEntry] = Field(default_factory=list)
    project: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    total_time: int = 0

    @classmethod
    def empty(cls) -> "CacheRecord":
        return cls()

    def latest_activity(self) -> Optional[datetime]:
        stamps = [
            stamp
            for entry in self.entries
            for stamp in (entry.start_time, entry.end_time)
            if stamp is not None
        ]
        return max(stamps) if stamps else None


class Query(BaseModel):
    """Filters, grouping and display options of a report."""

    model_config = ConfigDict(frozen=True)

    project: Optional[str] = None
    tag: Optional[str] = None
    note: Optional[str] = None
    from_date: Optional[str] = None
    to_date: Optional[str] = None
    period: Optional[Period] = None
    group_by: GroupBy = "project"
    subgroup_by: Optional[GroupBy] = None
    display: DisplayMode = "table"
    chart: ChartKind = "none"


class DateRange(BaseModel):
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


class MatchedEntry(BaseModel):
    """An entry that passed the query filters, with its document context."""

    document_id: str
    note_name: str
    project: Optional[str] = None
    entry: TimeEntry
    effective_duration: int = 0


class GroupResult(BaseModel):
    total_time: int = 0
    count: int = 0
    members: List[MatchedEntry] = Field(default_factory=list)
    subgroups: Optional[Dict[str, "GroupResult"]] = None


class QueryResult(BaseModel):
    query: Query
    date_range: DateRange
    groups: Dict[str, GroupResult] = Field(default_factory=dict)
    total_time: int = 0
    match_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.match_count == 0

    def sorted_groups(self) -> List[tuple[str, GroupResult]]:
        """Groups ordered by descending total time, for presentation."""

        return sorted(self.groups.items(), key=lambda item: item[1].total_time, reverse=True)


__all__ = [
    "GroupBy",
    "Period",
    "DisplayMode",
    "ChartKind",
    "UNTITLED_LABEL",
    "new_entry_id",
    "FrontmatterKeys",
    "TimeEntry",
    "DocumentTimeData",
    "completed_total",
    "CacheRecord",
    "Query",
    "DateRange",
    "MatchedEntry",
    "GroupResult",
    "QueryResult",
]

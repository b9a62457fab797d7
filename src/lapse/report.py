"""Plain-text rendering of query results."""
from __future__ import annotations

from typing import List

from lapse.models import GroupResult, QueryResult
from lapse.time_utils import format_duration

NO_DATA_MESSAGE = "No data in range."


def render_report(result: QueryResult) -> str:
    """Render groups by descending total; ``summary`` mode prints only totals."""

    if result.is_empty:
        return NO_DATA_MESSAGE

    start = result.date_range.start.date().isoformat()
    end = result.date_range.end.date().isoformat()
    lines: List[str] = [f"Time tracked {start} - {end}:"]
    if result.query.display != "summary":
        for name, group in result.sorted_groups():
            lines.extend(_render_group(name, group, indent=""))
    lines.append(f"Total: {format_duration(result.total_time)} ({result.match_count} entries)")
    return "\n".join(lines)


def _render_group(name: str, group: GroupResult, *, indent: str) -> List[str]:
    lines = [f"{indent}- {name}: {format_duration(group.total_time)} ({group.count})"]
    if group.subgroups:
        ordered = sorted(group.subgroups.items(), key=lambda item: item[1].total_time, reverse=True)
        for sub_name, subgroup in ordered:
            lines.extend(_render_group(sub_name, subgroup, indent=indent + "  "))
    return lines


__all__ = ["NO_DATA_MESSAGE", "render_report"]

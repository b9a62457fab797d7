"""Reading and writing time entries inside a note's YAML frontmatter.

Only the small YAML subset that lapse itself writes is understood. Block
membership is decided by comparing indentation widths, so any header
lines outside the managed keys survive a rewrite untouched.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from lapse.models import UNTITLED_LABEL, DocumentTimeData, FrontmatterKeys, TimeEntry
from lapse.time_utils import elapsed_ms, format_duration, format_timestamp, parse_timestamp
from lapse.timestamps import display_name

HEADER_DELIMITER = "---"
UTC = ZoneInfo("UTC")

_LIST_ITEM_PATTERN = re.compile(r'\s*(?:"((?:[^"\\]|\\.)*)"|\'((?:[^\']|\'\')*)\'|([^,]+))')
_LEADING_DIGITS = re.compile(r"^[+-]?\d+")


class _Unset(Enum):
    UNSET = auto()


UNSET = _Unset.UNSET


@dataclass(slots=True)
class Header:
    """Frontmatter located at the top of a document, split into raw lines."""

    lines: List[str]
    closing_index: int
    document_lines: List[str]


@dataclass(slots=True)
class EntryBuilder:
    """Accumulates the sub-fields of one list item before it is finalized."""

    label: str | _Unset = UNSET
    start: Optional[datetime] | _Unset = UNSET
    end: Optional[datetime] | _Unset = UNSET
    duration_seconds: int | _Unset = UNSET
    tags: List[str] | _Unset = UNSET

    def add_tag(self, tag: str) -> None:
        if self.tags is UNSET:
            self.tags = []
        cleaned = _clean_tag(tag)
        if cleaned and cleaned not in self.tags:
            self.tags.append(cleaned)

    def build(self) -> TimeEntry:
        return TimeEntry(
            label=UNTITLED_LABEL if self.label is UNSET or not self.label else self.label,
            start_time=None if self.start is UNSET else self.start,
            end_time=None if self.end is UNSET else self.end,
            duration=0 if self.duration_seconds is UNSET else max(self.duration_seconds, 0) * 1000,
            tags=[] if self.tags is UNSET else list(self.tags),
        )


class _ScanState(Enum):
    SEEKING = auto()
    IN_BLOCK = auto()
    IN_TAG_LIST = auto()
    DONE = auto()


@dataclass
class _EntriesScanner:
    """Line-oriented state machine over the entries block."""

    key: str
    tz: ZoneInfo
    state: _ScanState = _ScanState.SEEKING
    block_indent: int = 0
    item_indent: Optional[int] = None
    current: Optional[EntryBuilder] = None
    entries: List[TimeEntry] = field(default_factory=list)

    def scan(self, lines: Iterable[str]) -> List[TimeEntry]:
        for raw_line in lines:
            self.feed(raw_line)
            if self.state is _ScanState.DONE:
                break
        self._finalize()
        return self.entries

    def feed(self, raw_line: str) -> None:
        line = raw_line.rstrip()
        stripped = line.strip()
        indent = _indent(line)

        if self.state is _ScanState.SEEKING:
            if indent == 0 and _is_key_line(stripped, self.key):
                inline = stripped[len(self.key) + 1 :].strip()
                # An inline value (usually "[]") means there is no block.
                self.state = _ScanState.DONE if inline else _ScanState.IN_BLOCK
                self.block_indent = indent
            return

        if not stripped or stripped.startswith("#"):
            return

        is_item = stripped == "-" or stripped.startswith("- ")

        if self.state is _ScanState.IN_TAG_LIST:
            if is_item and self.item_indent is not None and indent > self.item_indent:
                if self.current is not None:
                    self.current.add_tag(stripped[1:].strip())
                return
            self.state = _ScanState.IN_BLOCK

        if indent <= self.block_indent and not (is_item and indent == self.block_indent):
            self._finalize()
            self.state = _ScanState.DONE
            return

        if is_item and (self.item_indent is None or indent <= self.item_indent):
            self._finalize()
            self.current = EntryBuilder()
            self.item_indent = indent
            rest = stripped[1:].strip()
            if rest:
                self._read_field(rest)
            return

        if self.current is not None and self.item_indent is not None and indent > self.item_indent:
            self._read_field(stripped)

    def _read_field(self, text: str) -> None:
        name, separator, value = text.partition(":")
        if not separator or self.current is None:
            return
        name = name.strip()
        value = value.strip()
        builder = self.current
        # Labels and tags are trimmed; tags also lose quotes and a leading "#".
        if name == "label":
            builder.label = _unquote(value).strip()
        elif name == "start":
            builder.start = parse_timestamp(value, self.tz)
        elif name == "end":
            builder.end = parse_timestamp(value, self.tz)
        elif name == "duration":
            builder.duration_seconds = _parse_seconds(value)
        elif name == "tags":
            builder.tags = []
            if value:
                for tag in parse_inline_list(value):
                    builder.add_tag(tag)
            else:
                self.state = _ScanState.IN_TAG_LIST

    def _finalize(self) -> None:
        if self.current is not None:
            self.entries.append(self.current.build())
            self.current = None


def extract_header(text: str) -> Optional[Header]:
    """Locate the frontmatter delimited by ``---`` lines at the very top."""

    document_lines = text.split("\n")
    if not document_lines or document_lines[0].rstrip() != HEADER_DELIMITER:
        return None
    for idx in range(1, len(document_lines)):
        if document_lines[idx].rstrip() == HEADER_DELIMITER:
            return Header(
                lines=document_lines[1:idx],
                closing_index=idx,
                document_lines=document_lines,
            )
    return None


def parse_time_data(
    text: str,
    *,
    keys: FrontmatterKeys | None = None,
    tz: ZoneInfo = UTC,
    document_id: str | None = None,
    hide_timestamps: bool = True,
) -> Optional[DocumentTimeData]:
    """Parse the time entries stored in ``text``'s frontmatter.

    Returns ``None`` when the document has no frontmatter at all. Malformed
    values never raise: unparsable timestamps become ``None`` and broken
    items degrade to defaults.
    """

    keys = keys or FrontmatterKeys()
    header = extract_header(text)
    if header is None:
        return None

    entries = _EntriesScanner(key=keys.entries, tz=tz).scan(header.lines)
    if not entries:
        fallback = _synthesize_from_scalars(header.lines, keys, tz, document_id, hide_timestamps)
        if fallback is not None:
            entries = [fallback]
    return DocumentTimeData.from_entries(entries)


def _synthesize_from_scalars(
    lines: List[str],
    keys: FrontmatterKeys,
    tz: ZoneInfo,
    document_id: str | None,
    hide_timestamps: bool,
) -> Optional[TimeEntry]:
    start_value = _top_level_scalar(lines, keys.start_time)
    if start_value is None:
        return None
    start = parse_timestamp(start_value, tz)
    if start is None:
        return None
    end_value = _top_level_scalar(lines, keys.end_time)
    end = parse_timestamp(end_value, tz) if end_value is not None else None
    label = display_name(document_id, hide_timestamps=hide_timestamps) if document_id else ""
    return TimeEntry(
        label=label or UNTITLED_LABEL,
        start_time=start,
        end_time=end,
        duration=max(elapsed_ms(start, end), 0) if end is not None else 0,
    )


def serialize_time_data(
    text: str,
    data: DocumentTimeData,
    *,
    keys: FrontmatterKeys | None = None,
) -> str:
    """Write ``data`` into ``text``'s frontmatter and return the new text.

    Managed keys (start, end, entries and total) are dropped from the
    existing header and re-rendered after every other header line, which
    keeps its position and bytes. A header is created when missing.
    """

    keys = keys or FrontmatterKeys()
    rendered = render_time_fields(data, keys)

    header = extract_header(text)
    if header is None:
        return "\n".join([HEADER_DELIMITER, *rendered, HEADER_DELIMITER, "", text])

    managed = (keys.start_time, keys.end_time, keys.entries, keys.total_time)
    kept = _strip_managed_lines(header.lines, managed)
    return "\n".join(
        [
            header.document_lines[0],
            *kept,
            *rendered,
            *header.document_lines[header.closing_index :],
        ]
    )


def render_time_fields(data: DocumentTimeData, keys: FrontmatterKeys) -> List[str]:
    started = [entry.start_time for entry in data.entries if entry.start_time is not None]
    finished = [entry.end_time for entry in data.entries if entry.end_time is not None]
    total = sum(entry.duration for entry in data.entries if entry.end_time is not None)

    lines: List[str] = []
    if started:
        lines.append(f"{keys.start_time}: {format_timestamp(min(started))}")
    if finished:
        lines.append(f"{keys.end_time}: {format_timestamp(max(finished))}")
    if data.entries:
        lines.append(f"{keys.entries}:")
        for entry in data.entries:
            lines.extend(_render_entry(entry))
    else:
        lines.append(f"{keys.entries}: []")
    lines.append(f'{keys.total_time}: "{format_duration(total)}"')
    return lines


def _render_entry(entry: TimeEntry) -> List[str]:
    lines = [f'  - label: "{_escape(entry.label)}"']
    if entry.start_time is not None:
        lines.append(f"    start: {format_timestamp(entry.start_time)}")
    if entry.end_time is not None:
        lines.append(f"    end: {format_timestamp(entry.end_time)}")
    lines.append(f"    duration: {entry.duration // 1000}")
    if entry.tags:
        quoted = ", ".join(f'"{_escape(tag)}"' for tag in entry.tags)
        lines.append(f"    tags: [{quoted}]")
    return lines


def _strip_managed_lines(lines: List[str], managed: Iterable[str]) -> List[str]:
    managed_keys = tuple(managed)
    kept: List[str] = []
    skipping = False
    for raw_line in lines:
        line = raw_line.rstrip()
        stripped = line.strip()
        indent = _indent(line)
        if not stripped:
            kept.append(raw_line)
            continue
        if skipping:
            if indent > 0 or stripped == "-" or stripped.startswith("- "):
                continue
            skipping = False
        if indent == 0 and any(_is_key_line(stripped, key) for key in managed_keys):
            skipping = True
            continue
        kept.append(raw_line)
    return kept


def read_header_value(text: str, key: str) -> Optional[str]:
    """Single-key lookup: value on the key line, else the first list item."""

    header = extract_header(text)
    if header is None:
        return None
    lines = header.lines
    for idx, raw_line in enumerate(lines):
        line = raw_line.rstrip()
        if _indent(line) != 0 or not _is_key_line(line.strip(), key):
            continue
        value = line.strip()[len(key) + 1 :].strip()
        if not value:
            for following in lines[idx + 1 :]:
                candidate = following.strip()
                if not candidate:
                    continue
                if candidate.startswith("-"):
                    value = candidate[1:].strip()
                break
        return _normalize_value(value)
    return None


def read_project(text: str, keys: FrontmatterKeys | None = None) -> Optional[str]:
    keys = keys or FrontmatterKeys()
    return read_header_value(text, keys.project)


def read_tags(text: str, keys: FrontmatterKeys | None = None) -> List[str]:
    """Document-level tags from an inline list, a scalar or a dash list."""

    keys = keys or FrontmatterKeys()
    header = extract_header(text)
    if header is None:
        return []
    tags: List[str] = []
    collecting = False
    for raw_line in header.lines:
        line = raw_line.rstrip()
        stripped = line.strip()
        if collecting:
            if not stripped:
                continue
            if stripped.startswith("- ") or stripped == "-":
                tags.append(stripped[1:].strip())
                continue
            break
        if _indent(line) == 0 and _is_key_line(stripped, keys.tags):
            value = stripped[len(keys.tags) + 1 :].strip()
            if value:
                tags.extend(parse_inline_list(value))
                break
            collecting = True
    cleaned: List[str] = []
    for tag in tags:
        value = _clean_tag(tag)
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


def parse_inline_list(value: str) -> List[str]:
    """Items of ``[a, "b"]`` or of a comma separated scalar."""

    inner = value.strip()
    if inner.startswith("[") and inner.endswith("]"):
        inner = inner[1:-1]
    items: List[str] = []
    for double, single, bare in _LIST_ITEM_PATTERN.findall(inner):
        if double:
            items.append(_unescape(double))
        elif single:
            items.append(single.replace("''", "'"))
        elif bare.strip():
            items.append(bare.strip())
    return items


def _normalize_value(value: str) -> Optional[str]:
    cleaned = value.strip().strip("\"'")
    cleaned = cleaned.replace("[[", "").replace("]]", "")
    if cleaned.startswith("[") and cleaned.endswith("]"):
        items = parse_inline_list(cleaned)
        cleaned = items[0] if items else ""
        cleaned = cleaned.replace("[[", "").replace("]]", "")
    cleaned = re.sub(r"^[-*•]\s*", "", cleaned).strip().strip("\"'").strip()
    return cleaned or None


def _clean_tag(tag: str) -> str:
    return _unquote(tag.strip()).strip().lstrip("#").strip()


def _unquote(value: str) -> str:
    if not value:
        return value
    quote = value[0]
    if quote == '"':
        chars: List[str] = []
        escaped = False
        for char in value[1:]:
            if escaped:
                chars.append(char)
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                break
            else:
                chars.append(char)
        return "".join(chars)
    if quote == "'":
        body = value[1:]
        end = body.find("'")
        while end != -1 and body[end + 1 : end + 2] == "'":
            end = body.find("'", end + 2)
        return (body if end == -1 else body[:end]).replace("''", "'")
    return value


def _unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _parse_seconds(value: str) -> int:
    match = _LEADING_DIGITS.match(value.strip().strip("\"'"))
    return int(match.group(0)) if match else 0


def _top_level_scalar(lines: List[str], key: str) -> Optional[str]:
    for raw_line in lines:
        line = raw_line.rstrip()
        if _indent(line) == 0 and _is_key_line(line.strip(), key):
            return line.strip()[len(key) + 1 :].strip()
    return None


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def _is_key_line(stripped: str, key: str) -> bool:
    return stripped.startswith(f"{key}:")


__all__ = [
    "HEADER_DELIMITER",
    "Header",
    "EntryBuilder",
    "extract_header",
    "parse_time_data",
    "serialize_time_data",
    "render_time_fields",
    "read_header_value",
    "read_project",
    "read_tags",
    "parse_inline_list",
]

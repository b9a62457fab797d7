"""Removal of timestamp-looking fragments from note names."""
from __future__ import annotations

import re
from pathlib import PurePosixPath

_SEP = r"\s_\-.,"
_BEFORE = rf"(?<![^{_SEP}])"
_AFTER = rf"(?![^{_SEP}])"

# Order matters: longer composite forms go first so their parts are not
# consumed by the bare date/time patterns.
_PATTERNS = [
    re.compile(_BEFORE + r"\d{8}-\d{4}(?:\d{2})?" + _AFTER),
    re.compile(_BEFORE + r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?" + _AFTER),
    re.compile(_BEFORE + r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}(?::\d{2})?" + _AFTER),
    re.compile(_BEFORE + r"(?:\d{4}-\d{2}-\d{2}|\d{4}/\d{2}/\d{2}|\d{8})" + _AFTER),
    re.compile(_BEFORE + r"\d{1,2}:\d{2}(?::\d{2})?" + _AFTER),
]
_REPEATED_SEPARATORS = re.compile(r"\s*[_\-.,](?:\s*[_\-.,])+\s*")
_WHITESPACE = re.compile(r"\s+")


def _collapse_separators(match: re.Match) -> str:
    run = match.group(0)
    separator = run.strip()[0]
    return f" {separator} " if run != run.strip() else separator


def strip_timestamps(value: str) -> str:
    """Drop dates and times from ``value``; never returns an empty string."""

    result = value
    for pattern in _PATTERNS:
        result = pattern.sub("", result)
    if result == value:
        return value
    result = _REPEATED_SEPARATORS.sub(_collapse_separators, result)
    result = _WHITESPACE.sub(" ", result)
    result = result.strip(" _-.,")
    return result or value


def note_name(document_id: str) -> str:
    """File name of a vault document without directories or extension."""

    return PurePosixPath(document_id.replace("\\", "/")).stem


def display_name(document_id: str, *, hide_timestamps: bool = True) -> str:
    name = note_name(document_id)
    return strip_timestamps(name) if hide_timestamps else name


__all__ = ["strip_timestamps", "note_name", "display_name"]

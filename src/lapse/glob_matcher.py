"""Glob based path exclusion."""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable

_DOUBLE_STAR = "\x00"


def normalize_path(path: str) -> str:
    """Use ``/`` as the only separator and drop leading ``./`` or ``/``."""

    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern:
    """Compile a glob into a regex anchored at the start of the path.

    ``*`` and ``?`` match within one path segment and ``**`` across segments;
    ``**/`` may also match nothing. The match must end on a segment
    boundary, so a directory pattern covers everything beneath it.
    """

    normalized = normalize_path(pattern).rstrip("/")
    escaped = re.escape(normalized)
    escaped = escaped.replace(r"\*\*/", _DOUBLE_STAR + "/")
    escaped = escaped.replace(r"\*\*", _DOUBLE_STAR)
    escaped = escaped.replace(r"\*", "[^/]*")
    escaped = escaped.replace(r"\?", "[^/]")
    escaped = escaped.replace(_DOUBLE_STAR + "/", "(?:.*/)?")
    escaped = escaped.replace(_DOUBLE_STAR, ".*")
    return re.compile(f"^{escaped}(?=/|$)")


def is_excluded(path: str, patterns: Iterable[str]) -> bool:
    """Return True if any non-empty pattern matches ``path``."""

    candidates = [pattern.strip() for pattern in patterns if pattern and pattern.strip()]
    if not candidates:
        return False
    normalized = normalize_path(path)
    return any(compile_pattern(pattern).match(normalized) for pattern in candidates)


__all__ = ["normalize_path", "compile_pattern", "is_excluded"]

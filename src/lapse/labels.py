"""Default labels for newly started timers."""
from __future__ import annotations

from lapse.config import Settings
from lapse.frontmatter import read_header_value
from lapse.timestamps import display_name

UNTITLED_TIMER = "Untitled timer"


def resolve_default_label(settings: Settings, document_id: str, text: str | None = None) -> str:
    """Pick a label according to ``settings.default_label_type``."""

    label_type = settings.default_label_type
    if label_type == "freeText":
        return settings.default_label_text.strip() or UNTITLED_TIMER
    if label_type == "frontmatter":
        if text is None:
            return UNTITLED_TIMER
        return read_header_value(text, settings.default_label_frontmatter_key) or UNTITLED_TIMER
    if label_type == "fileName":
        name = display_name(document_id, hide_timestamps=settings.hide_timestamps_in_views)
        return name or UNTITLED_TIMER
    return UNTITLED_TIMER


__all__ = ["UNTITLED_TIMER", "resolve_default_label"]

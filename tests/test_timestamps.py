import pytest

from lapse.timestamps import display_name, note_name, strip_timestamps


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Standup 2026-01-07", "Standup"),
        ("2026-01-07 Standup", "Standup"),
        ("Standup 20260107-0930", "Standup"),
        ("Standup 20260107-093015", "Standup"),
        ("Call 2026-01-07T09:30:00Z", "Call"),
        ("Call 2026-01-07T09:30+02:00", "Call"),
        ("Review 2026/01/07", "Review"),
        ("Review 20260107", "Review"),
        ("Sync 09:30", "Sync"),
        ("Sync - 2026-01-07 - 09:30:15", "Sync"),
        ("Notes__2026-01-07__draft", "Notes_draft"),
        ("Client A - 2026-01-07 - follow up", "Client A - follow up"),
    ],
)
def test_strip_timestamps(value, expected):
    assert strip_timestamps(value) == expected


def test_only_bounded_patterns_are_removed():
    assert strip_timestamps("Invoice2026-01-07") == "Invoice2026-01-07"
    assert strip_timestamps("Room 12:30a") == "Room 12:30a"


def test_never_returns_empty_string():
    assert strip_timestamps("2026-01-07") == "2026-01-07"
    assert strip_timestamps("2026-01-07 10:00") == "2026-01-07 10:00"


def test_unchanged_without_timestamps():
    assert strip_timestamps("Plain -- name") == "Plain -- name"


@pytest.mark.parametrize(
    "value",
    [
        "Standup 2026-01-07",
        "2026-01-07",
        "a 10:00 -- b",
        "Sync - 2026-01-07 - 09:30:15",
        "x-20260107-0930-y",
        "",
        "   ",
        "Notes__2026-01-07__draft",
    ],
)
def test_strip_is_idempotent(value):
    once = strip_timestamps(value)
    assert strip_timestamps(once) == once


def test_note_names():
    assert note_name("Projects/Acme/Kickoff 2026-01-07.md") == "Kickoff 2026-01-07"
    assert display_name("Projects/Acme/Kickoff 2026-01-07.md") == "Kickoff"
    assert display_name("Kickoff 2026-01-07.md", hide_timestamps=False) == "Kickoff 2026-01-07"

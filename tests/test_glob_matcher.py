import pytest

from lapse.glob_matcher import compile_pattern, is_excluded, normalize_path


def test_double_star_directory_pattern_excludes_nested_and_root():
    patterns = ["**/Archive"]
    assert is_excluded("Projects/2020/Archive", patterns)
    assert is_excluded("Archive", patterns)
    assert not is_excluded("Archived/notes", patterns)


def test_directory_pattern_covers_files_beneath_it():
    assert is_excluded("Archive/old note.md", ["Archive"])
    assert is_excluded("Projects/2020/Archive/note.md", ["**/Archive"])


def test_single_star_stays_within_one_segment():
    assert is_excluded("Daily/2026-01-07.md", ["Daily/*.md"])
    assert not is_excluded("Daily/2026/01-07.md", ["Daily/*.md"])
    assert is_excluded("Daily/2026/01-07.md", ["Daily/**"])


def test_backslashes_are_normalized():
    assert is_excluded("Templates\\Meeting.md", ["Templates"])
    assert is_excluded("Templates/Meeting.md", ["Templates\\"])


def test_regex_metacharacters_are_literal():
    assert is_excluded("notes (old)/a.md", ["notes (old)"])
    assert not is_excluded("notesXold/a.md", ["notes.old"])


@pytest.mark.parametrize("patterns", [[], [""], ["   "]])
def test_empty_patterns_never_exclude(patterns):
    assert not is_excluded("anything/at/all.md", patterns)


def test_pattern_is_anchored_at_start():
    assert not is_excluded("Projects/Archive", ["Archive"])
    assert compile_pattern("Archive").pattern.startswith("^")


def test_normalize_path_strips_leading_markers():
    assert normalize_path("./Notes/a.md") == "Notes/a.md"
    assert normalize_path("/Notes\\a.md") == "Notes/a.md"


def test_question_mark_matches_one_character_within_a_segment():
    assert is_excluded("Daily/2026-01-07.md", ["Daily/2026-01-0?.md"])
    assert not is_excluded("Daily/2026-01-17.md", ["Daily/2026-01-?.md"])
    assert not is_excluded("Daily/a/b.md", ["Daily?a"])

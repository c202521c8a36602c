"""Tests for mentora_ai/assignment.py."""

from pathlib import Path

import pytest

from mentora_ai.assignment import parse_assignment_file


def test_parse_with_frontmatter(tmp_path: Path):
    f = tmp_path / "trolley.md"
    f.write_text(
        "---\ntopic: Is it right to pull the lever?\nmax_loops: 3\nmin_loops_for_closure: 2\n---\n\n"
        "Read the classic trolley problem before class.",
        encoding="utf-8",
    )
    assignment = parse_assignment_file(f)
    assert assignment.topic == "Is it right to pull the lever?"
    assert assignment.topic_context == "Read the classic trolley problem before class."
    assert assignment.overrides == {"max_loops": 3, "min_loops_for_closure": 2}
    assert assignment.source == str(f)


def test_parse_without_frontmatter_uses_first_line(tmp_path: Path):
    f = tmp_path / "plain.md"
    f.write_text("\n# Should zoos exist?\n\nConsider conservation and animal welfare.\n", encoding="utf-8")
    assignment = parse_assignment_file(f)
    assert assignment.topic == "Should zoos exist?"
    assert assignment.topic_context == "Consider conservation and animal welfare."
    assert assignment.overrides == {}


def test_parse_frontmatter_without_topic(tmp_path: Path):
    f = tmp_path / "partial.md"
    f.write_text("---\nmax_loops: 2\n---\nIs lying ever justified?\nThink of white lies.", encoding="utf-8")
    assignment = parse_assignment_file(f)
    assert assignment.topic == "Is lying ever justified?"
    assert assignment.topic_context == "Think of white lies."
    assert assignment.overrides == {"max_loops": 2}


def test_parse_ignores_unknown_keys(tmp_path: Path):
    f = tmp_path / "extra.md"
    f.write_text("---\ntopic: T\ninstructor: Ms. Lin\n---\n", encoding="utf-8")
    assignment = parse_assignment_file(f)
    assert assignment.overrides == {}
    assert assignment.topic_context == ""


def test_parse_empty_file_raises(tmp_path: Path):
    f = tmp_path / "empty.md"
    f.write_text("   \n", encoding="utf-8")
    with pytest.raises(ValueError):
        parse_assignment_file(f)


def test_parse_non_integer_loop_limit_raises(tmp_path: Path):
    f = tmp_path / "bad.md"
    f.write_text("---\ntopic: T\nmax_loops: many\n---\n", encoding="utf-8")
    with pytest.raises(ValueError, match="max_loops must be an integer"):
        parse_assignment_file(f)

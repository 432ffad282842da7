"""
Tests for applying replacement instructions to the formatted document.

Run: python3 test_patch.py
From: python/
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from sdiff.errors import ParseError, ReplacementError
from sdiff.models import AnchorPosition, DiffType, ReplacementInstruction
from sdiff.patch import (
    apply_instruction,
    apply_instructions,
    find_snippet_near_anchor,
    insert_snippet,
    remove_snippet,
)
from sdiff.replacement import serialize_instruction


def _payload(entry_type, snippet, anchor=None, position=AnchorPosition.AFTER):
    return serialize_instruction(
        ReplacementInstruction(type=entry_type, snippet=snippet, anchor=anchor, anchor_position=position)
    )


def test_remove_line():
    assert remove_snippet("A\nC\nB", "C") == "A\nB"
    print("PASS: remove a single line")


def test_remove_paragraph_leaves_single_separator():
    result = remove_snippet("A\n\nC\n\nB", "C")
    assert result == "A\n\nB", repr(result)
    print("PASS: removing a paragraph does not double the blank line")


def test_remove_multi_line_snippet_ignores_indentation():
    assert remove_snippet("x\n  line one\n  line two\ny", "line one\nline two") == "x\ny"
    print("PASS: multi-line snippet matched on trimmed lines")


def test_remove_first_occurrence_only():
    assert remove_snippet("X\nA\nX", "X") == "A\nX"
    print("PASS: only the first occurrence is removed")


def test_remove_falls_back_to_substring():
    assert remove_snippet("Keep this inline phrase here", "inline phrase ") == "Keep this here"
    print("PASS: substring fallback")


def test_remove_missing_snippet_is_noop():
    assert remove_snippet("A\nB", "Z") == "A\nB"
    assert remove_snippet("A\nB", "") == "A\nB"
    print("PASS: missing snippet leaves text untouched")


def test_insert_after_anchor():
    assert insert_snippet("A\nB", "X", "A") == "A\nX\nB"
    assert insert_snippet("Intro\n\nOutro", "Middle", "Intro") == "Intro\n\nMiddle\n\nOutro"
    print("PASS: insert after anchor line")


def test_insert_before_anchor():
    assert insert_snippet("A\nB", "X", "B", AnchorPosition.BEFORE) == "A\nX\nB"
    result = insert_snippet("Intro\n\nOutro", "Middle", "Outro", AnchorPosition.BEFORE)
    assert result == "Intro\n\nMiddle\n\nOutro", repr(result)
    print("PASS: insert before anchor line")


def test_insert_without_anchor_appends():
    assert insert_snippet("A\nB  \n\n", "X", "nope") == "A\nB\nX\n"
    assert insert_snippet("A", "X") == "A\nX\n"
    assert insert_snippet("", "X") == "X\n"
    assert insert_snippet("A", "") == "A"
    print("PASS: append when anchor is missing")


def test_find_snippet_near_anchor():
    text = "one\ntwo\n\nthree"
    assert find_snippet_near_anchor(text, "two", AnchorPosition.AFTER) == "three"
    assert find_snippet_near_anchor(text, "two", AnchorPosition.BEFORE) == "one"
    assert find_snippet_near_anchor(text, "missing") is None
    assert find_snippet_near_anchor(text, None) is None
    assert find_snippet_near_anchor("a\r\nb", "a") == "b"
    print("PASS: snippet recovery around anchor")


def test_apply_instruction_recovers_empty_snippet():
    instruction = ReplacementInstruction(type=DiffType.REMOVED, snippet="", anchor="Intro")
    result = apply_instruction("Intro\nOutro", instruction, "Intro\nLost line\nOutro")
    assert result == "Intro\nLost line\nOutro"
    print("PASS: empty snippet recovered from the original")


def test_apply_instructions_in_sequence():
    replacements = {
        "removed:1": _payload(DiffType.REMOVED, "B", "A"),
        "removed:2": _payload(DiffType.REMOVED, "C", "B"),
        "added:4": _payload(DiffType.ADDED, "junk"),
    }
    result = apply_instructions("A\njunk\nD", "A\nB\nC\nD", replacements)
    assert result == "A\nB\nC\nD", repr(result)
    print("PASS: each instruction sees the previous result")


def test_apply_instructions_reports_failing_key():
    replacements = {
        "added:0": _payload(DiffType.ADDED, "A"),
        "removed:1": '{"snippet": "no type"}',
    }
    try:
        apply_instructions("A\nB", "B", replacements)
        assert False, "Should have raised ReplacementError"
    except ReplacementError as e:
        assert e.key == "removed:1"
        assert isinstance(e.__cause__, ParseError)
        assert "removed:1" in str(e)
    print("PASS: batch aborts with the failing key")


if __name__ == "__main__":
    tests = [
        test_remove_line,
        test_remove_paragraph_leaves_single_separator,
        test_remove_multi_line_snippet_ignores_indentation,
        test_remove_first_occurrence_only,
        test_remove_falls_back_to_substring,
        test_remove_missing_snippet_is_noop,
        test_insert_after_anchor,
        test_insert_before_anchor,
        test_insert_without_anchor_appends,
        test_find_snippet_near_anchor,
        test_apply_instruction_recovers_empty_snippet,
        test_apply_instructions_in_sequence,
        test_apply_instructions_reports_failing_key,
    ]

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"FAIL: {test.__name__}: {e}")
            failed += 1

    print(f"\nResults: {passed} passed, {failed} failed out of {len(tests)} tests")
    sys.exit(1 if failed else 0)

"""
Tests for the undo history and the accept/skip/undo decision session.

Run: python3 test_session.py
From: python/
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from sdiff.history import ReplacementHistory
from sdiff.models import DecisionState, DiffType, HistoryEntry, HistoryRecord
from sdiff.processor import compare_texts
from sdiff.replacement import deserialize_instruction
from sdiff.session import ReplacementSession

ORIGINAL = "Intro\n\nKeep me\n\nOutro"
FORMATTED = "Intro\n\nOutro\n\nSpam line"


def _record(n):
    return HistoryRecord(key=f"added:{n}", entry_index=n, entry=HistoryEntry(type=DiffType.ADDED))


def test_history_is_lifo():
    history = ReplacementHistory()
    for n in range(3):
        history.push(_record(n))
    assert history.size() == 3
    assert [r.key for r in history.get_entries()] == ["added:0", "added:1", "added:2"]
    assert history.undo().key == "added:2"
    assert history.undo().key == "added:1"
    print("PASS: history pops most recent first")


def test_history_undo_exhaustion():
    history = ReplacementHistory()
    for n in range(4):
        history.push(_record(n))
    for _ in range(4):
        assert history.undo() is not None
    assert not history.can_undo()
    assert history.undo() is None
    assert history.size() == 0
    print("PASS: N pushes allow exactly N undos")


def test_history_clear_and_snapshot():
    history = ReplacementHistory()
    history.push(_record(0))
    snapshot = history.get_entries()
    snapshot.clear()
    assert history.size() == 1
    history.clear()
    assert len(history) == 0
    print("PASS: clear empties, get_entries is a copy")


def test_session_walks_actionable_entries():
    session = ReplacementSession(compare_texts(ORIGINAL, FORMATTED))
    assert session.total == 2
    assert session.current.entry.type == DiffType.REMOVED
    assert session.current.entry.content == "Keep me"

    record = session.accept()
    assert record.key == "removed:1"
    assert record.entry.original == "Keep me"
    assert list(session.replacements) == ["removed:1"]
    assert session.current.entry.type == DiffType.ADDED
    assert session.completed_count == 1
    print("PASS: accept records the instruction and advances")


def test_session_undo_restores_entry():
    session = ReplacementSession(compare_texts(ORIGINAL, FORMATTED))
    session.accept()
    record = session.undo()
    assert record.key == "removed:1"
    assert session.replacements == {}
    assert session.current_index == 0
    assert session.decisions[0] == DecisionState.PENDING
    assert session.undo() is None
    print("PASS: undo drops the instruction and makes the entry current again")


def test_session_skip_then_accept():
    session = ReplacementSession(compare_texts(ORIGINAL, FORMATTED))
    session.skip()
    assert session.decisions[0] == DecisionState.SKIPPED
    record = session.accept()
    assert record.key == "added:3"
    assert record.entry.formatted == "Spam line"
    assert record.entry.original == "Outro"
    assert session.is_complete
    assert session.current is None
    assert session.completed_count == 2
    assert list(session.replacements) == ["added:3"]
    assert session.accept() is None
    print("PASS: skipped entries stay out of the map")


def test_session_accept_all():
    history = ReplacementHistory()
    history.push(_record(9))
    session = ReplacementSession(compare_texts(ORIGINAL, FORMATTED), history=history)
    assert history.size() == 0

    replacements = session.accept_all()
    assert list(replacements) == ["removed:1", "added:3"]
    assert history.size() == 2
    assert session.is_complete
    assert deserialize_instruction(replacements["added:3"]).snippet == "Spam line"
    print("PASS: batch mode accepts everything")


def test_session_without_differences():
    session = ReplacementSession(compare_texts("Same\n\nText", "Same\n\nText"))
    assert session.total == 0
    assert session.is_complete
    assert session.accept_all() == {}
    print("PASS: nothing to decide for identical documents")


if __name__ == "__main__":
    tests = [
        test_history_is_lifo,
        test_history_undo_exhaustion,
        test_history_clear_and_snapshot,
        test_session_walks_actionable_entries,
        test_session_undo_restores_entry,
        test_session_skip_then_accept,
        test_session_accept_all,
        test_session_without_differences,
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

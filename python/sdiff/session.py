from typing import Dict, List, NamedTuple, Optional

import structlog

from sdiff.history import ReplacementHistory
from sdiff.models import (
    DecisionState,
    DiffEntry,
    DiffType,
    FileComparison,
    HistoryEntry,
    HistoryRecord,
    ReplacementInstruction,
)
from sdiff.replacement import build_instruction, create_entry_key, order_for_application, serialize_instruction

logger = structlog.get_logger(__name__)


class ActionableEntry(NamedTuple):
    entry_index: int  # position in the full diff
    entry: DiffEntry


class ReplacementSession:
    """
    Decision bookkeeping for one comparison: which added/removed entries were
    accepted or skipped, the resulting replacement map, and undo.

    Walks the actionable entries in order (confirm mode) or accepts them all
    at once (batch mode). Rendering and input handling belong to the caller.
    """

    def __init__(self, comparison: FileComparison, history: Optional[ReplacementHistory] = None):
        self.comparison = comparison
        self.history = history if history is not None else ReplacementHistory()
        self.history.clear()

        self.actionable_entries: List[ActionableEntry] = [
            ActionableEntry(idx, entry) for idx, entry in enumerate(comparison.diffs.entries) if entry.is_actionable
        ]
        self.decisions: List[DecisionState] = [DecisionState.PENDING] * len(self.actionable_entries)
        self._instructions: Dict[str, ReplacementInstruction] = {}
        self.current_index = 0 if self.actionable_entries else -1

    @property
    def total(self) -> int:
        return len(self.actionable_entries)

    @property
    def current(self) -> Optional[ActionableEntry]:
        if self.current_index < 0:
            return None
        return self.actionable_entries[self.current_index]

    @property
    def completed_count(self) -> int:
        return sum(1 for state in self.decisions if state != DecisionState.PENDING)

    @property
    def is_complete(self) -> bool:
        return self.current_index < 0

    @property
    def replacements(self) -> Dict[str, str]:
        """Serialized accepted instructions, keyed in the order they must be applied."""
        keys = [
            key
            for key in (create_entry_key(a.entry.type, a.entry_index) for a in self.actionable_entries)
            if key in self._instructions
        ]
        return {
            key: serialize_instruction(self._instructions[key])
            for key in order_for_application(keys, self._instructions)
        }

    def accept(self) -> Optional[HistoryRecord]:
        """Accepts the current entry and moves on. Returns the pushed history record."""
        if self.current is None:
            return None
        record = self._accept(self.current_index)
        self._advance(self.current_index + 1)
        return record

    def skip(self) -> None:
        if self.current is None:
            return
        self.decisions[self.current_index] = DecisionState.SKIPPED
        self._advance(self.current_index + 1)

    def undo(self) -> Optional[HistoryRecord]:
        """
        Reverts the most recent acceptance: its instruction leaves the map and the
        entry becomes pending again and current. Returns None when there is nothing to undo.
        """
        record = self.history.undo()
        if record is None:
            return None
        self._instructions.pop(record.key, None)
        self.decisions[record.entry_index] = DecisionState.PENDING
        self.current_index = record.entry_index
        logger.debug(f"Undid replacement '{record.key}'")
        return record

    def accept_all(self) -> Dict[str, str]:
        """Batch mode: accepts every actionable entry and returns the replacement map."""
        self.history.clear()
        self._instructions = {}
        for position in range(self.total):
            self._accept(position)
        self.current_index = -1
        return self.replacements

    def _accept(self, position: int) -> HistoryRecord:
        actionable = self.actionable_entries[position]
        entries = self.comparison.diffs.entries
        instruction = build_instruction(
            entries, actionable.entry_index, self.comparison.original, self.comparison.formatted
        )
        key = create_entry_key(actionable.entry.type, actionable.entry_index)
        self._instructions[key] = instruction

        if instruction.type == DiffType.REMOVED:
            history_entry = HistoryEntry(type=instruction.type, original=instruction.snippet, formatted="")
        else:
            history_entry = HistoryEntry(
                type=instruction.type, original=instruction.anchor or "", formatted=instruction.snippet
            )

        record = HistoryRecord(key=key, entry_index=position, entry=history_entry)
        self.history.push(record)
        self.decisions[position] = DecisionState.ACCEPTED
        return record

    def _advance(self, start: int) -> None:
        for idx in range(start, len(self.decisions)):
            if self.decisions[idx] == DecisionState.PENDING:
                self.current_index = idx
                return
        self.current_index = -1

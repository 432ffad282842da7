from typing import List, Optional

from sdiff.models import HistoryRecord


class ReplacementHistory:
    """
    Undo stack of accepted decisions, owned by a single session.

    Only tracks order. Dropping the replacement-map entry and resetting the
    decision state on undo is up to the caller.
    """

    def __init__(self):
        self._records: List[HistoryRecord] = []

    def push(self, record: HistoryRecord) -> None:
        self._records.append(record)

    def undo(self) -> Optional[HistoryRecord]:
        """Pops the most recent record, or returns None when nothing is left."""
        if not self._records:
            return None
        return self._records.pop()

    def clear(self) -> None:
        self._records.clear()

    def size(self) -> int:
        return len(self._records)

    def can_undo(self) -> bool:
        return bool(self._records)

    def get_entries(self) -> List[HistoryRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

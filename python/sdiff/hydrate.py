"""
Maps normalized diff entries back to the display text of their paragraphs.
"""

from collections import deque
from typing import Deque, Dict, List, Optional

import structlog

from sdiff.models import DiffEntry, DiffType, ParagraphBlock

logger = structlog.get_logger(__name__)

ParagraphIndex = Dict[str, Deque[str]]


def create_paragraph_index(paragraphs: List[ParagraphBlock]) -> ParagraphIndex:
    """normalized text -> display forms, in document order."""
    index: ParagraphIndex = {}
    for block in paragraphs:
        if not block.normalized:
            continue
        index.setdefault(block.normalized, deque()).append(block.display or block.normalized)
    return index


def take_display(index: ParagraphIndex, key: str) -> Optional[str]:
    queue = index.get(key)
    if not queue:
        return None
    return queue.popleft()


def hydrate_entries(
    entries: List[DiffEntry],
    original_paragraphs: List[ParagraphBlock],
    formatted_paragraphs: List[ParagraphBlock],
) -> List[DiffEntry]:
    """
    Replaces each entry's normalized content with the display form of the
    paragraph it came from. Repeated paragraphs resolve in document order.
    Entries without a match (e.g. partial-line fragments) keep their content.
    """
    original_index = create_paragraph_index(original_paragraphs)
    formatted_index = create_paragraph_index(formatted_paragraphs)

    hydrated: List[DiffEntry] = []
    misses = 0
    for entry in entries:
        key = entry.content
        if entry.type == DiffType.ADDED:
            display = take_display(formatted_index, key)
        elif entry.type == DiffType.REMOVED:
            display = take_display(original_index, key)
        elif entry.type == DiffType.UNCHANGED:
            display = take_display(formatted_index, key)
            if display is None:
                display = take_display(original_index, key)
        else:
            raise ValueError(f"Unknown diff type: {entry.type}")

        if display and display.strip():
            hydrated.append(entry.model_copy(update={"content": display}))
        else:
            misses += 1
            hydrated.append(entry)

    if misses:
        logger.debug(f"{misses} of {len(entries)} entries kept their normalized content")
    return hydrated

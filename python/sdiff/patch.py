"""
Applies replacement instructions to the formatted document.

Instructions are applied one after another, each against the text produced
by the previous one; anchors are searched again every time. Text that can
no longer be found is not an error: removals become no-ops and insertions
fall back to the end of the document.
"""

import re
from typing import Dict, Optional

import structlog

from sdiff.errors import ParseError, ReplacementError
from sdiff.models import AnchorPosition, DiffType, ReplacementInstruction
from sdiff.replacement import deserialize_instruction

logger = structlog.get_logger(__name__)

_NEWLINE_RE = re.compile(r"\r?\n")


def apply_instructions(target: str, original: str, replacements: Dict[str, str]) -> str:
    """
    Applies every serialized instruction of the replacement map, in map order.

    Raises:
        ReplacementError: a payload could not be parsed; the failing key is attached
                          and nothing from the batch is returned.
    """
    result = target
    for key, payload in replacements.items():
        try:
            instruction = deserialize_instruction(payload)
        except ParseError as e:
            logger.error(f"Aborting batch: instruction '{key}' is invalid: {e}")
            raise ReplacementError(key, e) from e
        result = apply_instruction(result, instruction, original)
    return result


def apply_instruction(target: str, instruction: ReplacementInstruction, original: str) -> str:
    if instruction.type == DiffType.ADDED:
        return remove_snippet(target, instruction.snippet)

    if instruction.type == DiffType.REMOVED:
        snippet = instruction.snippet or find_snippet_near_anchor(
            original, instruction.anchor, instruction.anchor_position
        )
        return insert_snippet(target, snippet or "", instruction.anchor, instruction.anchor_position)

    raise ValueError(f"Cannot apply instruction of type '{instruction.type.value}'")


def find_snippet_near_anchor(
    text: str,
    anchor: Optional[str],
    position: AnchorPosition = AnchorPosition.AFTER,
) -> Optional[str]:
    """
    Recovers a snippet from the original document: the nearest non-blank line
    before (or after) an occurrence of the anchor. Occurrences are tried last
    to first for `before`, first to last for `after`.
    """
    if not anchor:
        return None

    normalized_text = text.replace("\r", "")
    normalized_anchor = anchor.replace("\r", "")
    if not normalized_anchor:
        return None

    locations = [m.start() for m in re.finditer(re.escape(normalized_anchor), normalized_text)]
    if not locations:
        return None

    if position == AnchorPosition.BEFORE:
        for location in reversed(locations):
            candidate = _extract_line_before(normalized_text, location)
            if candidate:
                return candidate
    else:
        for location in locations:
            candidate = _extract_line_after(normalized_text, location + len(normalized_anchor))
            if candidate:
                return candidate

    return None


def _extract_line_after(text: str, start_idx: int) -> Optional[str]:
    for segment in text[start_idx:].split("\n"):
        if segment.strip():
            return segment
    return None


def _extract_line_before(text: str, anchor_idx: int) -> Optional[str]:
    for segment in reversed(text[:anchor_idx].split("\n")):
        if segment.strip():
            return segment
    return None


def remove_snippet(source: str, snippet: str) -> str:
    """
    Removes the first occurrence of snippet from source.

    1. Contiguous block of lines equal to the snippet's non-blank lines (trimmed)
    2. Direct substring match
    Returns source unchanged when neither matches.
    """
    if not snippet:
        return source

    sanitized = snippet.replace("\r", "")
    snippet_lines = [line for line in sanitized.split("\n") if line.strip()]

    if snippet_lines:
        source_lines = _NEWLINE_RE.split(source)
        wanted = [line.strip() for line in snippet_lines]
        count = len(wanted)
        for i in range(len(source_lines) - count + 1):
            if all(source_lines[i + j].strip() == wanted[j] for j in range(count)):
                del source_lines[i : i + count]
                _collapse_blank_seam(source_lines, i)
                return "\n".join(source_lines)

    fallback = _remove_direct_match(source, sanitized)
    if fallback is None:
        logger.debug(f"Snippet not found, nothing removed: '{sanitized[:50]}'")
        return source
    return fallback


def _collapse_blank_seam(lines, index: int) -> None:
    """Drops one blank line where the removal left two of them next to each other."""
    if index >= len(lines) or lines[index].strip():
        return
    if index == 0 or not lines[index - 1].strip():
        del lines[index]


def _remove_direct_match(source: str, needle: str) -> Optional[str]:
    if not needle:
        return None
    for candidate in (needle, f"{needle}\n", f"\n{needle}"):
        index = source.find(candidate)
        if index == -1:
            continue
        before = source[:index]
        after = source[index + len(candidate) :]
        if before.endswith("\n") and after.startswith("\n"):
            after = after[1:]
        return before + after
    return None


def insert_snippet(
    source: str,
    snippet: str,
    anchor: Optional[str] = None,
    anchor_position: AnchorPosition = AnchorPosition.AFTER,
) -> str:
    """
    Inserts snippet as its own line next to the line holding the anchor.
    Without a usable anchor the snippet is appended at the end of the document.
    """
    if not snippet:
        logger.debug("Nothing to insert: empty snippet and no recoverable text near the anchor")
        return source

    insertion = snippet.rstrip("\r\n")

    anchor_index = source.find(anchor) if anchor else -1
    if anchor_index == -1:
        if anchor:
            logger.debug(f"Anchor not found, appending at end of document: '{anchor[:50]}'")
        return _append(source, insertion)

    if anchor_position == AnchorPosition.BEFORE:
        line_start = source.rfind("\n", 0, anchor_index) + 1
        head = source[:line_start]
        # Keep the paragraph separator when the anchor starts a paragraph.
        separator = "\n\n" if head.endswith("\n\n") else "\n"
        return head + insertion + separator + source[line_start:]

    line_end = source.find("\n", anchor_index + len(anchor))
    if line_end == -1:
        line_end = len(source)
    tail = source[line_end:]
    separator = "\n\n" if tail.startswith("\n\n") else "\n"
    return source[:line_end] + separator + insertion + tail


def _append(source: str, insertion: str) -> str:
    head = source.rstrip()
    if not head:
        return insertion + "\n"
    return f"{head}\n{insertion}\n"

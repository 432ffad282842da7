"""
Turns accepted diff entries into anchor-relative replacement instructions.

Instructions are stored as JSON strings in a replacement map keyed by
"{type}:{entry_index}", which decouples deciding from applying.
"""

import json
import re
from typing import Dict, Iterable, List, Optional

import structlog
from pydantic import ValidationError

from sdiff.errors import ParseError
from sdiff.models import AnchorPosition, DiffEntry, DiffType, FileComparison, ReplacementInstruction

logger = structlog.get_logger(__name__)

_NEWLINE_RE = re.compile(r"\r?\n")
_BLANK_LINE_RE = re.compile(r"\n[ \t]*\n")
_WHITESPACE_RE = re.compile(r"\s+")

REQUIRED_FIELDS = ("type", "snippet")


def create_entry_key(entry_type: DiffType, entry_index: int) -> str:
    return f"{DiffType(entry_type).value}:{entry_index}"


def find_matching_line(text: str, content: str) -> Optional[str]:
    """
    Finds the document line that holds `content`, using progressive strategies:
      1. Exact line match
      2. Trimmed line match
      3. Substring containment
      4. Whole paragraph whose collapsed whitespace equals `content`
         (hydrated content joins soft-wrapped lines with spaces)

    Returns the line (or paragraph) as it appears in the text, or None.
    """
    needle = content.strip()
    if not needle:
        return None

    lines = _NEWLINE_RE.split(text)

    # 1. Exact
    for line in lines:
        if line == content:
            return line

    # 2. Trimmed
    for line in lines:
        if line.strip() == needle:
            return line

    # 3. Containment
    for line in lines:
        if needle in line:
            return line

    # 4. Soft-wrapped paragraph
    collapsed = _WHITESPACE_RE.sub(" ", needle)
    for block in _BLANK_LINE_RE.split(text.replace("\r\n", "\n")):
        if _WHITESPACE_RE.sub(" ", block).strip() == collapsed:
            return block.strip("\n")

    return None


def find_snippet(entry: DiffEntry, original_text: str, formatted_text: str) -> str:
    """Literal text of an actionable entry in the document it belongs to."""
    if entry.type == DiffType.ADDED:
        source = formatted_text
    elif entry.type == DiffType.REMOVED:
        source = original_text
    else:
        raise ValueError(f"Entry of type '{entry.type.value}' has no snippet")
    line = find_matching_line(source, entry.content)
    return line if line is not None else entry.content


def find_anchor(entries: List[DiffEntry], entry_index: int, formatted_text: str) -> Optional[str]:
    """
    Nearest unchanged entry before `entry_index`, as it reads in the formatted text.
    Returns None when the entry is preceded by no unchanged entry.
    """
    for idx in range(entry_index - 1, -1, -1):
        candidate = entries[idx]
        if candidate.type == DiffType.UNCHANGED:
            line = find_matching_line(formatted_text, candidate.content)
            return line if line is not None else candidate.content
    return None


def build_instruction(
    entries: List[DiffEntry],
    entry_index: int,
    original_text: str,
    formatted_text: str,
) -> ReplacementInstruction:
    entry = entries[entry_index]
    if not entry.is_actionable:
        raise ValueError(f"Entry {entry_index} is '{entry.type.value}' and cannot be replaced")

    return ReplacementInstruction(
        type=entry.type,
        snippet=find_snippet(entry, original_text, formatted_text),
        anchor=find_anchor(entries, entry_index, formatted_text),
        anchor_position=AnchorPosition.AFTER,
    )


def serialize_instruction(instruction: ReplacementInstruction) -> str:
    return instruction.model_dump_json()


def deserialize_instruction(payload: str) -> ReplacementInstruction:
    """
    Parses a payload produced by serialize_instruction.
    Raises ParseError when it is not a JSON object or lacks `type` / `snippet`.
    """
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Instruction payload is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("Instruction payload must be a JSON object")

    missing = [field for field in REQUIRED_FIELDS if data.get(field) is None]
    if missing:
        raise ParseError(f"Instruction payload is missing required field(s): {', '.join(missing)}")

    try:
        return ReplacementInstruction.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"Invalid instruction payload: {e}") from e


def order_for_application(keys: List[str], instructions: Dict[str, ReplacementInstruction]) -> List[str]:
    """
    Application order for instructions given in diff order.

    Keys are grouped into runs that share an anchor. Removed entries of a run
    are each inserted right next to the anchor, so they are applied last to
    first to land in document order; added entries of the run go first.
    """
    ordered: List[str] = []
    run: List[str] = []

    def flush():
        ordered.extend(key for key in run if instructions[key].type != DiffType.REMOVED)
        ordered.extend(key for key in reversed(run) if instructions[key].type == DiffType.REMOVED)
        run.clear()

    for key in keys:
        if run and instructions[run[-1]].anchor != instructions[key].anchor:
            flush()
        run.append(key)
    flush()
    return ordered


def build_replacement_map(
    comparison: FileComparison,
    entry_indices: Optional[Iterable[int]] = None,
) -> Dict[str, str]:
    """
    Serialized instructions for the selected entries (all actionable entries by default),
    keyed in application order (see order_for_application).
    """
    entries = comparison.diffs.entries
    selected = None if entry_indices is None else set(entry_indices)

    instructions: Dict[str, ReplacementInstruction] = {}
    for idx, entry in enumerate(entries):
        if not entry.is_actionable:
            continue
        if selected is not None and idx not in selected:
            continue
        instruction = build_instruction(entries, idx, comparison.original, comparison.formatted)
        instructions[create_entry_key(entry.type, idx)] = instruction

    replacements = {
        key: serialize_instruction(instructions[key])
        for key in order_for_application(list(instructions), instructions)
    }
    logger.debug(f"Built {len(replacements)} replacement instructions")
    return replacements

import re
from typing import Callable, Dict, List, Tuple

import regex
import structlog
from diff_match_patch import diff_match_patch

from sdiff.models import DiffEntry, DiffResult, DiffType, Granularity

logger = structlog.get_logger(__name__)

_OP_TYPES = {
    diff_match_patch.DIFF_EQUAL: DiffType.UNCHANGED,
    diff_match_patch.DIFF_DELETE: DiffType.REMOVED,
    diff_match_patch.DIFF_INSERT: DiffType.ADDED,
}

_GRAPHEME_RE = regex.compile(r"\X")
_LINE_SPLIT_RE = re.compile(r"(\n)")


def generate_diff(
    source: str,
    target: str,
    timeout: float = 0.0,
    granularity: Granularity = Granularity.CHARACTER,
) -> DiffResult:
    """
    Compares two normalized documents and classifies the minimal edit script
    into added / removed / unchanged entries, one per non-blank line fragment.

    Args:
        source: Normalized original text (paragraphs joined by newlines).
        target: Normalized formatted text.
        timeout: Alignment budget in seconds. 0 keeps the edit script minimal.
        granularity: Unit of alignment, grapheme clusters or whole lines.
    """
    entries: List[DiffEntry] = []
    source_line = 1
    target_line = 1

    for op, text in compute_edit_script(source, target, timeout=timeout, granularity=granularity):
        entry_type = _OP_TYPES[op]
        for i, fragment in enumerate(text.split("\n")):
            if i > 0:
                # An equal span exists in both documents, so it advances both counters.
                if op != diff_match_patch.DIFF_INSERT:
                    source_line += 1
                if op != diff_match_patch.DIFF_DELETE:
                    target_line += 1
            if not fragment.strip():
                continue
            line_number = target_line if entry_type == DiffType.ADDED else source_line
            entries.append(DiffEntry(type=entry_type, content=fragment, line_number=line_number))

    result = DiffResult.from_entries(entries)
    logger.debug(
        "diff generated",
        total=result.summary.total,
        added=result.summary.added,
        removed=result.summary.removed,
        unchanged=result.summary.unchanged,
    )
    return result


def compute_edit_script(
    source: str,
    target: str,
    timeout: float = 0.0,
    granularity: Granularity = Granularity.CHARACTER,
) -> List[Tuple[int, str]]:
    """
    Returns [(op, text), ...] with op in {-1, 0, 1} covering both inputs in order.

    diff_match_patch runs Myers' bisection (linear space). With Diff_Timeout = 0
    there is no deadline and the half-match shortcut is disabled, so the
    script has the fewest possible inserted + deleted units.
    Units (grapheme clusters or lines) are encoded as single code points first
    so they are never split.
    """
    if not source and not target:
        return []

    dmp = diff_match_patch()
    dmp.Diff_Timeout = timeout

    tokenize = split_lines if granularity == Granularity.PARAGRAPH else split_graphemes

    # 1. Tokenization & Encoding
    chars1, chars2, token_array = _tokens_to_chars(source, target, tokenize)

    # 2. Compute Diff on the Encoded Strings
    diffs = dmp.diff_main(chars1, chars2, False)

    # 3. Decode back to Text
    dmp.diff_charsToLines(diffs, token_array)

    # 4. Slide single edits onto line boundaries. Only shifts edits sideways,
    # so the number of inserted/deleted units is unchanged.
    if granularity == Granularity.CHARACTER:
        dmp.diff_cleanupSemanticLossless(diffs)

    return [(op, text) for op, text in diffs if text]


def split_lines(text: str) -> List[str]:
    """Lines and the newlines between them, as separate tokens."""
    return [token for token in _LINE_SPLIT_RE.split(text) if token]


def split_graphemes(text: str) -> List[str]:
    """
    Splits text into extended grapheme clusters (UAX #29): combining marks,
    Hangul syllable sequences, emoji modifier and ZWJ sequences and flags
    each stay one unit.
    """
    return _GRAPHEME_RE.findall(text)


def _tokens_to_chars(
    text1: str, text2: str, tokenize: Callable[[str], List[str]]
) -> Tuple[str, str, List[str]]:
    """
    Splits both texts into tokens and encodes them as unique Unicode characters.
    """
    token_array: List[str] = []
    token_hash: Dict[str, int] = {}

    def encode_text(text: str) -> str:
        encoded_chars = []
        for token in tokenize(text):
            if token in token_hash:
                encoded_chars.append(chr(token_hash[token]))
            else:
                code = len(token_array)
                token_hash[token] = code
                token_array.append(token)
                encoded_chars.append(chr(code))
        return "".join(encoded_chars)

    chars1 = encode_text(text1)
    chars2 = encode_text(text2)
    return chars1, chars2, token_array

"""
Text normalization for comparison.

Two documents that differ only in markup or soft line-wrapping normalize to
the same paragraphs. Folding full-width/half-width forms, dash variants and
trailing punctuation is opt-in (normalize_line). Every paragraph keeps a
lightly cleaned display form so results can be shown with the original markup.
"""

import re
import unicodedata
from typing import List

import structlog

from sdiff.models import ParagraphBlock

logger = structlog.get_logger(__name__)

# Ideographic space, NBSP and the typographic spaces of the U+2000 block.
_SPACE_VARIANTS_RE = re.compile(r"[\t\v\f\u00a0\u1680\u2000-\u200a\u202f\u205f\u3000]")
# Zero-width characters leak in from PDF/Word exports.
_ZERO_WIDTH_RE = re.compile(r"[\u200b\u200c\u200d\u2060\ufeff]")
_DASH_VARIANTS_RE = re.compile(r"[\u2010-\u2015\u2043\u2212\ufe58\ufe63\uff0d]")
_TILDE_VARIANTS_RE = re.compile(r"[\u02dc\u223c\u301c\uff5e]")
_TRAILING_PUNCTUATION_RE = re.compile(r"[\u3002\uff0e.\uff01!\uff1f?]+$")

_CJK = r"\u3005\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff"
_SPURIOUS_SPACE_RE = re.compile(rf"(?<=[{_CJK}]) (?=[{_CJK}0-9])|(?<=[0-9]) (?=[{_CJK}])")

_WHITESPACE_RE = re.compile(r"\s+")
_PARAGRAPH_BREAK_RE = re.compile(r"\n[ \t]*\n\s*")

# Markdown syntax, applied in order with re.MULTILINE.
_MARKDOWN_RULES = [
    # Code fence lines (the fenced content itself is kept for comparison)
    (re.compile(r"^[ \t]*(```|~~~)[^\n]*$", re.MULTILINE), ""),
    # Horizontal rules (---, ***, ___)
    (re.compile(r"^[ \t]*(-{3,}|\*{3,}|_{3,})[ \t]*$", re.MULTILINE), ""),
    # Headers
    (re.compile(r"^[ \t]*#{1,6}[ \t]+", re.MULTILINE), ""),
    # Blockquotes, possibly nested
    (re.compile(r"^[ \t]*(?:>[ \t]?)+", re.MULTILINE), ""),
    # Unordered list markers
    (re.compile(r"^[ \t]*[-*+][ \t]+", re.MULTILINE), ""),
    # Bold
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),
    (re.compile(r"__(.+?)__"), r"\1"),
    # Italic (underscores only at word boundaries so snake_case survives)
    (re.compile(r"\*(.+?)\*"), r"\1"),
    (re.compile(r"(?<![A-Za-z0-9])_(.+?)_(?![A-Za-z0-9])"), r"\1"),
    # Inline code
    (re.compile(r"`(.+?)`"), r"\1"),
    # Images and links [text](url)
    (re.compile(r"!?\[(.+?)\]\(.+?\)"), r"\1"),
    # Reference links [text][ref]
    (re.compile(r"\[(.+?)\]\[.*?\]"), r"\1"),
    # Embedded HTML tags
    (re.compile(r"<[^>\n]+>"), ""),
    (re.compile(r"  +"), " "),
]


def strip_markdown(text: str) -> str:
    """
    Remove Markdown syntax from text.
    Handles: headers (#), bold (**), italic (*), code, links, rules, lists, quotes, HTML tags.
    """
    result = text
    for pattern, replacement in _MARKDOWN_RULES:
        result = pattern.sub(replacement, result)
    return result


def normalize_for_comparison(text: str) -> str:
    """Strip Markdown and collapse every whitespace run to a single space."""
    return _WHITESPACE_RE.sub(" ", strip_markdown(text)).strip()


def normalize_line(line: str) -> str:
    """
    Canonicalizes a single line so that reformatted text compares equal:
    NFKC, whitespace and dash/tilde variants folded to ASCII, trailing
    sentence punctuation dropped, spaces wedged between CJK characters
    and digits removed, whitespace runs collapsed.
    """
    text = unicodedata.normalize("NFKC", line)
    text = _ZERO_WIDTH_RE.sub("", text)
    text = _SPACE_VARIANTS_RE.sub(" ", text)
    text = _DASH_VARIANTS_RE.sub("-", text)
    text = _TILDE_VARIANTS_RE.sub("~", text)
    text = text.strip()
    text = _TRAILING_PUNCTUATION_RE.sub("", text).rstrip()
    # Single spaces only; wider gaps are treated as intentional and collapsed below.
    text = _SPURIOUS_SPACE_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _split_paragraphs(text: str) -> List[str]:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return [block for block in _PARAGRAPH_BREAK_RE.split(text) if block.strip()]


def extract_paragraph_mappings(text: str, fold_unicode: bool = False) -> List[ParagraphBlock]:
    """
    Splits a document into paragraph blocks in document order.

    Args:
        text: Raw document text (Markdown or plain).
        fold_unicode: If True, the normalized form also goes through normalize_line.

    Returns:
        One ParagraphBlock per non-empty paragraph. Paragraphs whose normalized
        form is empty (e.g. a lone horizontal rule) are dropped.
    """
    blocks: List[ParagraphBlock] = []
    for raw in _split_paragraphs(text):
        # Markup is stripped line by line before soft wraps are joined,
        # so line-anchored syntax (lists, quotes) is still recognized.
        normalized = normalize_for_comparison(raw)
        if fold_unicode:
            normalized = normalize_line(normalized)
        if not normalized:
            logger.debug(f"Dropping paragraph with empty normalized form: '{raw[:40]}'")
            continue
        display = _WHITESPACE_RE.sub(" ", raw).strip()
        blocks.append(ParagraphBlock(normalized=normalized, display=display))
    return blocks


def normalize_document_text(text: str, fold_unicode: bool = False) -> str:
    """Normalized paragraphs joined by single newlines, i.e. the diff engine input."""
    return "\n".join(block.normalized for block in extract_paragraph_mappings(text, fold_unicode))

"""
Core processor for file comparison and reconciliation.
"""

from pathlib import Path
from typing import Dict, Optional, Union

import structlog

from sdiff.diff import generate_diff
from sdiff.errors import DocumentIOError
from sdiff.hydrate import hydrate_entries
from sdiff.models import DiffOptions, DiffResult, FileComparison
from sdiff.normalize import extract_paragraph_mappings
from sdiff.patch import apply_instructions

logger = structlog.get_logger(__name__)

PathLike = Union[str, Path]


def read_text(path: PathLike) -> str:
    p = Path(path)
    if not p.exists():
        raise DocumentIOError(str(path), "File not found")
    try:
        with open(p, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentIOError(str(path), f"Could not read file ({e})") from e


def write_text(path: PathLike, content: str) -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise DocumentIOError(str(path), f"Could not write file ({e})") from e


def compare_texts(original_text: str, formatted_text: str, options: Optional[DiffOptions] = None) -> FileComparison:
    """
    Compares two documents paragraph-aware.

    Both texts are reduced to normalized paragraphs, aligned, and the resulting
    entries are hydrated back to the display form of their paragraphs.
    """
    options = options or DiffOptions()

    original_paragraphs = extract_paragraph_mappings(original_text, fold_unicode=options.fold_unicode)
    formatted_paragraphs = extract_paragraph_mappings(formatted_text, fold_unicode=options.fold_unicode)

    normalized_original = "\n".join(p.normalized for p in original_paragraphs)
    normalized_formatted = "\n".join(p.normalized for p in formatted_paragraphs)

    raw_diffs = generate_diff(
        normalized_original,
        normalized_formatted,
        timeout=options.diff_timeout,
        granularity=options.granularity,
    )
    entries = hydrate_entries(raw_diffs.entries, original_paragraphs, formatted_paragraphs)

    logger.info(
        "texts compared",
        paragraphs_original=len(original_paragraphs),
        paragraphs_formatted=len(formatted_paragraphs),
        added=raw_diffs.summary.added,
        removed=raw_diffs.summary.removed,
    )
    return FileComparison(
        original=original_text,
        formatted=formatted_text,
        diffs=DiffResult(entries=entries, summary=raw_diffs.summary),
    )


def compare_files(
    original_path: PathLike, formatted_path: PathLike, options: Optional[DiffOptions] = None
) -> FileComparison:
    original_text = read_text(original_path)
    formatted_text = read_text(formatted_path)
    return compare_texts(original_text, formatted_text, options)


def apply_replacements(formatted_text: str, original_text: str, replacements: Dict[str, str]) -> str:
    """Applies a replacement map to the formatted text without touching any file."""
    if not replacements:
        return formatted_text
    return apply_instructions(formatted_text, original_text, replacements)


def apply_replacements_to_file(
    original_path: PathLike,
    formatted_path: PathLike,
    replacements: Dict[str, str],
) -> str:
    """
    Reconciles the formatted file with the accepted replacements and overwrites it.

    Returns the new content of the formatted file. With an empty replacement map
    the file is left untouched.

    Raises:
        DocumentIOError: either document cannot be read, or the result cannot be written.
        ReplacementError: a stored instruction cannot be parsed; nothing is written.
    """
    original = read_text(original_path)
    formatted = read_text(formatted_path)

    if not replacements:
        return formatted

    result = apply_instructions(formatted, original, replacements)
    write_text(formatted_path, result)
    logger.info(f"Applied {len(replacements)} replacements to {formatted_path}")
    return result

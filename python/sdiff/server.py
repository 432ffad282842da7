import logging
import sys
from typing import List, Optional

import structlog
from mcp.server.fastmcp import FastMCP

from sdiff.models import DiffOptions, DiffType, Granularity
from sdiff.processor import apply_replacements, apply_replacements_to_file, compare_files, write_text
from sdiff.session import ReplacementSession

# --- LOGGING CONFIGURATION ---
# MCP communicates over stdio.
# CRITICAL: All logs must go to stderr. Any print to stdout will break the JSON-RPC protocol.
logging.basicConfig(stream=sys.stderr, level=logging.INFO, force=True)

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)

mcp = FastMCP("sdiff Reconciliation Service")

_MARKERS = {DiffType.ADDED: "+", DiffType.REMOVED: "-", DiffType.UNCHANGED: " "}


def _options(fold_unicode: bool, paragraph_mode: bool) -> DiffOptions:
    granularity = Granularity.PARAGRAPH if paragraph_mode else Granularity.CHARACTER
    return DiffOptions(fold_unicode=fold_unicode, granularity=granularity)


@mcp.tool()
def diff_text_files(
    original_path: str,
    formatted_path: str,
    include_unchanged: bool = False,
    fold_unicode: bool = False,
    paragraph_mode: bool = False,
) -> str:
    """
    Compares a source text/Markdown file with a reformatted version of it.

    Args:
        original_path: Path to the source document.
        formatted_path: Path to the reformatted document.
        include_unchanged: If True, unchanged paragraphs are listed too.
        fold_unicode: If True, full-width/half-width forms, dash variants, CJK spacing
                      and trailing sentence punctuation are ignored. Off by default.
        paragraph_mode: If True, whole paragraphs are aligned instead of characters.

    Returns:
        A summary line followed by one line per entry: '<marker> <key> <content>'.
        Keys (e.g. 'removed:4') can be passed to reconcile_text_files.
    """
    try:
        comparison = compare_files(original_path, formatted_path, _options(fold_unicode, paragraph_mode))
        summary = comparison.diffs.summary
        if summary.added == 0 and summary.removed == 0:
            return "No text differences found between the documents."

        output = [
            f"--- {original_path}",
            f"+++ {formatted_path}",
            f"Total: {summary.total}, added: {summary.added}, removed: {summary.removed}, "
            f"unchanged: {summary.unchanged}",
            "",
        ]
        for idx, entry in enumerate(comparison.diffs.entries):
            if entry.type == DiffType.UNCHANGED and not include_unchanged:
                continue
            output.append(f"{_MARKERS[entry.type]} {entry.type.value}:{idx} {entry.content}")
        return "\n".join(output)

    except Exception as e:
        return f"Error computing diff: {str(e)}"


@mcp.tool()
def list_replacements(
    original_path: str, formatted_path: str, fold_unicode: bool = False, paragraph_mode: bool = False
) -> str:
    """
    Shows the replacement instruction that accepting each difference would produce.
    'added' entries are removed from the formatted file; 'removed' entries are
    re-inserted after their anchor line.
    """
    try:
        comparison = compare_files(original_path, formatted_path, _options(fold_unicode, paragraph_mode))
        replacements = ReplacementSession(comparison).accept_all()
        if not replacements:
            return "No replacements available."
        return "\n".join(f"{key}: {payload}" for key, payload in replacements.items())
    except Exception as e:
        return f"Error listing replacements: {str(e)}"


@mcp.tool()
def reconcile_text_files(
    original_path: str,
    formatted_path: str,
    keys: Optional[List[str]] = None,
    output_path: Optional[str] = None,
    fold_unicode: bool = False,
    paragraph_mode: bool = False,
) -> str:
    """
    Accepts differences and writes them back into the formatted document.

    Args:
        original_path: Path to the source document.
        formatted_path: Path to the reformatted document.
        keys: Optional. Entry keys from diff_text_files to accept. All differences are
              accepted when omitted.
        output_path: Optional. If not provided, the formatted file is overwritten.
        fold_unicode: Must match the value used when listing the keys.
        paragraph_mode: Must match the value used when listing the keys.
    """
    try:
        comparison = compare_files(original_path, formatted_path, _options(fold_unicode, paragraph_mode))
        replacements = ReplacementSession(comparison).accept_all()
        if keys:
            replacements = {key: payload for key, payload in replacements.items() if key in keys}
        if not replacements:
            return "No replacements to apply."

        if output_path:
            result = apply_replacements(comparison.formatted, comparison.original, replacements)
            write_text(output_path, result)
        else:
            apply_replacements_to_file(original_path, formatted_path, replacements)
            output_path = formatted_path

        return f"Applied {len(replacements)} replacements. Saved to: {output_path}"

    except Exception as e:
        return f"Error applying replacements: {str(e)}"


def main():
    mcp.run()


if __name__ == "__main__":
    main()

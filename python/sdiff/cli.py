import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict

import structlog

from sdiff import __version__
from sdiff.errors import SdiffError
from sdiff.models import DiffOptions, DiffType, FileComparison, Granularity
from sdiff.processor import apply_replacements, apply_replacements_to_file, compare_files, write_text
from sdiff.session import ReplacementSession

_MARKERS = {
    DiffType.ADDED: "[+]",
    DiffType.REMOVED: "[-]",
    DiffType.UNCHANGED: "   ",
}


def _configure_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _options_from_args(args: argparse.Namespace) -> DiffOptions:
    return DiffOptions(
        fold_unicode=args.fold,
        granularity=Granularity(args.granularity),
    )


def _compare(args: argparse.Namespace) -> FileComparison:
    return compare_files(args.original, args.formatted, _options_from_args(args))


def handle_diff(args):
    comparison = _compare(args)
    diffs = comparison.diffs

    if args.json:
        print(json.dumps(diffs.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return

    summary = diffs.summary
    print(
        f"Total: {summary.total}  Added: {summary.added}  Removed: {summary.removed}  Unchanged: {summary.unchanged}",
        file=sys.stderr,
    )

    shown = 0
    for idx, entry in enumerate(diffs.entries):
        if entry.type == DiffType.UNCHANGED and not args.all:
            continue
        if args.limit and shown >= args.limit:
            print("... more entries not shown (raise --limit)", file=sys.stderr)
            break
        print(f"{_MARKERS[entry.type]} {entry.line_number:>5} {entry.type.value}:{idx}  {entry.content}")
        shown += 1

    if summary.added == 0 and summary.removed == 0:
        print("No differences found.", file=sys.stderr)


def _select_replacements(comparison: FileComparison, only) -> Dict[str, str]:
    replacements = ReplacementSession(comparison).accept_all()
    if not only:
        return replacements

    unknown = [key for key in only if key not in replacements]
    for key in unknown:
        print(f"Warning: no actionable entry '{key}'", file=sys.stderr)
    return {key: payload for key, payload in replacements.items() if key in only}


def handle_apply(args):
    comparison = _compare(args)
    replacements = _select_replacements(comparison, args.only)

    if not replacements:
        print("No replacements to apply.", file=sys.stderr)
        return

    print(f"Applying {len(replacements)} replacements...", file=sys.stderr)

    if args.dry_run:
        sys.stdout.write(apply_replacements(comparison.formatted, comparison.original, replacements))
        return

    if args.output:
        result = apply_replacements(comparison.formatted, comparison.original, replacements)
        write_text(args.output, result)
        output_path = args.output
    else:
        apply_replacements_to_file(args.original, args.formatted, replacements)
        output_path = args.formatted

    print(f"✅ Saved to {output_path}", file=sys.stderr)


def main():
    parser = argparse.ArgumentParser(prog="sdiff", description="sdiff: paragraph-aware diff and reconciliation")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", action="store_true", help="Log debug information to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Subcommands")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("original", type=Path, help="Original (source) document")
    common.add_argument("formatted", type=Path, help="Reformatted document")
    common.add_argument(
        "--fold",
        action="store_true",
        help="Fold Unicode variants (NFKC, dashes, CJK spacing, trailing punctuation) before comparing",
    )
    common.add_argument(
        "--granularity",
        choices=[g.value for g in Granularity],
        default=Granularity.CHARACTER.value,
        help="Align characters (default) or whole paragraphs",
    )

    p_diff = subparsers.add_parser("diff", parents=[common], help="Show the differences between two documents")
    p_diff.add_argument("--json", action="store_true", help="Output the diff result as JSON")
    p_diff.add_argument("--all", action="store_true", help="Also list unchanged entries")
    p_diff.add_argument("--limit", type=int, default=0, help="Show at most N entries")
    p_diff.set_defaults(func=handle_diff)

    p_apply = subparsers.add_parser(
        "apply",
        parents=[common],
        help="Accept differences and write them back into the formatted document",
    )
    p_apply.add_argument(
        "--only",
        nargs="+",
        metavar="KEY",
        help="Accept only these entries (keys as printed by 'diff', e.g. removed:3)",
    )
    p_apply.add_argument("--dry-run", action="store_true", help="Print the result instead of writing it")
    p_apply.add_argument("-o", "--output", type=Path, help="Write to this path instead of overwriting FORMATTED")
    p_apply.set_defaults(func=handle_apply)

    args = parser.parse_args()
    _configure_logging(args.verbose)

    try:
        args.func(args)
    except SdiffError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

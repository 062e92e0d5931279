"""CLI entrypoint for checking typing content."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Mapping, Sequence

from pinyin_typing.content.repository import ContentRepository
from pinyin_typing.models import Category, ContentIssue, WordItem
from pinyin_typing.reporting.report_md import build_report_md
from pinyin_typing.validation import (
    collect_alignment_issues,
    collect_category_counts,
    collect_unknown_syllables,
)


def _format_table(headers: Sequence[str], data_rows: Sequence[Sequence[str]]) -> str:
    """Lay out a count summary (category, issue kind or syllable) for the terminal.

    Count cells are right-aligned so totals line up; labels stay left-aligned.
    """

    widths = [max([len(header), *(len(row[idx]) for row in data_rows)]) for idx, header in enumerate(headers)]

    def cell(value: str, idx: int) -> str:
        return value.rjust(widths[idx]) if value.isdigit() else value.ljust(widths[idx])

    lines = [" | ".join(header.ljust(widths[idx]) for idx, header in enumerate(headers))]
    lines.append("-+-".join("-" * width for width in widths))
    lines.extend(" | ".join(cell(value, idx) for idx, value in enumerate(row)) for row in data_rows)
    return "\n".join(lines)


def build_arg_parser() -> argparse.ArgumentParser:
    """Construct CLI argument parser.

    Returns:
        Configured parser with the ``check`` subcommand.
    """

    parser = argparse.ArgumentParser(description="Pinyin typing content tools.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Check content alignment and typeability.")
    check.add_argument("--content", required=True, type=Path, help="Path to words.json.")
    check.add_argument("--report", type=Path, default=None, help="Markdown report output path.")
    check.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when any alignment issue is found.",
    )
    check.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def load_all_items(repository: ContentRepository) -> dict[Category, Sequence[WordItem]]:
    """Load every non-drill category, including the separately stored ones."""

    loaded: dict[Category, Sequence[WordItem]] = {}
    for category in Category:
        if category.is_practice:
            continue
        items = repository.get_items(category)
        if items:
            loaded[category] = items
    return loaded


def _print_summary(
    category_items: Mapping[Category, Sequence[WordItem]],
    issues: Sequence[ContentIssue],
    unknown_syllables: Mapping[str, int],
) -> None:
    counts = collect_category_counts(category_items)
    print("Items per category:")
    print(_format_table(["category", "item_count"], [[key, str(counts[key])] for key in sorted(counts)]))

    if issues:
        kind_counts: dict[str, int] = {}
        for issue in issues:
            kind_counts[issue.kind] = kind_counts.get(issue.kind, 0) + 1
        print(f"\nWARNING: {len(issues)} alignment issue(s):")
        print(_format_table(["kind", "count"], [[kind, str(kind_counts[kind])] for kind in sorted(kind_counts)]))
    else:
        print("\nAlignment check: no issues.")

    if unknown_syllables:
        top = sorted(unknown_syllables.items(), key=lambda item: (-item[1], item[0]))[:20]
        print(f"\nUnknown syllables ({len(unknown_syllables)} distinct, top {len(top)}):")
        print(_format_table(["token", "count"], [[token, str(count)] for token, count in top]))


def main(argv: Sequence[str] | None = None) -> int:
    """Run the requested command.

    Returns:
        Zero on success, one when ``--strict`` finds issues.
    """

    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.content.exists():
        raise SystemExit(f"Content file not found: {args.content}")

    repository = ContentRepository(args.content)
    category_items = load_all_items(repository)
    issues = collect_alignment_issues(category_items)
    unknown_syllables = collect_unknown_syllables(category_items)

    _print_summary(category_items, issues, unknown_syllables)

    if args.report is not None:
        args.report.write_text(build_report_md(category_items, issues, unknown_syllables), encoding="utf-8")
        print(f"\nWrote report to {args.report}")

    if args.strict and issues:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Markdown report generation for content checks."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from pinyin_typing.models import Category, ContentIssue, WordItem
from pinyin_typing.validation import collect_category_counts


def _markdown_table(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Render one report section as a markdown table.

    Hanzi cells may span several lines, so every cell is escaped. Columns that
    hold only counts are right-aligned.
    """

    body_rows = [[_escape_cell(value) for value in row] for row in rows]
    numeric = [bool(body_rows) and all(row[idx].isdigit() for row in body_rows) for idx in range(len(headers))]
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join("---:" if is_count else "---" for is_count in numeric) + " |",
    ]
    lines.extend("| " + " | ".join(row) + " |" for row in body_rows)
    return "\n".join(lines)


def _escape_cell(value: str) -> str:
    return value.replace("|", "\\|").replace("\n", "⏎")


def build_report_md(
    category_items: Mapping[Category, Sequence[WordItem]],
    issues: Sequence[ContentIssue],
    unknown_syllables: Mapping[str, int],
) -> str:
    """Build the content check markdown report.

    Args:
        category_items: Items grouped by category.
        issues: Alignment and typeability issues.
        unknown_syllables: Display tokens missing from the syllable inventory.

    Returns:
        Full markdown content with summary tables.
    """

    counts = collect_category_counts(category_items)
    count_rows = [(key, str(counts[key])) for key in sorted(counts)]

    issue_rows = [
        (issue.category, str(issue.index), issue.character, issue.kind, issue.detail)
        for issue in sorted(issues, key=lambda item: (item.category, item.index, item.kind))
    ]

    syllable_rows = [
        (token, str(unknown_syllables[token]))
        for token in sorted(unknown_syllables, key=lambda item: (-unknown_syllables[item], item))
    ]

    sections = [
        "# Content Report",
        "",
        "## Items per category",
        _markdown_table(["category", "item_count"], count_rows),
        "",
        "## Alignment issues",
        _markdown_table(["category", "index", "character", "kind", "detail"], issue_rows),
        "",
        "## Unknown syllables",
        _markdown_table(["token", "count"], syllable_rows),
    ]

    return "\n".join(sections) + "\n"

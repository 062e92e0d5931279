"""Validation helpers for content alignment and typeability."""

from __future__ import annotations

from collections import Counter
import re
from typing import Mapping, Sequence

from pinyin_typing.models import Category, ContentIssue, WordItem
from pinyin_typing.pinyin.aligner import align, split_display_lines, unaligned_characters
from pinyin_typing.pinyin.syllables import is_known_syllable
from pinyin_typing.pinyin.transcoder import to_input_form

TYPEABLE_RE = re.compile(r"^[a-z]+$")


def collect_item_issues(item: WordItem, category: Category | None = None, index: int = 0) -> list[ContentIssue]:
    """Check one item for problems that would make it untypeable or misaligned.

    Args:
        item: Content item to check.
        category: Category the item belongs to; ``None`` checks it as Mandarin.
        index: Position of the item in its category, used in messages.

    Returns:
        Issues in discovery order; empty when the item is clean.
    """

    label = category.value if category is not None else "-"
    issues: list[ContentIssue] = []

    def add(kind: str, detail: str) -> None:
        issues.append(ContentIssue(label, index, item.character, kind, detail))

    token_lines = split_display_lines(item.display_pinyin)
    tokens = [token for line in token_lines for token in line]
    if not tokens:
        add("empty_display_pinyin", "displayPinyin has no syllables")
        return issues

    if "\n" in item.character:
        text_lines = item.character.split("\n")
        if len(text_lines) != len(token_lines):
            add(
                "line_count_mismatch",
                f"{len(text_lines)} text line(s) but {len(token_lines)} pinyin line(s)",
            )

    for token in tokens:
        typed = to_input_form(token).lower()
        if not TYPEABLE_RE.fullmatch(typed):
            add("untypeable_token", f"token '{token}' types as '{typed}'")

    if category is None or category.is_pinyin:
        dropped = unaligned_characters(item.character, align(item.character, item.display_pinyin))
        if dropped:
            add("dropped_characters", f"no pinyin left for '{''.join(dropped)}'")

    return issues


def validate_word_items(items: Sequence[WordItem], category: Category | None = None) -> None:
    """Validate that every item can be aligned and typed.

    Args:
        items: Items of one category.
        category: Category of the items.

    Raises:
        ValueError: If any item has issues.
    """

    errors: list[str] = []
    for idx, item in enumerate(items):
        for issue in collect_item_issues(item, category, idx):
            errors.append(f"Item {idx} '{item.character}': {issue.kind}: {issue.detail}")

    if errors:
        preview = "\n".join(f"- {item}" for item in errors[:25])
        rest = len(errors) - min(25, len(errors))
        more = f"\n- ... and {rest} more" if rest > 0 else ""
        raise ValueError(f"Content validation failed with {len(errors)} errors:\n{preview}{more}")


def collect_alignment_issues(category_items: Mapping[Category, Sequence[WordItem]]) -> list[ContentIssue]:
    """Collect item issues across categories without raising."""

    issues: list[ContentIssue] = []
    for category, items in category_items.items():
        for idx, item in enumerate(items):
            issues.extend(collect_item_issues(item, category, idx))
    return issues


def collect_category_counts(category_items: Mapping[Category, Sequence[WordItem]]) -> dict[str, int]:
    """Count items per category key.

    Args:
        category_items: Items grouped by category.

    Returns:
        Dictionary of category key to item count.
    """

    return {category.value: len(items) for category, items in category_items.items()}


def collect_unknown_syllables(category_items: Mapping[Category, Sequence[WordItem]]) -> dict[str, int]:
    """Count display tokens of Mandarin categories that are not known syllables.

    Erhua and typos both show up here; the count helps spot systematic errors.
    """

    counter: Counter[str] = Counter()
    for category, items in category_items.items():
        if not category.is_pinyin:
            continue
        for item in items:
            for line in split_display_lines(item.display_pinyin):
                for token in line:
                    if not is_known_syllable(token):
                        counter[token] += 1
    return dict(counter)

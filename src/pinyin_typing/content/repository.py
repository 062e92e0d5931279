"""Load typing content from the bundled JSON documents."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
import json
import logging
from pathlib import Path
from typing import Any

from pinyin_typing.models import Category, WordItem
from pinyin_typing.pinyin.syllables import generate_display_pinyin
from pinyin_typing.pinyin.transcoder import to_input_form

logger = logging.getLogger(__name__)

# Large collections that live in their own file next to words.json.
LAZY_CATEGORY_FILES = {
    Category.TANG_POETRY: "tang_poetry.json",
    Category.TENGWANG_GE_XU: "tengwang_ge_xu.json",
}


def _read_document(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Content file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Content file {path} must map category keys to item lists")
    return data


def item_from_dict(raw: dict[str, Any], category: Category | None = None) -> WordItem:
    """Build a ``WordItem`` from one JSON object.

    Missing ``displayPinyin`` is generated from the hanzi with pypinyin (for
    Mandarin categories) and missing ``pinyin`` is derived from the display
    pinyin, so hand-written content only needs the characters.

    Raises:
        ValueError: If the object has neither ``character`` nor ``displayPinyin``.
    """

    character = str(raw.get("character") or "")
    display = str(raw.get("displayPinyin") or "")
    typed = str(raw.get("pinyin") or "")

    if not character and not display:
        raise ValueError(f"item has neither character nor displayPinyin: {raw!r}")

    if not display:
        if category is None or category.is_pinyin:
            display = generate_display_pinyin(character)
        else:
            display = typed or character

    if not typed:
        typed = "".join(to_input_form(token) for token in display.split())

    return WordItem(
        character=character,
        pinyin=typed,
        display_pinyin=display,
        definition=str(raw.get("definition") or ""),
        emoji=str(raw.get("emoji") or ""),
    )


def parse_items(raw_items: Any, category: Category, source: Path) -> tuple[WordItem, ...]:
    """Parse one category list, collecting every bad entry into one error."""

    if not isinstance(raw_items, list):
        raise ValueError(f"{source}: category {category.value!r} must be a list")

    items: list[WordItem] = []
    errors: list[str] = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            errors.append(f"{category.value}[{idx}]: expected an object, got {type(raw).__name__}")
            continue
        try:
            items.append(item_from_dict(raw, category))
        except ValueError as exc:
            errors.append(f"{category.value}[{idx}]: {exc}")

    if errors:
        preview = "\n".join(errors[:25])
        more = "" if len(errors) <= 25 else f"\n... and {len(errors) - 25} more"
        raise ValueError(f"Content parsing of {source} failed with {len(errors)} errors:\n{preview}{more}")
    return tuple(items)


@dataclass(frozen=True)
class ContentRepository:
    """Read-only content source keyed by :class:`Category`.

    ``path`` points at ``words.json``. Tang poetry and Tengwang Ge Xu are read
    from sibling files the first time they are requested; a missing sibling
    file yields an empty category rather than an error.
    """

    path: Path

    @cached_property
    def categories(self) -> dict[Category, tuple[WordItem, ...]]:
        """Load and cache every category present in ``words.json``.

        Raises:
            FileNotFoundError: If ``words.json`` does not exist.
            ValueError: If the document or any item is malformed.
        """

        if not self.path.exists():
            raise FileNotFoundError(f"Content file not found: {self.path}")

        data = _read_document(self.path)
        loaded: dict[Category, tuple[WordItem, ...]] = {}
        for key, raw_items in data.items():
            try:
                category = Category(key)
            except ValueError:
                logger.warning("Ignoring unknown content category %r in %s", key, self.path)
                continue
            loaded[category] = parse_items(raw_items, category, self.path)

        logger.info(
            "Loaded %d items across %d categories from %s",
            sum(len(items) for items in loaded.values()),
            len(loaded),
            self.path,
        )
        return loaded

    @cached_property
    def _lazy(self) -> dict[Category, tuple[WordItem, ...]]:
        return {}

    def _load_lazy(self, category: Category) -> tuple[WordItem, ...]:
        sibling = self.path.with_name(LAZY_CATEGORY_FILES[category])
        if not sibling.exists():
            logger.warning("Content file for %s not found: %s", category.value, sibling)
            return ()
        data = _read_document(sibling)
        items = parse_items(data.get(category.value, []), category, sibling)
        logger.info("Loaded %d %s items from %s", len(items), category.value, sibling)
        return items

    def get_items(self, category: Category) -> tuple[WordItem, ...]:
        """Return the items of ``category``; empty for drills and absent keys."""

        if category in self.categories:
            return self.categories[category]
        if category in LAZY_CATEGORY_FILES:
            if category not in self._lazy:
                self._lazy[category] = self._load_lazy(category)
            return self._lazy[category]
        return ()

"""Keystroke cleaning, target input flattening and finger hints."""

from __future__ import annotations

from pinyin_typing.models import FingerTag, WordItem
from pinyin_typing.pinyin.aligner import split_display_lines
from pinyin_typing.pinyin.transcoder import to_input_form

ALLOWED_LETTERS = frozenset("abcdefghijklmnopqrstuvwxyz")

# ASCII file/group separators that some keyboards emit for arrow keys.
CONTROL_CODES = frozenset({28, 29})

FINGER_MAP: dict[str, FingerTag] = {
    "q": FingerTag.LEFT_PINKY,
    "a": FingerTag.LEFT_PINKY,
    "z": FingerTag.LEFT_PINKY,
    "w": FingerTag.LEFT_RING,
    "s": FingerTag.LEFT_RING,
    "x": FingerTag.LEFT_RING,
    "e": FingerTag.LEFT_MIDDLE,
    "d": FingerTag.LEFT_MIDDLE,
    "c": FingerTag.LEFT_MIDDLE,
    "r": FingerTag.LEFT_INDEX,
    "f": FingerTag.LEFT_INDEX,
    "v": FingerTag.LEFT_INDEX,
    "t": FingerTag.LEFT_INDEX,
    "g": FingerTag.LEFT_INDEX,
    "b": FingerTag.LEFT_INDEX,
    "y": FingerTag.RIGHT_INDEX,
    "h": FingerTag.RIGHT_INDEX,
    "n": FingerTag.RIGHT_INDEX,
    "u": FingerTag.RIGHT_INDEX,
    "j": FingerTag.RIGHT_INDEX,
    "m": FingerTag.RIGHT_INDEX,
    "i": FingerTag.RIGHT_MIDDLE,
    "k": FingerTag.RIGHT_MIDDLE,
    "o": FingerTag.RIGHT_RING,
    "l": FingerTag.RIGHT_RING,
    "p": FingerTag.RIGHT_PINKY,
}


class InputValidator:
    """Stateless filter between raw keyboard text and the session engine."""

    allowed_letters = ALLOWED_LETTERS

    def clean_input(self, raw: str) -> str:
        """Lower-case ``raw`` and keep only the 26 ASCII letters."""

        return "".join(ch for ch in raw.lower() if ch in ALLOWED_LETTERS)

    def contains_control_characters(self, raw: str) -> bool:
        return any(ord(ch) in CONTROL_CODES for ch in raw)

    def finger_hint(self, key: str | None) -> FingerTag | None:
        """Return the finger for ``key``, or ``None`` for unknown keys."""

        if not key:
            return None
        return FINGER_MAP.get(key.lower())

    def target_input(self, item: WordItem) -> str:
        """Flatten an item's display pinyin into the exact letters to type.

        Uses the same line/token split and transcoding as alignment, so offsets
        computed by either agree.

        Args:
            item: Content item.

        Returns:
            Target input such as ``nihao`` for ``nǐ hǎo``.
        """

        parts = [to_input_form(token) for tokens in split_display_lines(item.display_pinyin) for token in tokens]
        return "".join(parts).lower()

"""pypinyin-backed helpers: syllable inventory and display pinyin generation."""

from __future__ import annotations

import functools

from pypinyin import Style, pinyin
from pypinyin import constants as pypinyin_constants

from pinyin_typing.pinyin.transcoder import to_input_form

# Interjections and erhua endings that are typed but absent from the dictionaries.
EXTRA_VALID_SYLLABLES = {"m", "n", "ng", "hm", "hng", "r"}


@functools.lru_cache(maxsize=1)
def known_syllables() -> frozenset[str]:
    """Collect every toneless syllable (in typed form) known to pypinyin.

    Returns:
        Syllables such as ``hao`` or ``lv`` as a learner would type them.
    """

    syllables: set[str] = set(EXTRA_VALID_SYLLABLES)
    for value in pypinyin_constants.PINYIN_DICT.values():
        for item in str(value).split(","):
            base = to_input_form(item.strip())
            if base:
                syllables.add(base)
    return frozenset(syllables)


def is_known_syllable(token: str) -> bool:
    """Return whether a display token transcodes to a known syllable."""

    return to_input_form(token) in known_syllables()


def generate_display_pinyin(character: str) -> str:
    """Generate tone-marked display pinyin for hanzi text.

    One line of pinyin is produced per text line, with one syllable per hanzi.
    Non-hanzi characters (punctuation, latin letters, spaces) produce nothing,
    matching how alignment skips them.

    Args:
        character: Hanzi text, possibly multi-line.

    Returns:
        Display pinyin such as ``nǐ hǎo``.
    """

    lines: list[str] = []
    for text_line in character.split("\n"):
        readings = pinyin(text_line, style=Style.TONE, errors="ignore")
        lines.append(" ".join(options[0] for options in readings if options and options[0]))
    return "\n".join(lines)

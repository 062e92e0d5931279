"""Align hanzi text with its display pinyin into per-character input ranges.

Alignment is greedy and line-driven: the display pinyin decides the line
structure, and each line consumes hanzi until it runs out of syllables.
Punctuation never consumes a syllable and occupies zero input.
"""

from __future__ import annotations

import logging
from typing import Sequence

from pinyin_typing.models import AlignedWord, GlyphState, Line
from pinyin_typing.pinyin.transcoder import to_input_form

logger = logging.getLogger(__name__)

PUNCTUATION = frozenset("，。、？！：；“”‘’（）【】《》…—,.?!:;\"'()[]<>")


def is_punctuation(char: str) -> bool:
    """Return whether ``char`` is a sentence punctuation mark."""

    return char in PUNCTUATION


def split_display_lines(display_pinyin: str) -> list[list[str]]:
    """Split display pinyin into lines of space-separated syllable tokens.

    Empty lines are kept so the line count matches the source text.
    """

    return [[token for token in line.split(" ") if token] for line in display_pinyin.split("\n")]


def align(character: str, display_pinyin: str) -> list[Line]:
    """Parse one item into lines of aligned words.

    Args:
        character: Hanzi text, possibly multi-line, possibly empty.
        display_pinyin: Tone-marked pinyin, one line per text line.

    Returns:
        One list of ``AlignedWord`` per display-pinyin line. Offsets are global
        across lines.
    """

    token_lines = split_display_lines(display_pinyin)
    offset = 0
    lines: list[Line] = []

    if not character:
        ordinal = 0
        for tokens in token_lines:
            line: Line = []
            for token in tokens:
                typed = to_input_form(token)
                line.append(
                    AlignedWord(
                        char="",
                        display_pinyin=token,
                        input_pinyin=typed,
                        start_index=offset,
                        end_index=offset + len(typed),
                        is_punctuation=False,
                        char_index=ordinal,
                    )
                )
                offset += len(typed)
                ordinal += 1
            lines.append(line)
        return lines

    cursor = 0
    for tokens in token_lines:
        line = []
        token_idx = 0
        while cursor < len(character):
            char = character[cursor]
            if not char.strip():
                cursor += 1
                continue

            if is_punctuation(char):
                line.append(
                    AlignedWord(
                        char=char,
                        display_pinyin="",
                        input_pinyin="",
                        start_index=offset,
                        end_index=offset,
                        is_punctuation=True,
                        char_index=cursor,
                    )
                )
                cursor += 1
                continue

            if token_idx >= len(tokens):
                # Belongs to a later line.
                break

            token = tokens[token_idx]
            typed = to_input_form(token)
            line.append(
                AlignedWord(
                    char=char,
                    display_pinyin=token,
                    input_pinyin=typed,
                    start_index=offset,
                    end_index=offset + len(typed),
                    is_punctuation=False,
                    char_index=cursor,
                )
            )
            offset += len(typed)
            cursor += 1
            token_idx += 1
        lines.append(line)

    dropped = unaligned_characters(character, lines)
    if dropped:
        logger.warning(
            "Alignment dropped %d character(s) %r from %r: no pinyin left to pair with.",
            len(dropped),
            "".join(dropped),
            character[:20],
        )
    return lines


def unaligned_characters(character: str, lines: Sequence[Line]) -> list[str]:
    """Return non-punctuation characters that alignment never emitted.

    Args:
        character: Source text passed to :func:`align`.
        lines: Result of :func:`align` for that text.

    Returns:
        Dropped characters in source order.
    """

    if not character:
        return []
    emitted = {word.char_index for line in lines for word in line}
    return [
        char
        for idx, char in enumerate(character)
        if char.strip() and not is_punctuation(char) and idx not in emitted
    ]


def total_input_length(lines: Sequence[Line]) -> int:
    """Return the input length covered by the aligned words."""

    ends = [word.end_index for line in lines for word in line]
    return max(ends) if ends else 0


def build_breakpoints(lines: Sequence[Line], target_length: int) -> dict[int, int]:
    """Map cumulative input length to the character completed at that length.

    Args:
        lines: Aligned lines of the current item.
        target_length: Length of the flattened target input for the item.

    Returns:
        Breakpoint map with strictly increasing keys whose last key equals
        ``target_length`` (empty when there is nothing to type).
    """

    breakpoints: dict[int, int] = {}
    last_char_index = -1
    for line in lines:
        for word in line:
            if word.is_punctuation or word.end_index == word.start_index:
                continue
            breakpoints[word.end_index] = word.char_index
            last_char_index = word.char_index

    covered = max(breakpoints) if breakpoints else 0
    if target_length > covered:
        # Syllables with no hanzi to pair with still complete "a character".
        breakpoints[target_length] = last_char_index + 1
    return breakpoints


def active_line_index(lines: Sequence[Line], typed_count: int) -> int | None:
    """Return the index of the line the learner is currently typing.

    Non-final lines use half-open ranges so the display moves on as soon as a
    line is finished; the final line stays active once the item is complete.
    """

    if not lines:
        return None

    last = len(lines) - 1
    for idx, line in enumerate(lines):
        start = line[0].start_index if line else 0
        end = line[-1].end_index if line else 0
        if idx == last:
            if start <= typed_count <= end:
                return idx
        elif start <= typed_count < end:
            return idx

    tail = lines[last]
    if typed_count > (tail[-1].end_index if tail else 0):
        return last
    return 0


def display_char_ranges(word: AlignedWord) -> list[tuple[int, int]]:
    """Return each display glyph's input range relative to the word start."""

    ranges: list[tuple[int, int]] = []
    current = 0
    for glyph in word.display_pinyin:
        length = len(to_input_form(glyph))
        ranges.append((current, current + length))
        current += length
    return ranges


def glyph_states(word: AlignedWord, typed_count: int, is_wrong: bool) -> list[GlyphState]:
    """Compute the progress state of every display glyph of ``word``.

    Args:
        word: Aligned word being rendered.
        typed_count: Number of correctly typed input letters for the item.
        is_wrong: Whether the last keystroke was rejected.

    Returns:
        One state per glyph of ``word.display_pinyin``.
    """

    if typed_count >= word.end_index:
        return [GlyphState.COMPLETED] * len(word.display_pinyin)
    if typed_count < word.start_index:
        return [GlyphState.PENDING] * len(word.display_pinyin)

    states: list[GlyphState] = []
    for start, _ in display_char_ranges(word):
        position = word.start_index + start
        if typed_count > position:
            states.append(GlyphState.COMPLETED)
        elif typed_count == position:
            states.append(GlyphState.WRONG if is_wrong else GlyphState.CURRENT)
        else:
            states.append(GlyphState.PENDING)
    return states

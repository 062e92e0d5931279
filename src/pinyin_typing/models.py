"""Data models shared by the alignment engine and the session state machines.

Content items are immutable once loaded. Derived alignment units are rebuilt per
item and never mutated, so sessions can hand them to a rendering layer without
copying.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class WordItem:
    """One practice unit as loaded from content files.

    ``character`` may be empty for pinyin-only teaching content and may span
    several lines for poems and articles. ``display_pinyin`` carries tone marks,
    one space-separated syllable per hanzi, with one line per character line.
    """

    character: str
    pinyin: str
    display_pinyin: str
    definition: str = ""
    emoji: str = ""


@dataclass(frozen=True)
class AlignedWord:
    """One hanzi (or punctuation mark) aligned to its slice of the input stream.

    ``start_index``/``end_index`` are absolute offsets into the flattened input
    for the whole item. Punctuation words are zero-width.
    """

    char: str
    display_pinyin: str
    input_pinyin: str
    start_index: int
    end_index: int
    is_punctuation: bool
    char_index: int


Line = list[AlignedWord]


class GameState(Enum):
    """Lifecycle of one game run."""

    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    GAME_OVER = "game_over"
    # Reserved; no transition leads here.
    VICTORY = "victory"


class FingerTag(Enum):
    """Finger expected to press a key in touch typing."""

    LEFT_PINKY = "left-pinky"
    LEFT_RING = "left-ring"
    LEFT_MIDDLE = "left-middle"
    LEFT_INDEX = "left-index"
    RIGHT_INDEX = "right-index"
    RIGHT_MIDDLE = "right-middle"
    RIGHT_RING = "right-ring"
    RIGHT_PINKY = "right-pinky"


class GlyphState(Enum):
    """Progress state of one displayed pinyin glyph."""

    COMPLETED = "completed"
    CURRENT = "current"
    WRONG = "wrong"
    PENDING = "pending"


class Category(Enum):
    """Content mode selectable from the home screen.

    The value is the key used in the bundled ``words.json`` document.
    """

    HOME_ROW = "homeRow"
    LETTER_GAME = "letterGame"
    INITIALS_TEACHING = "initialsTeaching"
    FINALS_TEACHING = "finalsTeaching"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    XIEHOUYU = "xiehouyu"
    ARTICLE = "articles"
    TANG_POETRY = "tangPoetry"
    TENGWANG_GE_XU = "tengwangGeXu"
    ENGLISH_PRIMARY = "englishPrimary"
    DAILY_ENGLISH = "dailyEnglish"
    PROGRAMMING_VOCAB = "programmingVocab"

    @property
    def is_practice(self) -> bool:
        """Return whether this mode is a single-letter drill."""

        return self in (Category.HOME_ROW, Category.LETTER_GAME)

    @property
    def is_pinyin(self) -> bool:
        """Return whether items of this mode carry Mandarin pinyin."""

        return not self.is_practice and self not in (
            Category.ENGLISH_PRIMARY,
            Category.DAILY_ENGLISH,
            Category.PROGRAMMING_VOCAB,
        )


@dataclass(frozen=True)
class PlayerTotals:
    """Persistent economy totals carried across sessions."""

    score: int = 0
    money: float = 0.0
    correct_letters: int = 0
    current_combo: int = 0
    max_combo: int = 0


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the active session for rendering layers."""

    category: Category | None
    state: GameState
    item_index: int
    item: WordItem | None
    current_input: str
    target_input: str
    hint_key: str | None
    is_wrong: bool
    word_complete: bool
    health: int
    combo: int
    score: int


@dataclass(frozen=True)
class ContentIssue:
    """One content problem found while checking alignment and typeability."""

    category: str
    index: int
    character: str
    kind: str
    detail: str

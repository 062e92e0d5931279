"""Typing-session core for a children's pinyin typing trainer."""

from .models import AlignedWord, Category, FingerTag, GameState, GlyphState, PlayerTotals, SessionSnapshot, WordItem

__all__ = [
    "WordItem",
    "AlignedWord",
    "Category",
    "FingerTag",
    "GameState",
    "GlyphState",
    "PlayerTotals",
    "SessionSnapshot",
]

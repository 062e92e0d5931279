"""Whole-item pinyin typing state machine."""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from pinyin_typing.content.repository import ContentRepository
from pinyin_typing.events import CharacterCompleted, ItemChanged, ItemCompleted
from pinyin_typing.keyboard.validator import InputValidator
from pinyin_typing.models import Category, Line, WordItem
from pinyin_typing.pinyin.aligner import active_line_index, align, build_breakpoints
from pinyin_typing.scheduler import TimerSlot
from pinyin_typing.services.economy import ScoreKeeper
from pinyin_typing.services.narration import InputPacer, NarrationQueue
from pinyin_typing.services.progress import ProgressStore
from pinyin_typing.session.engine import GameEngine
from pinyin_typing.settings import GameSettings

logger = logging.getLogger(__name__)


def completion_points(combo: int) -> int:
    """Score for finishing an item: 10 plus up to 20 combo bonus points."""

    return 10 + min(combo // 5 * 2, 20)


class TypingSession:
    """Drive one category of hanzi/pinyin items through the typing loop.

    The UI passes the entire input field on every change; :meth:`handle_input`
    returns the text the field should show afterwards. ``engine.current_input``
    is always a prefix of :attr:`target_input`.

    Completion is a two-step timed sequence (speak the item, then advance).
    Both steps carry the generation that scheduled them and do nothing once
    the session has moved to another item or stopped.
    """

    def __init__(
        self,
        category: Category,
        engine: GameEngine,
        scores: ScoreKeeper,
        narration: NarrationQueue,
        content: ContentRepository,
        progress: ProgressStore,
        pacer: InputPacer | None = None,
        validator: InputValidator | None = None,
    ) -> None:
        self.category = category
        self.engine = engine
        self.scores = scores
        self.narration = narration
        self.content = content
        self.progress = progress
        self.pacer = pacer or InputPacer(engine.scheduler.now)
        self.validator = validator or engine.validator

        self.items: Sequence[WordItem] = ()
        self.index = 0
        self.lines: list[Line] = []
        self.breakpoints: dict[int, int] = {}
        self.target_input = ""
        self.last_completed_char_index = -1
        self.has_started_input = False
        self.has_spoken_item = False

        self._generation = 0
        self._speak_timer = TimerSlot(engine.scheduler)
        self._advance_timer = TimerSlot(engine.scheduler)

    @property
    def settings(self) -> GameSettings:
        return self.engine.settings

    @property
    def item(self) -> WordItem | None:
        return self.items[self.index] if self.items else None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def active_line(self) -> int | None:
        return active_line_index(self.lines, len(self.engine.current_input))

    # Lifecycle

    def start(self) -> None:
        """Load the category, restore the checkpoint and speak the first item."""

        self.items = tuple(self.content.get_items(self.category))
        self.engine.start_new_game()
        self._cancel_pending()

        saved = self.progress.load_progress(self.category)
        self.index = min(max(0, saved), len(self.items) - 1) if self.items else 0
        self.last_completed_char_index = -1
        self.has_started_input = False
        self.has_spoken_item = False

        logger.info(
            "Starting %s session at item %d of %d", self.category.value, self.index, len(self.items)
        )
        if not self.items:
            logger.warning("No content for category %s", self.category.value)
            self.lines, self.breakpoints, self.target_input = [], {}, ""
            return

        self._load_item()
        self._preload()
        self._speak_item()
        self.has_spoken_item = True

    def stop(self) -> None:
        self.narration.stop()
        self._cancel_pending()
        if self.items:
            self.progress.save_progress(self.category, self.index)
        logger.info("Stopped %s session at item %d", self.category.value, self.index)

    # Navigation

    def next_item(self) -> None:
        self.jump_to(self.index + 1)

    def previous_item(self) -> None:
        self.jump_to(self.index - 1)

    def jump_to(self, index: int, speak: bool = True) -> None:
        """Move to ``index`` (wrapping in both directions) and reset per-item state."""

        if not self.items:
            return

        self.narration.stop()
        self.progress.save_progress(self.category, self.index)
        self._cancel_pending()

        self.engine.reset_input_state()
        self.last_completed_char_index = -1
        self.index = index % len(self.items)
        self._load_item()
        self._preload()
        if speak:
            self._speak_item()

    def _load_item(self) -> None:
        item = self.items[self.index]
        self.lines = align(item.character, item.display_pinyin)
        self.target_input = self.validator.target_input(item)
        self.breakpoints = build_breakpoints(self.lines, len(self.target_input))
        self.engine.update_hint(self.target_input)
        self.engine.bus.publish(ItemChanged(self.index, item))
        logger.debug("Item %d %r -> target %r", self.index, item.character, self.target_input)

    def _preload(self) -> None:
        texts = [self.items[self.index].character]
        if len(self.items) > 1:
            texts.append(self.items[(self.index + 1) % len(self.items)].character)
        self.narration.preload(texts)

    def _cancel_pending(self) -> None:
        self._generation += 1
        self._speak_timer.cancel()
        self._advance_timer.cancel()

    # Input

    def handle_input(self, raw: str) -> str:
        """Process the full input-field text and return what the field should show.

        A buffer that needed cleaning is returned cleaned without being
        validated; the caller feeds that cleaned buffer back in as a second
        pass.
        """

        engine = self.engine
        if not engine.is_playing or not self.items:
            return engine.current_input

        if not self.has_started_input:
            self.has_started_input = True
            self.narration.stop()
            if not self.has_spoken_item:
                self._speak_item()
                self.has_spoken_item = True

        if engine.word_complete:
            return engine.current_input

        cleaned = self.validator.clean_input(raw)
        if cleaned != raw:
            return cleaned

        current = engine.current_input
        if len(cleaned) < len(current):
            if not current.startswith(cleaned):
                # Shorter replacement, not a deletion.
                return current
            engine.set_input(cleaned)
            engine.update_hint(self.target_input)
            return cleaned

        if len(cleaned) > len(current):
            if not cleaned.startswith(current):
                return current
            for key in cleaned[len(current):]:
                if not self._accept_key(key) or engine.word_complete:
                    break
            return engine.current_input

        return current

    def _accept_key(self, key: str) -> bool:
        engine = self.engine
        engine.press_key(key)

        position = len(engine.current_input)
        if position >= len(self.target_input) or self.target_input[position] != key:
            self._reject_key(key)
            return False

        self._reward_key()
        typed = engine.current_input + key
        self._check_character_completion(len(typed))
        engine.set_input(typed)

        if len(typed) == len(self.target_input):
            self._complete_item()
        else:
            engine.update_hint(self.target_input)
        return True

    def _reward_key(self) -> None:
        self.pacer.record_input()
        money = self.settings.money_per_letter
        if money > 0:
            self.scores.add_money(money)
        self.scores.increment_combo()
        self.scores.increment_correct_letters()
        self.scores.check_lucky_drop()

    def _reject_key(self, key: str) -> None:
        self.scores.reset_combo()
        self.scores.apply_penalty(self.settings.penalty_per_error)
        self.engine.reduce_health(self.settings.health_per_error)
        self.engine.flag_wrong(key, restore=lambda: self.engine.update_hint(self.target_input))
        logger.debug("Wrong key %r at %d", key, len(self.engine.current_input))

    def _check_character_completion(self, length: int) -> None:
        char_index = self.breakpoints.get(length)
        if char_index is None or char_index <= self.last_completed_char_index:
            return
        self.last_completed_char_index = char_index

        item = self.items[self.index]
        char = item.character[char_index] if char_index < len(item.character) else ""
        self.engine.bus.publish(CharacterCompleted(char_index, char))

        # One-hanzi items are spoken once, by the completion sequence.
        if len(item.character) == 1:
            return
        if char_index == 0:
            self.narration.stop()
        if char:
            self.narration.speak(char, self.pacer.rate_multiplier)

    # Completion

    def _complete_item(self) -> None:
        item = self.items[self.index]
        points = completion_points(self.scores.combo)
        self.scores.add_score(points)
        self.engine.word_complete = True
        self.engine.set_hint(None)
        self.engine.bus.publish(ItemCompleted(self.index, item, points))
        logger.debug("Completed item %d %r (+%d)", self.index, item.character, points)

        generation = self._generation
        delay = self.settings.delay_before_speak
        if delay > 0:
            self._speak_timer.schedule(delay, lambda: self._speak_and_advance(generation))
        else:
            self._speak_and_advance(generation)

    def _speak_and_advance(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._speak_item(on_done=lambda: self._schedule_advance(generation))

    def _schedule_advance(self, generation: int) -> None:
        if generation != self._generation:
            return
        delay = self.settings.post_completion_delay(self.category)
        self._advance_timer.schedule(delay, lambda: self._advance(generation))

    def _advance(self, generation: int) -> None:
        if generation == self._generation:
            self.next_item()

    def _speak_item(self, on_done: Callable[[], None] | None = None) -> None:
        item = self.item
        if item is None:
            return
        self.narration.speak(item.character, on_done=on_done)

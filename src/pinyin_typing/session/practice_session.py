"""Single-letter drill for the home row and the pinyin initials."""

from __future__ import annotations

import logging
import random

from pinyin_typing.events import PracticeTargetChanged
from pinyin_typing.keyboard.validator import InputValidator
from pinyin_typing.models import Category
from pinyin_typing.scheduler import TimerSlot
from pinyin_typing.services.economy import ScoreKeeper
from pinyin_typing.services.narration import NarrationQueue
from pinyin_typing.session.engine import GameEngine

logger = logging.getLogger(__name__)

HOME_ROW_SEQUENCE = list("asdfghjkl")
LETTER_GAME_SEQUENCE = list("bpmfdtnlgkhjqxzhchshrzcsyw")

MIN_REPEATS = 1
MAX_REPEATS = 5


def sequence_for(category: Category) -> list[str]:
    if category is Category.HOME_ROW:
        return HOME_ROW_SEQUENCE
    if category is Category.LETTER_GAME:
        return LETTER_GAME_SEQUENCE
    raise ValueError(f"{category.value} is not a practice category")


class PracticeSession:
    """Cycle through a fixed letter sequence, repeating each letter 1-5 times.

    Only correct keystrokes count down the repeats. After each hit the session
    ignores input for the hit delay, then moves the target on.
    """

    def __init__(
        self,
        category: Category,
        engine: GameEngine,
        scores: ScoreKeeper,
        narration: NarrationQueue,
        rng: random.Random | None = None,
        validator: InputValidator | None = None,
    ) -> None:
        self.category = category
        self.sequence = sequence_for(category)
        self.engine = engine
        self.scores = scores
        self.narration = narration
        self.rng = rng or random.Random()
        self.validator = validator or engine.validator

        self.index = 0
        self.target = ""
        self.repeats_remaining = 0
        self.repeats_total = 0
        self.hit_flash = False
        self._hit_timer = TimerSlot(engine.scheduler)

    def start(self) -> None:
        self._hit_timer.cancel()
        self.engine.start_new_game()
        self.engine.reset_input_state()
        self.scores.reset_combo()
        self.hit_flash = False
        self.index = 0
        self._set_target(self.sequence[0], self._roll_repeats())
        logger.info("Starting %s drill (%d letters)", self.category.value, len(self.sequence))
        self._speak_target()

    def stop(self) -> None:
        self.narration.stop()
        self._hit_timer.cancel()
        self.hit_flash = False

    def handle_input(self, raw: str) -> str:
        """Judge the last typed letter; the input field is always cleared."""

        if not self.engine.is_playing or self.hit_flash:
            return ""

        cleaned = self.validator.clean_input(raw)
        if cleaned != raw:
            return cleaned
        if not cleaned:
            return ""

        key = cleaned[-1]
        self.engine.press_key(key)
        if key == self.target.lower():
            self._hit()
        else:
            self._miss(key)
        return ""

    def _roll_repeats(self) -> int:
        return self.rng.randint(MIN_REPEATS, MAX_REPEATS)

    def _set_target(self, target: str, repeats: int) -> None:
        self.target = target
        self.repeats_remaining = repeats
        self.repeats_total = repeats
        self.engine.set_hint(target or None)
        self.engine.bus.publish(PracticeTargetChanged(target, repeats, repeats))

    def _hit(self) -> None:
        self.scores.add_score(1)
        money = self.engine.settings.money_per_letter
        if money > 0:
            self.scores.add_money(money)
        self.scores.increment_combo()
        self.scores.increment_correct_letters()
        self.scores.check_lucky_drop()
        self.hit_flash = True
        self._hit_timer.schedule(self.engine.settings.practice_hit_delay, self._after_hit)

    def _after_hit(self) -> None:
        self.hit_flash = False
        self.repeats_remaining -= 1
        if self.repeats_remaining <= 0:
            self.index = (self.index + 1) % len(self.sequence)
            self._set_target(self.sequence[self.index], self._roll_repeats())
        else:
            self.engine.set_hint(self.target)
            self.engine.bus.publish(
                PracticeTargetChanged(self.target, self.repeats_remaining, self.repeats_total)
            )
        self._speak_target()

    def _miss(self, key: str) -> None:
        self.scores.reset_combo()
        self.scores.apply_penalty(self.engine.settings.penalty_per_error)
        self.engine.reduce_health(self.engine.settings.health_per_error)
        self.engine.flag_wrong(key, restore=lambda: self.engine.set_hint(self.target or None))

    def _speak_target(self) -> None:
        if self.target:
            self.narration.speak(self.target)

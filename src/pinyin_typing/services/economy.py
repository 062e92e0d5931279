"""Score, coins, combo and random reward bookkeeping."""

from __future__ import annotations

import logging
import random
from typing import Callable

from pinyin_typing.events import EventBus, RewardGranted
from pinyin_typing.models import PlayerTotals
from pinyin_typing.settings import GameSettings

logger = logging.getLogger(__name__)

# Typing speed stays at zero until this much time has passed.
MIN_SPEED_WINDOW = 0.5


class ScoreKeeper:
    """Reward sink for the typing and practice sessions.

    Money is tracked as a float; ``coins`` is its whole part. Random rolls draw
    from an injectable ``random.Random`` so tests can seed them.
    """

    def __init__(
        self,
        settings: GameSettings,
        bus: EventBus | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] | None = None,
        totals: PlayerTotals | None = None,
    ) -> None:
        self.settings = settings
        self.bus = bus
        self.rng = rng or random.Random()
        self._clock = clock
        totals = totals or PlayerTotals()
        self.score = totals.score
        self.money = totals.money
        self.correct_letters = totals.correct_letters
        self.combo = totals.current_combo
        self.max_combo = totals.max_combo
        self._session_letters = 0
        self._session_start: float | None = None

    @property
    def coins(self) -> int:
        return int(self.money)

    @property
    def fire_effect(self) -> bool:
        return self.combo >= self.settings.fire_effect_threshold

    def totals(self) -> PlayerTotals:
        return PlayerTotals(
            score=self.score,
            money=self.money,
            correct_letters=self.correct_letters,
            current_combo=self.combo,
            max_combo=self.max_combo,
        )

    def add_score(self, amount: int) -> None:
        self.score += amount

    def add_money(self, amount: float) -> None:
        if amount > 0:
            self.money += amount

    def apply_penalty(self, amount: float) -> None:
        if amount > 0:
            self.money = max(0.0, self.money - amount)

    def deduct_coins(self, amount: int) -> None:
        self.money = max(0.0, self.money - amount)

    def increment_combo(self) -> None:
        self.combo += 1
        self.max_combo = max(self.max_combo, self.combo)
        threshold = self.settings.combo_bonus_threshold
        if threshold > 0 and self.combo % threshold == 0:
            self._grant("combo", self.settings.combo_bonus_money)

    def reset_combo(self) -> None:
        self.combo = 0

    def increment_correct_letters(self) -> None:
        """Count one correct letter and roll the per-letter rewards.

        At most one of treasure, meteor and lucky drop pays out per letter, in
        that priority order. The milestone bonus is independent of them.
        """

        self.correct_letters += 1
        self._record_session_letter()

        if not self._roll_treasure() and not self._roll_meteor():
            self.check_lucky_drop()

        milestone = self.settings.milestone_letter_count
        if milestone > 0 and self.correct_letters % milestone == 0:
            self._grant("milestone", self.settings.milestone_bonus_money)

    def check_lucky_drop(self) -> bool:
        return self._roll(
            "lucky",
            self.settings.random_reward_chance,
            self.settings.random_reward_min,
            self.settings.random_reward_max,
        )

    def _roll_treasure(self) -> bool:
        return self._roll(
            "treasure",
            self.settings.random_treasure_chance,
            self.settings.random_treasure_min,
            self.settings.random_treasure_max,
        )

    def _roll_meteor(self) -> bool:
        return self._roll(
            "meteor",
            self.settings.random_meteor_chance,
            self.settings.random_meteor_min,
            self.settings.random_meteor_max,
        )

    def _roll(self, kind: str, chance: float, low: float, high: float) -> bool:
        if self.rng.random() >= chance:
            return False
        self._grant(kind, self.rng.uniform(min(low, high), max(low, high)))
        return True

    def _grant(self, kind: str, amount: float) -> None:
        self.add_money(amount)
        logger.debug("Reward %s +%.3f (combo=%d)", kind, amount, self.combo)
        if self.bus is not None:
            self.bus.publish(RewardGranted(kind=kind, amount=amount, combo=self.combo))

    # Typing speed

    def start_session(self) -> None:
        self._session_letters = 0
        self._session_start = self._clock() if self._clock is not None else None

    def _record_session_letter(self) -> None:
        self._session_letters += 1

    @property
    def typing_speed(self) -> float:
        """Correct letters per minute since :meth:`start_session`."""

        if self._session_start is None or self._clock is None:
            return 0.0
        elapsed = self._clock() - self._session_start
        if elapsed < MIN_SPEED_WINDOW:
            return 0.0
        return self._session_letters / (elapsed / 60.0)

    def reset_session(self) -> None:
        """Zero score and combo for a new game; coins carry over."""

        self.score = 0
        self.combo = 0
        self.start_session()

    def reset(self) -> None:
        """Zero score, money and letter count; max combo is kept as a record."""

        self.score = 0
        self.money = 0.0
        self.combo = 0
        self.correct_letters = 0
        self._session_letters = 0
        self._session_start = None

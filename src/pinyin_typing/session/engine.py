"""Shared game state: lifecycle, health, input buffer, feedback flags and timers."""

from __future__ import annotations

import logging
from typing import Callable

from pinyin_typing.events import (
    EventBus,
    HealthChanged,
    HintChanged,
    InputChanged,
    KeyPressed,
    StateChanged,
    TimeChanged,
    WrongCleared,
    WrongInput,
)
from pinyin_typing.keyboard.validator import InputValidator
from pinyin_typing.models import GameState
from pinyin_typing.scheduler import RepeatingTimer, Scheduler, TimerSlot
from pinyin_typing.services.narration import NarrationQueue
from pinyin_typing.settings import GameSettings

logger = logging.getLogger(__name__)

COUNTDOWN_TICK = 1.0


class GameEngine:
    """State owner shared by the typing and practice sessions.

    Sessions decide *what* happened to a keystroke; the engine records it and
    runs the short-lived feedback timers (key highlight, wrong flash, game over
    and the optional countdown). All timers live in :class:`TimerSlot` slots so
    rescheduling never stacks callbacks.
    """

    def __init__(
        self,
        settings: GameSettings,
        scheduler: Scheduler,
        bus: EventBus | None = None,
        narration: NarrationQueue | None = None,
        validator: InputValidator | None = None,
    ) -> None:
        self.settings = settings
        self.scheduler = scheduler
        self.bus = bus or EventBus()
        self.narration = narration
        self.validator = validator or InputValidator()

        self.state = GameState.IDLE
        self.health = settings.max_health
        self.time_remaining = settings.game_time_limit
        self.current_input = ""
        self.hint_key: str | None = None
        self.is_wrong = False
        self.word_complete = False
        self.last_pressed_key: str | None = None
        self.last_wrong_key: str | None = None
        self.press_count = 0
        self.shake_count = 0
        self.damage_flash = False

        self.on_game_over: Callable[[], None] | None = None

        self._key_clear = TimerSlot(scheduler)
        self._wrong_clear = TimerSlot(scheduler)
        self._game_over = TimerSlot(scheduler)
        self._countdown = RepeatingTimer(scheduler)

    @property
    def is_playing(self) -> bool:
        return self.state is GameState.PLAYING

    @property
    def countdown_running(self) -> bool:
        return self._countdown.active

    def _set_state(self, state: GameState) -> None:
        if state is self.state:
            return
        logger.debug("Game state %s -> %s", self.state.value, state.value)
        self.state = state
        self.bus.publish(StateChanged(state))

    # Lifecycle

    def start_new_game(self) -> None:
        self._game_over.cancel()
        self._set_state(GameState.PLAYING)
        self.reset_health()
        self._start_countdown(resume=False)
        self.reset_input_state()

    def stop_game(self) -> None:
        self._set_state(GameState.IDLE)
        self._stop_countdown()
        self._game_over.cancel()
        if self.narration is not None:
            self.narration.stop()
        self.reset_input_state()

    def pause(self) -> None:
        if self.state is GameState.PLAYING:
            self._set_state(GameState.PAUSED)
            self._stop_countdown()

    def resume(self) -> None:
        if self.state is GameState.PAUSED:
            self._set_state(GameState.PLAYING)
            self._start_countdown(resume=True)

    def trigger_game_over(self) -> None:
        self._set_state(GameState.GAME_OVER)
        self._stop_countdown()
        if self.narration is not None:
            self.narration.stop()
        logger.info("Game over (health=%d, time_remaining=%.0f)", self.health, self.time_remaining)
        if self.on_game_over is not None:
            self.on_game_over()

    # Countdown

    def _start_countdown(self, *, resume: bool) -> None:
        self._countdown.cancel()
        if not resume:
            self.time_remaining = self.settings.game_time_limit
        if self.time_remaining <= 0:
            return
        self._countdown.start(COUNTDOWN_TICK, self._tick)

    def _stop_countdown(self) -> None:
        self._countdown.cancel()

    def _tick(self) -> None:
        if self.state is not GameState.PLAYING or self.time_remaining <= 0:
            return
        self.time_remaining = max(0.0, self.time_remaining - COUNTDOWN_TICK)
        self.bus.publish(TimeChanged(self.time_remaining))
        if self.time_remaining <= 0:
            self.trigger_game_over()

    # Input and feedback

    def set_input(self, text: str) -> None:
        if text != self.current_input:
            self.current_input = text
            self.bus.publish(InputChanged(text))

    def reset_input_state(self) -> None:
        self._key_clear.cancel()
        self._wrong_clear.cancel()
        self.last_pressed_key = None
        self.last_wrong_key = None
        self.is_wrong = False
        self.word_complete = False
        self.damage_flash = False
        self.set_input("")
        self.set_hint(None)

    def press_key(self, key: str) -> None:
        """Highlight ``key`` until the key-clear delay passes."""

        self.last_pressed_key = key
        self.press_count += 1
        self.bus.publish(KeyPressed(key))
        self._key_clear.schedule(self.settings.key_clear_delay, self._clear_pressed_key)

    def _clear_pressed_key(self) -> None:
        self.last_pressed_key = None

    def flag_wrong(self, key: str, restore: Callable[[], None] | None = None) -> None:
        """Show a wrong keystroke; ``restore`` runs once the flash clears."""

        self.is_wrong = True
        self.last_wrong_key = key
        self.shake_count += 1
        self.bus.publish(WrongInput(key=key, expected=self.hint_key))

        def clear() -> None:
            self.is_wrong = False
            self.last_wrong_key = None
            self.damage_flash = False
            self.bus.publish(WrongCleared())
            if restore is not None:
                restore()

        self._wrong_clear.schedule(self.settings.wrong_clear_delay, clear)

    def set_hint(self, key: str | None) -> None:
        if key == self.hint_key:
            return
        self.hint_key = key
        self.bus.publish(HintChanged(key=key, finger=self.validator.finger_hint(key)))

    def update_hint(self, target: str) -> None:
        """Point the hint at the next expected letter of ``target``."""

        index = len(self.current_input)
        self.set_hint(target[index] if index < len(target) else None)

    # Health

    def reset_health(self) -> None:
        self.health = self.settings.max_health
        self.bus.publish(HealthChanged(self.health, self.settings.max_health))

    def reduce_health(self, amount: int) -> None:
        """Lose ``amount`` health; reaching zero ends the game after a short delay."""

        if self.settings.max_health <= 0:
            return
        previous = self.health
        self.health = max(0, self.health - amount)
        self.damage_flash = True
        self.bus.publish(HealthChanged(self.health, self.settings.max_health))
        if self.health == 0 and previous > 0:
            self._game_over.schedule(self.settings.game_over_delay, self.trigger_game_over)

    def increase_health(self, amount: int) -> bool:
        max_health = self.settings.max_health
        if self.health >= max_health:
            return False
        self.health = min(max_health, self.health + amount)
        self.bus.publish(HealthChanged(self.health, max_health))
        return True

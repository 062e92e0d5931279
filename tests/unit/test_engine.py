"""Unit tests for the shared game engine."""

from __future__ import annotations

from conftest import FakeSpeechBackend, quiet_settings
from pinyin_typing.events import EventBus, HintChanged, StateChanged, TimeChanged, WrongCleared
from pinyin_typing.models import FingerTag, GameState
from pinyin_typing.scheduler import ManualScheduler
from pinyin_typing.services.narration import NarrationQueue
from pinyin_typing.session.engine import GameEngine


def _engine(**overrides) -> tuple[GameEngine, ManualScheduler, EventBus]:
    scheduler = ManualScheduler()
    bus = EventBus()
    engine = GameEngine(quiet_settings(**overrides), scheduler, bus)
    return engine, scheduler, bus


def test_start_new_game_enters_playing_with_full_health() -> None:
    engine, _, bus = _engine(max_health=3)
    states: list[GameState] = []
    bus.subscribe(StateChanged, lambda event: states.append(event.state))

    engine.start_new_game()

    assert engine.state is GameState.PLAYING
    assert engine.health == 3
    assert states == [GameState.PLAYING]


def test_pause_and_resume_only_from_matching_states() -> None:
    engine, _, _ = _engine()
    engine.pause()
    assert engine.state is GameState.IDLE

    engine.start_new_game()
    engine.pause()
    assert engine.state is GameState.PAUSED
    engine.resume()
    assert engine.state is GameState.PLAYING


def test_press_key_clears_after_delay() -> None:
    engine, scheduler, _ = _engine()
    engine.press_key("a")

    assert engine.last_pressed_key == "a"
    scheduler.advance(0.19)
    assert engine.last_pressed_key == "a"
    scheduler.advance(0.02)
    assert engine.last_pressed_key is None


def test_flag_wrong_clears_then_runs_restore() -> None:
    engine, scheduler, bus = _engine()
    cleared: list[WrongCleared] = []
    bus.subscribe(WrongCleared, cleared.append)
    restored: list[int] = []

    engine.flag_wrong("x", restore=lambda: restored.append(1))
    assert engine.is_wrong
    assert engine.last_wrong_key == "x"

    scheduler.advance(0.4)

    assert not engine.is_wrong
    assert engine.last_wrong_key is None
    assert restored == [1]
    assert len(cleared) == 1


def test_update_hint_publishes_finger() -> None:
    engine, _, bus = _engine()
    hints: list[HintChanged] = []
    bus.subscribe(HintChanged, hints.append)
    engine.set_input("ni")

    engine.update_hint("nihao")

    assert engine.hint_key == "h"
    assert hints[-1] == HintChanged("h", FingerTag.RIGHT_INDEX)

    engine.set_input("nihao")
    engine.update_hint("nihao")
    assert engine.hint_key is None


def test_reduce_health_to_zero_schedules_game_over() -> None:
    engine, scheduler, _ = _engine(max_health=2)
    over: list[int] = []
    engine.on_game_over = lambda: over.append(1)
    engine.start_new_game()

    engine.reduce_health(1)
    engine.reduce_health(1)
    assert engine.health == 0
    assert engine.state is GameState.PLAYING

    scheduler.advance(0.5)

    assert engine.state is GameState.GAME_OVER
    assert over == [1]


def test_mistakes_at_zero_health_do_not_delay_game_over() -> None:
    engine, scheduler, _ = _engine(max_health=1)
    engine.start_new_game()

    engine.reduce_health(1)
    scheduler.advance(0.4)
    engine.reduce_health(1)
    scheduler.advance(0.1)

    assert engine.health == 0
    assert engine.state is GameState.GAME_OVER


def test_reduce_health_is_noop_when_health_disabled() -> None:
    engine, scheduler, _ = _engine(max_health=0)
    engine.start_new_game()

    engine.reduce_health(3)
    scheduler.advance(1.0)

    assert engine.health == 0
    assert engine.state is GameState.PLAYING
    assert not engine.damage_flash


def test_increase_health_caps_at_max() -> None:
    engine, _, _ = _engine(max_health=3)
    engine.start_new_game()

    assert not engine.increase_health(1)
    engine.reduce_health(2)
    assert engine.increase_health(5)
    assert engine.health == 3


def test_countdown_ends_game_and_pause_freezes_it() -> None:
    engine, scheduler, bus = _engine(game_time_limit=3)
    ticks: list[float] = []
    bus.subscribe(TimeChanged, lambda event: ticks.append(event.remaining))
    engine.start_new_game()

    scheduler.advance(1.0)
    engine.pause()
    scheduler.advance(10.0)
    assert engine.time_remaining == 2
    assert not engine.countdown_running

    engine.resume()
    scheduler.advance(2.0)

    assert ticks == [2.0, 1.0, 0.0]
    assert engine.state is GameState.GAME_OVER


def test_no_countdown_without_time_limit() -> None:
    engine, _, _ = _engine(game_time_limit=0)
    engine.start_new_game()

    assert not engine.countdown_running


def test_stop_game_cancels_pending_game_over_and_stops_narration() -> None:
    scheduler = ManualScheduler()
    backend = FakeSpeechBackend()
    engine = GameEngine(quiet_settings(max_health=1), scheduler, narration=NarrationQueue(backend))
    engine.start_new_game()
    engine.reduce_health(1)

    engine.stop_game()
    scheduler.advance(1.0)

    assert engine.state is GameState.IDLE
    assert backend.stops == 1

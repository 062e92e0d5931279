"""Unit tests for the whole-item typing state machine."""

from __future__ import annotations

from dataclasses import dataclass
import random
from typing import Sequence

import pytest

from conftest import FakeSpeechBackend, quiet_settings
from pinyin_typing.events import CharacterCompleted, EventBus, ItemCompleted
from pinyin_typing.models import Category, GameState, WordItem
from pinyin_typing.scheduler import ManualScheduler
from pinyin_typing.services.economy import ScoreKeeper
from pinyin_typing.services.narration import NarrationQueue
from pinyin_typing.services.progress import InMemoryProgressStore
from pinyin_typing.session.engine import GameEngine
from pinyin_typing.session.typing_session import TypingSession, completion_points

NIHAO = WordItem("你好", "nihao", "nǐ hǎo")
LAOSHI = WordItem("老师", "laoshi", "lǎo shī")
HAO = WordItem("好", "hao", "hǎo")


class StaticContent:
    def __init__(self, items: Sequence[WordItem]) -> None:
        self.items = tuple(items)

    def get_items(self, category: Category) -> tuple[WordItem, ...]:
        return self.items


@dataclass
class Rig:
    session: TypingSession
    engine: GameEngine
    scores: ScoreKeeper
    scheduler: ManualScheduler
    backend: FakeSpeechBackend
    progress: InMemoryProgressStore
    bus: EventBus


def _rig(items: Sequence[WordItem], backend: FakeSpeechBackend | None = None, start: bool = True, **overrides) -> Rig:
    settings = quiet_settings(**overrides)
    scheduler = ManualScheduler()
    bus = EventBus()
    backend = backend or FakeSpeechBackend(auto=True)
    narration = NarrationQueue(backend, settings=settings)
    engine = GameEngine(settings, scheduler, bus, narration)
    scores = ScoreKeeper(settings, bus, random.Random(0), clock=scheduler.now)
    progress = InMemoryProgressStore()
    session = TypingSession(Category.MEDIUM, engine, scores, narration, StaticContent(items), progress)
    if start:
        session.start()
    return Rig(session, engine, scores, scheduler, backend, progress, bus)


def _type(rig: Rig, text: str) -> str:
    """Feed ``text`` one keystroke at a time, the way a UI field grows."""

    shown = rig.engine.current_input
    for key in text:
        shown = rig.session.handle_input(shown + key)
    return shown


def test_start_speaks_item_and_sets_first_hint() -> None:
    rig = _rig([NIHAO])

    assert rig.engine.state is GameState.PLAYING
    assert rig.session.target_input == "nihao"
    assert rig.session.breakpoints == {2: 0, 5: 1}
    assert rig.engine.hint_key == "n"
    assert rig.backend.texts == ["你好"]


def test_nihao_scenario() -> None:
    """Typing 你好 completes 你 at "ni" and rejects a typo at the fifth letter."""

    rig = _rig([NIHAO, LAOSHI])
    completed: list[CharacterCompleted] = []
    rig.bus.subscribe(CharacterCompleted, completed.append)

    assert rig.session.handle_input("n") == "n"
    assert completed == []
    assert not rig.engine.word_complete

    assert rig.session.handle_input("ni") == "ni"
    assert completed == [CharacterCompleted(0, "你")]
    assert rig.backend.texts[-1] == "你"
    assert rig.engine.hint_key == "h"

    assert rig.session.handle_input("nih") == "nih"
    assert not rig.engine.is_wrong

    assert rig.session.handle_input("nihax") == "niha"
    assert rig.engine.current_input == "niha"
    assert rig.engine.is_wrong
    assert rig.engine.health == 4
    assert rig.scores.combo == 0


def test_burst_stops_at_first_mismatch() -> None:
    """A pasted burst cannot skip over an error."""

    rig = _rig([NIHAO])

    shown = rig.session.handle_input("niwrongx")

    assert shown == "ni"
    assert rig.engine.current_input == "ni"
    assert rig.engine.is_wrong
    assert rig.engine.health == 4
    assert rig.scores.correct_letters == 2


def test_deletion_is_accepted_without_penalty() -> None:
    rig = _rig([NIHAO])
    _type(rig, "nih")
    combo = rig.scores.combo

    assert rig.session.handle_input("ni") == "ni"

    assert rig.engine.current_input == "ni"
    assert rig.engine.hint_key == "h"
    assert rig.engine.health == 5
    assert not rig.engine.is_wrong
    assert rig.scores.combo == combo


def test_non_prefix_growth_snaps_back() -> None:
    rig = _rig([NIHAO])
    _type(rig, "ni")

    assert rig.session.handle_input("nuhao") == "ni"
    assert rig.engine.health == 5


def test_equal_length_edit_snaps_back() -> None:
    rig = _rig([NIHAO])
    _type(rig, "ni")

    assert rig.session.handle_input("nu") == "ni"
    assert rig.engine.current_input == "ni"
    assert not rig.engine.is_wrong


def test_dirty_buffer_is_cleaned_without_validation() -> None:
    rig = _rig([NIHAO])

    assert rig.session.handle_input("Ni") == "ni"
    assert rig.engine.current_input == ""
    assert rig.scores.correct_letters == 0


def test_correct_letters_pay_money_and_build_combo() -> None:
    rig = _rig([NIHAO], money_per_letter=0.05)

    _type(rig, "nih")

    assert rig.scores.money == pytest.approx(0.15)
    assert rig.scores.combo == 3
    assert rig.scores.correct_letters == 3


def test_completion_scores_and_advances_after_narration() -> None:
    rig = _rig([NIHAO, LAOSHI], delay_standard=0.2)
    completed: list[ItemCompleted] = []
    rig.bus.subscribe(ItemCompleted, completed.append)

    assert _type(rig, "nihao") == "nihao"

    assert rig.engine.word_complete
    assert completed == [ItemCompleted(0, NIHAO, 12)]
    assert rig.scores.score == 12
    assert rig.backend.texts[-1] == "你好"
    assert rig.session.index == 0

    rig.scheduler.advance(0.2)

    assert rig.session.index == 1
    assert rig.engine.current_input == ""
    assert not rig.engine.word_complete
    assert rig.session.target_input == "laoshi"
    assert rig.backend.texts[-1] == "老师"


def test_input_ignored_while_word_complete() -> None:
    rig = _rig([NIHAO, LAOSHI])
    _type(rig, "nihao")

    assert rig.session.handle_input("nihaol") == "nihao"
    assert rig.engine.health == 5


def test_burst_characters_after_completion_are_discarded() -> None:
    rig = _rig([NIHAO, LAOSHI])

    assert rig.session.handle_input("nihaolao") == "nihao"
    assert rig.engine.word_complete
    assert not rig.engine.is_wrong


def test_delay_before_speak_postpones_completion_narration() -> None:
    rig = _rig([NIHAO, LAOSHI], delay_before_speak=0.5)
    _type(rig, "nihao")
    spoken = list(rig.backend.texts)

    rig.scheduler.advance(0.4)
    assert rig.backend.texts == spoken

    rig.scheduler.advance(0.1)
    assert rig.backend.texts[len(spoken)] == "你好"


def test_single_character_item_is_spoken_once_on_completion() -> None:
    rig = _rig([HAO, NIHAO])
    completed: list[CharacterCompleted] = []
    rig.bus.subscribe(CharacterCompleted, completed.append)
    rig.backend.spoken.clear()

    _type(rig, "hao")

    assert rig.backend.texts == ["好"]
    assert completed == [CharacterCompleted(0, "好")]


def test_multi_character_item_speaks_each_character_then_the_item() -> None:
    rig = _rig([LAOSHI, NIHAO])
    rig.backend.spoken.clear()

    _type(rig, "laoshi")

    assert rig.backend.texts == ["老", "师", "老师"]


def test_per_character_narration_speeds_up_for_fast_typing() -> None:
    rig = _rig([NIHAO], single_char_speed_multiplier=2.0)

    _type(rig, "ni")

    text, rate = rig.backend.spoken[-1]
    assert text == "你"
    assert rate == 1.5 * 2.0


def test_stale_advance_is_ignored_after_navigation() -> None:
    """A pending completion advance cannot move the session after a jump."""

    rig = _rig([NIHAO, LAOSHI, HAO], delay_standard=0.5)
    _type(rig, "nihao")

    rig.session.jump_to(2, speak=False)
    rig.scheduler.advance(5.0)

    assert rig.session.index == 2


def test_stale_narration_callback_is_ignored_after_stop() -> None:
    backend = FakeSpeechBackend()
    rig = _rig([NIHAO, LAOSHI], backend=backend)
    backend.finish()
    _type(rig, "nihao")
    generation = rig.session.generation

    rig.session.stop()
    rig.scheduler.advance(5.0)

    assert rig.session.generation > generation
    assert rig.session.index == 0
    assert rig.progress.load_progress(Category.MEDIUM) == 0


def test_cyclic_next_and_previous() -> None:
    items = [WordItem(ch, "", py) for ch, py in zip("一二三四五", ["yī", "èr", "sān", "sì", "wǔ"])]
    rig = _rig(items)

    rig.session.jump_to(4)
    rig.session.next_item()
    assert rig.session.index == 0

    rig.session.previous_item()
    assert rig.session.index == 4


def test_jump_checkpoints_current_index_and_resets_item_state() -> None:
    rig = _rig([NIHAO, LAOSHI, HAO])
    rig.session.jump_to(1)
    _type(rig, "lx")

    rig.session.jump_to(2)

    assert rig.progress.load_progress(Category.MEDIUM) == 1
    assert rig.engine.current_input == ""
    assert not rig.engine.is_wrong
    assert rig.session.last_completed_char_index == -1
    assert rig.engine.hint_key == "h"
    assert rig.backend.preloaded[-2:] == ["好", "你好"]


def test_start_restores_clamped_checkpoint() -> None:
    rig = _rig([NIHAO, LAOSHI], start=False)
    rig.progress.save_progress(Category.MEDIUM, 99)

    rig.session.start()

    assert rig.session.index == 1
    assert rig.session.target_input == "laoshi"


def test_first_input_interrupts_narration() -> None:
    backend = FakeSpeechBackend()
    rig = _rig([NIHAO], backend=backend)
    stops = backend.stops

    rig.session.handle_input("n")

    assert backend.stops == stops + 1
    assert rig.session.has_started_input


def test_input_ignored_unless_playing() -> None:
    rig = _rig([NIHAO])
    rig.engine.pause()

    assert rig.session.handle_input("n") == ""
    assert rig.scores.correct_letters == 0


def test_wrong_flag_clears_and_hint_is_restored() -> None:
    rig = _rig([NIHAO])
    _type(rig, "n")
    rig.session.handle_input("nx")

    rig.scheduler.advance(0.4)

    assert not rig.engine.is_wrong
    assert rig.engine.hint_key == "i"


def test_health_reaching_zero_ends_the_game() -> None:
    rig = _rig([NIHAO], max_health=2)
    rig.session.handle_input("x")
    rig.session.handle_input("x")

    rig.scheduler.advance(0.5)

    assert rig.engine.state is GameState.GAME_OVER
    assert rig.session.handle_input("n") == ""


def test_empty_category_is_inert() -> None:
    rig = _rig([])

    assert rig.session.item is None
    assert rig.session.handle_input("a") == ""
    rig.session.next_item()
    assert rig.session.index == 0


def test_current_input_stays_a_prefix_of_target() -> None:
    rng = random.Random(11)
    rig = _rig([WordItem("床前明月光", "", "chuáng qián míng yuè guāng")], delay_standard=100)
    target = rig.session.target_input

    for _ in range(300):
        shown = rig.engine.current_input
        roll = rng.random()
        if roll < 0.5 and len(shown) < len(target):
            raw = shown + target[len(shown)]
        elif roll < 0.7:
            raw = shown + rng.choice("abcdefghijklmnopqrstuvwxyz") * rng.randint(1, 3)
        elif roll < 0.85:
            raw = shown[: rng.randint(0, len(shown))]
        else:
            raw = rng.choice(["", "ZZ", "chu ang", target[::-1]])
        rig.session.handle_input(raw)
        assert target.startswith(rig.engine.current_input)


def test_completion_points_cap_combo_bonus() -> None:
    assert completion_points(0) == 10
    assert completion_points(4) == 10
    assert completion_points(10) == 14
    assert completion_points(500) == 30


def test_rapid_mistakes_after_last_health_still_end_game() -> None:
    rig = _rig([NIHAO], max_health=1)

    rig.session.handle_input("x")
    for _ in range(10):
        rig.scheduler.advance(0.4)
        rig.session.handle_input("x")

    assert rig.engine.state is GameState.GAME_OVER
    assert rig.engine.health == 0

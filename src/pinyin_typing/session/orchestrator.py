"""Select, drive and tear down the active session."""

from __future__ import annotations

import logging
import random

from pinyin_typing.content.repository import ContentRepository
from pinyin_typing.events import EventBus
from pinyin_typing.keyboard.validator import InputValidator
from pinyin_typing.models import Category, SessionSnapshot
from pinyin_typing.scheduler import Scheduler
from pinyin_typing.services.economy import ScoreKeeper
from pinyin_typing.services.narration import InputPacer, NarrationQueue
from pinyin_typing.services.progress import ProgressStore
from pinyin_typing.session.engine import GameEngine
from pinyin_typing.session.practice_session import PracticeSession
from pinyin_typing.session.typing_session import TypingSession
from pinyin_typing.settings import GameSettings

logger = logging.getLogger(__name__)

Session = TypingSession | PracticeSession


class SessionOrchestrator:
    """Single entry point for the UI layer.

    Owns the shared engine and score keeper and creates one session per
    selected category. Sessions are started, fed and stopped only from here.
    """

    def __init__(
        self,
        settings: GameSettings,
        content: ContentRepository,
        progress: ProgressStore,
        narration: NarrationQueue,
        scheduler: Scheduler,
        bus: EventBus | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings
        self.content = content
        self.progress = progress
        self.narration = narration
        self.scheduler = scheduler
        self.bus = bus or EventBus()
        self.rng = rng or random.Random()
        self.validator = InputValidator()
        self.engine = GameEngine(settings, scheduler, self.bus, narration, self.validator)
        self.scores = ScoreKeeper(
            settings, self.bus, self.rng, clock=scheduler.now, totals=progress.load_totals()
        )
        self.pacer = InputPacer(scheduler.now)
        self.category: Category | None = None
        self.session: Session | None = None
        self.engine.on_game_over = self._on_game_over

    def _build(self, category: Category) -> Session:
        if category.is_practice:
            return PracticeSession(category, self.engine, self.scores, self.narration, self.rng, self.validator)
        return TypingSession(
            category,
            self.engine,
            self.scores,
            self.narration,
            self.content,
            self.progress,
            self.pacer,
            self.validator,
        )

    def select(self, category: Category) -> None:
        """Replace the active session with a fresh one for ``category``."""

        if self.session is not None:
            self.session.stop()
        self.category = category
        self.session = self._build(category)
        logger.info("Selected %s", category.value)
        self._start()

    def _start(self) -> None:
        if self.session is None:
            return
        self.scores.reset_session()
        self.pacer.reset()
        self.session.start()

    def handle_input(self, raw: str) -> str:
        """Feed the input field text; returns what the field should now show.

        When the session only cleaned the text, the cleaned text is fed once
        more so it is validated in its own pass.
        """

        if self.session is None:
            return ""
        shown = self.session.handle_input(raw)
        if shown != raw and shown == self.validator.clean_input(raw):
            shown = self.session.handle_input(shown)
        return shown

    def next(self) -> None:
        if isinstance(self.session, TypingSession):
            self.session.next_item()

    def previous(self) -> None:
        if isinstance(self.session, TypingSession):
            self.session.previous_item()

    def jump(self, index: int, speak: bool = True) -> None:
        if isinstance(self.session, TypingSession):
            self.session.jump_to(index, speak)

    def stop(self) -> None:
        if self.session is not None:
            self.session.stop()
        self.engine.stop_game()
        self.progress.save_totals(self.scores.totals())

    def restart(self) -> None:
        if self.category is not None:
            self.select(self.category)

    def exit_to_home(self) -> None:
        self.stop()
        self.session = None
        self.category = None

    def _on_game_over(self) -> None:
        if self.session is not None:
            self.session.stop()
        self.progress.save_totals(self.scores.totals())

    def pause(self) -> None:
        self.engine.pause()

    def resume(self) -> None:
        self.engine.resume()

    def buy_health(self) -> bool:
        """Spend coins on one health point; returns whether the purchase happened."""

        cost = self.settings.health_cost
        if self.scores.coins < cost or self.engine.health >= self.settings.max_health:
            return False
        self.scores.deduct_coins(cost)
        self.engine.increase_health(1)
        logger.info("Bought one health for %d coins", cost)
        return True

    def reset_progress(self) -> None:
        """Forget checkpoints and totals, then restart the current category."""

        if self.session is not None:
            self.session.stop()
            self.session = None
        self.progress.reset()
        self.scores.reset()
        logger.info("Progress reset")
        self.restart()

    def snapshot(self) -> SessionSnapshot:
        session = self.session
        item = session.item if isinstance(session, TypingSession) else None
        if isinstance(session, TypingSession):
            index, target = session.index, session.target_input
        elif isinstance(session, PracticeSession):
            index, target = session.index, session.target
        else:
            index, target = 0, ""
        return SessionSnapshot(
            category=self.category,
            state=self.engine.state,
            item_index=index,
            item=item,
            current_input=self.engine.current_input,
            target_input=target,
            hint_key=self.engine.hint_key,
            is_wrong=self.engine.is_wrong,
            word_complete=self.engine.word_complete,
            health=self.engine.health,
            combo=self.scores.combo,
            score=self.scores.score,
        )

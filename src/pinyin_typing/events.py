"""Typed state-change events published by the session core.

Rendering layers subscribe to the event types they draw; the core never
assumes a reactive framework.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
import logging
from typing import Any, Callable, TypeVar

from pinyin_typing.models import FingerTag, GameState, WordItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateChanged:
    state: GameState


@dataclass(frozen=True)
class ItemChanged:
    index: int
    item: WordItem


@dataclass(frozen=True)
class InputChanged:
    text: str


@dataclass(frozen=True)
class HintChanged:
    key: str | None
    finger: FingerTag | None


@dataclass(frozen=True)
class KeyPressed:
    key: str


@dataclass(frozen=True)
class WrongInput:
    key: str
    expected: str | None


@dataclass(frozen=True)
class WrongCleared:
    pass


@dataclass(frozen=True)
class CharacterCompleted:
    char_index: int
    char: str


@dataclass(frozen=True)
class ItemCompleted:
    index: int
    item: WordItem
    points: int


@dataclass(frozen=True)
class HealthChanged:
    health: int
    max_health: int

    @property
    def is_low(self) -> bool:
        return 0 < self.health <= 2


@dataclass(frozen=True)
class TimeChanged:
    remaining: float


@dataclass(frozen=True)
class RewardGranted:
    """A bonus payout; ``kind`` is combo, lucky, treasure, meteor or milestone."""

    kind: str
    amount: float
    combo: int = 0


@dataclass(frozen=True)
class PracticeTargetChanged:
    target: str
    repeats_left: int
    repeats_total: int


EventT = TypeVar("EventT")
Handler = Callable[[Any], None]


class EventBus:
    """Synchronous publish/subscribe dispatcher keyed by event type."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)
        self._catch_all: list[Handler] = []

    def subscribe(self, event_type: type[EventT], handler: Callable[[EventT], None]) -> Callable[[], None]:
        """Register ``handler`` for ``event_type``; returns an unsubscribe callable."""

        self._handlers[event_type].append(handler)
        return lambda: self._handlers[event_type].remove(handler)

    def subscribe_all(self, handler: Handler) -> Callable[[], None]:
        self._catch_all.append(handler)
        return lambda: self._catch_all.remove(handler)

    def publish(self, event: object) -> None:
        logger.debug("event %s", event)
        for handler in list(self._handlers.get(type(event), ())):
            handler(event)
        for handler in list(self._catch_all):
            handler(event)

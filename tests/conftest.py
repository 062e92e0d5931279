from __future__ import annotations

import json
from pathlib import Path
import random
from typing import Iterable

import pytest

from pinyin_typing.content.repository import ContentRepository
from pinyin_typing.events import EventBus
from pinyin_typing.scheduler import ManualScheduler
from pinyin_typing.services.narration import NarrationQueue
from pinyin_typing.services.progress import InMemoryProgressStore
from pinyin_typing.session.orchestrator import SessionOrchestrator
from pinyin_typing.settings import GameSettings

FIXTURES = Path(__file__).resolve().parent / "fixtures"


class FakeSpeechBackend:
    """Speech backend that records requests and finishes them on demand.

    With ``auto=True`` every utterance finishes as soon as it starts.
    """

    def __init__(self, auto: bool = False, succeed: bool = True) -> None:
        self.auto = auto
        self.succeed = succeed
        self.spoken: list[tuple[str, float]] = []
        self.preloaded: list[str] = []
        self.stops = 0
        self._pending: list = []

    @property
    def texts(self) -> list[str]:
        return [text for text, _ in self.spoken]

    def speak(self, text: str, rate: float, on_done) -> None:
        self.spoken.append((text, rate))
        if self.auto:
            on_done(self.succeed)
        else:
            self._pending.append(on_done)

    def finish(self, success: bool = True) -> None:
        self._pending.pop(0)(success)

    def stop(self) -> None:
        self.stops += 1
        self._pending.clear()

    def preload(self, texts: Iterable[str]) -> None:
        self.preloaded.extend(texts)


def quiet_settings(**overrides) -> GameSettings:
    """Settings without random rewards so tests are deterministic."""

    values = dict(
        random_reward_chance=0.0,
        random_treasure_chance=0.0,
        random_meteor_chance=0.0,
    )
    values.update(overrides)
    return GameSettings(_env_file=None, **values)


def write_content(directory: Path, data: dict) -> Path:
    path = directory / "words.json"
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def settings() -> GameSettings:
    return quiet_settings()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def backend() -> FakeSpeechBackend:
    return FakeSpeechBackend(auto=True)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def content() -> ContentRepository:
    return ContentRepository(FIXTURES / "words.json")


@pytest.fixture
def progress() -> InMemoryProgressStore:
    return InMemoryProgressStore()


@pytest.fixture
def orchestrator(settings, content, progress, backend, scheduler, bus) -> SessionOrchestrator:
    narration = NarrationQueue(backend, settings=settings)
    return SessionOrchestrator(settings, content, progress, narration, scheduler, bus, random.Random(7))

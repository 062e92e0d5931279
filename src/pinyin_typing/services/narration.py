"""Serialized text-to-speech queue over pluggable speech backends."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
import logging
from typing import Callable, Iterable, Protocol

from pinyin_typing.settings import GameSettings

logger = logging.getLogger(__name__)

DoneCallback = Callable[[], None]
BackendCallback = Callable[[bool], None]


class SpeechBackend(Protocol):
    """One speech engine; ``on_done`` receives whether playback succeeded."""

    def speak(self, text: str, rate: float, on_done: BackendCallback) -> None: ...

    def stop(self) -> None: ...

    def preload(self, texts: Iterable[str]) -> None: ...


class SilentSpeechBackend:
    """Backend that finishes every utterance immediately without sound."""

    def speak(self, text: str, rate: float, on_done: BackendCallback) -> None:
        on_done(True)

    def stop(self) -> None:
        pass

    def preload(self, texts: Iterable[str]) -> None:
        pass


@dataclass(frozen=True)
class _Utterance:
    text: str
    rate: float
    on_done: DoneCallback | None


class NarrationQueue:
    """Play utterances one at a time, in request order.

    A request whose primary backend fails (or raises) is retried once on the
    fallback backend; without one it simply counts as done. After :meth:`stop`
    no callback from an earlier request is ever delivered.
    """

    def __init__(
        self,
        primary: SpeechBackend,
        fallback: SpeechBackend | None = None,
        settings: GameSettings | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.settings = settings
        self._queue: deque[_Utterance] = deque()
        self._current: _Utterance | None = None
        self._generation = 0

    @property
    def enabled(self) -> bool:
        return self.settings.tts_enabled if self.settings is not None else True

    @property
    def is_speaking(self) -> bool:
        return self._current is not None

    @property
    def pending(self) -> int:
        return len(self._queue)

    def speak(self, text: str, rate_multiplier: float = 1.0, on_done: DoneCallback | None = None) -> None:
        """Queue ``text``; ``on_done`` fires once it has been spoken (or skipped)."""

        if not self.enabled or not text:
            logger.debug("Narration skipped for %r", text)
            if on_done is not None:
                on_done()
            return

        rate = rate_multiplier
        if len(text) == 1 and self.settings is not None:
            rate *= self.settings.single_char_speed_multiplier
        self._queue.append(_Utterance(text=text, rate=rate, on_done=on_done))
        logger.debug("Queued narration %r (pending=%d)", text, len(self._queue))
        if self._current is None:
            self._play_next()

    def stop(self) -> None:
        """Drop every queued and playing utterance without calling back."""

        self._generation += 1
        self._queue.clear()
        self._current = None
        self.primary.stop()
        if self.fallback is not None:
            self.fallback.stop()

    def preload(self, texts: Iterable[str]) -> None:
        """Ask the primary backend to prepare audio for upcoming texts."""

        wanted = [text for text in texts if text]
        if not wanted or not self.enabled:
            return
        try:
            self.primary.preload(wanted)
        except Exception:
            logger.warning("Narration preload failed for %d text(s)", len(wanted), exc_info=True)

    def _play_next(self) -> None:
        if self._current is not None or not self._queue:
            return
        utterance = self._queue.popleft()
        self._current = utterance
        self._generation += 1
        generation = self._generation
        self._run(self.primary, utterance, generation, is_fallback=False)

    def _run(self, backend: SpeechBackend, utterance: _Utterance, generation: int, *, is_fallback: bool) -> None:
        def done(success: bool) -> None:
            if generation != self._generation:
                return
            if success or is_fallback or self.fallback is None:
                if not success:
                    logger.warning("Narration of %r failed; skipping", utterance.text)
                self._finish(utterance)
                return
            logger.warning("Primary narration failed for %r; using fallback", utterance.text)
            self._run(self.fallback, utterance, generation, is_fallback=True)

        try:
            backend.speak(utterance.text, utterance.rate, done)
        except Exception:
            logger.warning("Speech backend raised while speaking %r", utterance.text, exc_info=True)
            done(False)

    def _finish(self, utterance: _Utterance) -> None:
        self._current = None
        self._generation += 1
        if utterance.on_done is not None:
            utterance.on_done()
        self._play_next()


class InputPacer:
    """Suggest a narration speed from how fast the learner is typing."""

    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self._last_input: float | None = None
        self._multiplier = 1.0

    @property
    def rate_multiplier(self) -> float:
        return self._multiplier

    def record_input(self) -> None:
        now = self._clock()
        if self._last_input is not None:
            interval = now - self._last_input
            if interval < 0.25:
                self._multiplier = 1.5
            elif interval < 0.45:
                self._multiplier = 1.2
            else:
                self._multiplier = 1.0
        self._last_input = now

    def reset(self) -> None:
        self._last_input = None
        self._multiplier = 1.0

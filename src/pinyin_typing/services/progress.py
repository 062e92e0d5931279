"""Per-category checkpoints and player totals."""

from __future__ import annotations

from dataclasses import asdict
import json
import logging
from pathlib import Path
from typing import Protocol

from pinyin_typing.models import Category, PlayerTotals

logger = logging.getLogger(__name__)


class ProgressStore(Protocol):
    def save_progress(self, category: Category, index: int) -> None: ...

    def load_progress(self, category: Category) -> int: ...

    def save_totals(self, totals: PlayerTotals) -> None: ...

    def load_totals(self) -> PlayerTotals: ...

    def reset(self) -> None: ...


class InMemoryProgressStore:
    """Process-local store; nothing survives the interpreter."""

    def __init__(self) -> None:
        self.levels: dict[Category, int] = {}
        self.totals = PlayerTotals()

    def save_progress(self, category: Category, index: int) -> None:
        self.levels[category] = index

    def load_progress(self, category: Category) -> int:
        return self.levels.get(category, 0)

    def save_totals(self, totals: PlayerTotals) -> None:
        self.totals = totals

    def load_totals(self) -> PlayerTotals:
        return self.totals

    def reset(self) -> None:
        self.levels.clear()
        self.totals = PlayerTotals()


class JsonProgressStore:
    """Persist progress as one pretty-printed JSON document.

    Layout::

        {"levelProgress": {"easy": 3}, "totalScore": 120, "totalMoney": 4.5,
         "totalCorrectLetters": 900, "currentCombo": 0, "maxCombo": 41}

    Every save rewrites the whole file. A missing file reads as empty progress.
    """

    _TOTAL_KEYS = {
        "score": "totalScore",
        "money": "totalMoney",
        "correct_letters": "totalCorrectLetters",
        "current_combo": "currentCombo",
        "max_combo": "maxCombo",
    }

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._data = self._read()

    def _read(self) -> dict:
        if not self.path.exists():
            return {"levelProgress": {}}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Progress file {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"Progress file {self.path} must contain a JSON object")
        data.setdefault("levelProgress", {})
        return data

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8")

    def save_progress(self, category: Category, index: int) -> None:
        self._data["levelProgress"][category.value] = index
        self._write()

    def load_progress(self, category: Category) -> int:
        value = self._data["levelProgress"].get(category.value, 0)
        return int(value) if isinstance(value, (int, float)) else 0

    def save_totals(self, totals: PlayerTotals) -> None:
        for field_name, value in asdict(totals).items():
            self._data[self._TOTAL_KEYS[field_name]] = value
        self._write()
        logger.debug("Saved player totals to %s", self.path)

    def load_totals(self) -> PlayerTotals:
        values = {
            field_name: self._data[key] for field_name, key in self._TOTAL_KEYS.items() if key in self._data
        }
        if "money" in values:
            values["money"] = float(values["money"])
        return PlayerTotals(**values)

    def reset(self) -> None:
        self._data = {"levelProgress": {}}
        self._write()
        logger.info("Reset player progress at %s", self.path)

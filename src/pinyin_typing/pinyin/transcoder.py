"""Convert tone-marked display pinyin into the letters a learner actually types."""

from __future__ import annotations

from collections import OrderedDict
import unicodedata

U_UMLAUT_FORMS = frozenset("üǖǘǚǜÜǕǗǙǛ")

DEFAULT_MAX_ENTRIES = 5000
DEFAULT_MAX_BYTES = 50 * 1024 * 1024


class BoundedCache:
    """Least-recently-used string cache bounded by entry count and byte size.

    The byte cost of one entry is the UTF-8 size of its key plus its value.
    Inserting past either limit evicts the oldest entries first.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        if max_entries <= 0 or max_bytes <= 0:
            raise ValueError("Cache limits must be positive.")
        self.max_entries = max_entries
        self.max_bytes = max_bytes
        self._entries: OrderedDict[str, str] = OrderedDict()
        self._total_bytes = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def total_bytes(self) -> int:
        """Return the current accounted size of all entries."""

        return self._total_bytes

    def get(self, key: str) -> str | None:
        value = self._entries.get(key)
        if value is not None:
            self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: str) -> None:
        cost = _cost(key, value)
        if cost > self.max_bytes:
            return
        previous = self._entries.pop(key, None)
        if previous is not None:
            self._total_bytes -= _cost(key, previous)
        self._entries[key] = value
        self._total_bytes += cost
        while len(self._entries) > self.max_entries or self._total_bytes > self.max_bytes:
            old_key, old_value = self._entries.popitem(last=False)
            self._total_bytes -= _cost(old_key, old_value)

    def clear(self) -> None:
        self._entries.clear()
        self._total_bytes = 0


def _cost(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


def _strip_marks(char: str) -> str:
    """Drop combining marks from one code point after canonical decomposition."""

    decomposed = unicodedata.normalize("NFD", char)
    return "".join(part for part in decomposed if not unicodedata.combining(part))


class PinyinTranscoder:
    """Memoized display-pinyin to input-pinyin converter.

    ``ü`` in every tone form becomes ``v`` (the key used by pinyin IMEs);
    every other code point loses its tone marks and is lower-cased.
    """

    def __init__(self, cache: BoundedCache | None = None) -> None:
        self.cache = cache if cache is not None else BoundedCache()

    def to_input_form(self, syllable: str) -> str:
        """Return the typed-letter form of ``syllable``.

        Args:
            syllable: Display pinyin such as ``lǜ`` or ``hǎo``.

        Returns:
            Input form such as ``lv`` or ``hao``.
        """

        cached = self.cache.get(syllable)
        if cached is not None:
            return cached

        chars: list[str] = []
        for ch in syllable:
            if ch in U_UMLAUT_FORMS:
                chars.append("v")
            else:
                chars.append(_strip_marks(ch).lower())
        result = "".join(chars)

        self.cache.set(syllable, result)
        return result


_DEFAULT_TRANSCODER = PinyinTranscoder()


def to_input_form(syllable: str) -> str:
    """Transcode ``syllable`` with the process-wide memoized transcoder."""

    return _DEFAULT_TRANSCODER.to_input_form(syllable)

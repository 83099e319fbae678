"""Display text assembled from tentative and confirmed transcriptions."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from livecaption.backend.application.transcriber.types import (
        TranscriptionOutcome,
    )

_SENTENCE_END = re.compile(r"([.!?]) +|([。！？])(?=[^\n])")


def count_overlapped(committed: str, incoming: str) -> int:
    """Length of the tail of ``committed`` that ``incoming`` starts over.

    The first word of ``incoming`` is searched (case-insensitively) from the
    right of ``committed``; everything from that match on is considered
    repeated. Text whose case folding changes its length is matched
    case-sensitively so the index stays valid.
    """
    words = incoming.split()
    if not words:
        return 0
    folded = committed.casefold()
    if len(folded) == len(committed):
        index = folded.rfind(words[0].casefold())
    else:
        index = committed.rfind(words[0])
    if index < 0:
        return 0
    return len(committed) - index


def break_sentences(text: str) -> str:
    """Put a line break after every sentence ending."""

    def _replace(match: "re.Match[str]") -> str:
        return (match.group(1) or match.group(2)) + "\n"

    return _SENTENCE_END.sub(_replace, text)


class TextStabilizer:
    def __init__(self, max_chars: int = 400) -> None:
        self.max_chars = max(0, int(max_chars))
        self._committed = ""
        self._current = ""
        self._modified = False

    @property
    def committed(self) -> str:
        return self._committed

    @property
    def current(self) -> str:
        return self._current

    def apply(self, outcome: "TranscriptionOutcome") -> None:
        from livecaption.backend.application.transcriber.types import OutcomeKind

        if outcome.kind is OutcomeKind.TENTATIVE:
            self._set_current(outcome.text or "")
        elif outcome.kind is OutcomeKind.CONFIRMED:
            self._commit(outcome.text or "")

    def _set_current(self, text: str) -> None:
        if text != self._current:
            self._current = text
            self._modified = True

    def _commit(self, text: str) -> None:
        text = text.strip()
        base = self._committed
        if text:
            base = base[: len(base) - count_overlapped(base, text)].rstrip()
            base = f"{base} {text}" if base else text
        self._committed = self._bound(base)
        self._current = ""
        self._modified = True

    def _bound(self, text: str) -> str:
        if self.max_chars == 0 or len(text) <= self.max_chars:
            return text
        tail = text[-self.max_chars :]
        cut = tail.find(" ")
        if 0 <= cut < len(tail) - 1:
            tail = tail[cut + 1 :]
        return tail

    def render(self) -> Optional[str]:
        """Return the display text if it changed since the last render."""
        if not self._modified:
            return None
        self._modified = False
        return self.text()

    def text(self) -> str:
        if self._committed and self._current:
            combined = f"{self._committed} {self._current}"
        else:
            combined = self._committed or self._current
        return break_sentences(combined)

    def clear(self) -> None:
        self._committed = ""
        self._current = ""
        self._modified = True


__all__ = ["TextStabilizer", "break_sentences", "count_overlapped"]

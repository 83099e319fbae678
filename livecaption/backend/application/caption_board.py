"""Thread-safe holder of the caption state shown to consumers."""

from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional

from livecaption.backend.application.transcriber.types import (
    OutcomeKind,
    TranscriptionOutcome,
)
from livecaption.backend.component.text_stabilizer import TextStabilizer
from livecaption.utils.logger import LOGGER, TRANSCRIPT_LOGGER


class CaptionBoard:
    """Outcome sink that keeps the stabilised display text and counters."""

    def __init__(self, max_chars: int = 400) -> None:
        self._lock = threading.Lock()
        self._stabilizer = TextStabilizer(max_chars=max_chars)
        self._text = ""
        self._tentative: Optional[str] = None
        self._confirmed: Optional[str] = None
        self._tentative_count = 0
        self._confirmed_count = 0
        self._last_error: Optional[Dict[str, str]] = None
        self._updated_at: Optional[float] = None

    def __call__(self, outcome: TranscriptionOutcome) -> None:
        self.publish(outcome)

    def publish(self, outcome: TranscriptionOutcome) -> None:
        if outcome.kind is OutcomeKind.NONE:
            return
        with self._lock:
            if outcome.kind is OutcomeKind.FAILED and outcome.error is not None:
                self._last_error = {
                    "code": outcome.error.code.value,
                    "message": outcome.error.detail,
                }
            elif outcome.kind is OutcomeKind.TENTATIVE:
                self._tentative = outcome.text
                self._tentative_count += 1
            elif outcome.kind is OutcomeKind.CONFIRMED:
                self._confirmed = outcome.text
                self._tentative = None
                self._confirmed_count += 1
                self._last_error = None
            self._stabilizer.apply(outcome)
            rendered = self._stabilizer.render()
            if rendered is not None:
                self._text = rendered
            self._updated_at = time.time()
        if outcome.kind is OutcomeKind.CONFIRMED and outcome.text:
            TRANSCRIPT_LOGGER.info("%s", outcome.text)

    def clear(self) -> None:
        with self._lock:
            self._stabilizer.clear()
            self._stabilizer.render()
            self._text = ""
            self._tentative = None
            self._confirmed = None
            self._last_error = None
            self._updated_at = time.time()
        LOGGER.debug("Caption board cleared")

    @property
    def text(self) -> str:
        with self._lock:
            return self._text

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "text": self._text,
                "tentative": self._tentative,
                "confirmed": self._confirmed,
                "tentative_count": self._tentative_count,
                "confirmed_count": self._confirmed_count,
                "last_error": dict(self._last_error) if self._last_error else None,
                "updated_at": self._updated_at,
            }


__all__ = ["CaptionBoard"]

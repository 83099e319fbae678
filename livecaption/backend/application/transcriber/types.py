"""Types for the streaming transcriber."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

from livecaption.backend.component.decode_cache import (
    ConfidenceRollbackPolicy,
    RepetitionRollbackPolicy,
    RollbackPolicy,
)
from livecaption.config.default import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_MAX_CONSECUTIVE_FAILURES,
    DEFAULT_MAX_SYMBOLS_PER_FRAME,
    DEFAULT_REPETITION_MIN_REPEATS,
    DEFAULT_REPETITION_MIN_SCORE,
    DEFAULT_REPETITION_MIN_TOKENS,
    DEFAULT_ROLLBACK_STRATEGY,
    DEFAULT_TENTATIVE_TRIGGER_CHUNKS,
    DEFAULT_THRESHOLD_STEPS,
    DEFAULT_TRAILING_MARGIN,
)
from livecaption.errors import CaptionError, ErrorCode


@dataclass
class SpeechRunState:
    """Consecutive speech and silence sub-chunk counters since the last commit."""

    speech_count: int = 0
    silence_count: int = 0

    def reset(self) -> None:
        self.speech_count = 0
        self.silence_count = 0


@dataclass(frozen=True)
class ThresholdStep:
    """Gate settings in effect from ``min_speech_chunks`` onward."""

    min_speech_chunks: int
    probability: float
    max_silence_chunks: int


@dataclass(frozen=True)
class ThresholdProfile:
    """Step table mapping utterance length to gate threshold and silence run.

    Longer utterances get a stricter probability and a shorter tolerated
    silence run so they get cut sooner.
    """

    steps: Tuple[ThresholdStep, ...]

    def __post_init__(self) -> None:
        if not self.steps:
            raise CaptionError(ErrorCode.CONFIG_INVALID, "threshold profile is empty")
        if self.steps[0].min_speech_chunks != 0:
            raise CaptionError(
                ErrorCode.CONFIG_INVALID, "threshold profile must start at 0 chunks"
            )
        previous = -1
        for step in self.steps:
            if step.min_speech_chunks <= previous:
                raise CaptionError(
                    ErrorCode.CONFIG_INVALID,
                    "threshold profile keys must be strictly increasing",
                )
            if not 0.0 < step.probability <= 1.0:
                raise CaptionError(
                    ErrorCode.CONFIG_INVALID,
                    f"threshold probability out of range: {step.probability}",
                )
            if step.max_silence_chunks < 0:
                raise CaptionError(
                    ErrorCode.CONFIG_INVALID,
                    f"negative silence run: {step.max_silence_chunks}",
                )
            previous = step.min_speech_chunks

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence]) -> "ThresholdProfile":
        return cls(
            tuple(
                ThresholdStep(int(count), float(probability), int(silence))
                for count, probability, silence in rows
            )
        )

    @classmethod
    def default(cls) -> "ThresholdProfile":
        return cls.from_rows(DEFAULT_THRESHOLD_STEPS)

    def lookup(self, speech_count: int) -> ThresholdStep:
        keys = [step.min_speech_chunks for step in self.steps]
        index = bisect.bisect_right(keys, max(0, speech_count)) - 1
        return self.steps[index]


class OutcomeKind(str, Enum):
    NONE = "none"
    TENTATIVE = "tentative"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class TranscriptionOutcome:
    """Result of one poll: nothing, a tentative or confirmed text, or a failure."""

    kind: OutcomeKind
    text: Optional[str] = None
    error: Optional[CaptionError] = None

    @classmethod
    def none(cls) -> "TranscriptionOutcome":
        return cls(OutcomeKind.NONE)

    @classmethod
    def tentative(cls, text: str) -> "TranscriptionOutcome":
        return cls(OutcomeKind.TENTATIVE, text=text)

    @classmethod
    def confirmed(cls, text: str) -> "TranscriptionOutcome":
        return cls(OutcomeKind.CONFIRMED, text=text)

    @classmethod
    def failed(cls, error: CaptionError) -> "TranscriptionOutcome":
        return cls(OutcomeKind.FAILED, error=error)

    @property
    def is_none(self) -> bool:
        return self.kind is OutcomeKind.NONE

    def to_dict(self) -> dict:
        payload: dict = {"kind": self.kind.value}
        if self.text is not None:
            payload["text"] = self.text
        if self.error is not None:
            payload["error"] = {
                "code": self.error.code.value,
                "message": self.error.detail,
            }
        return payload


@dataclass(frozen=True)
class TranscriberSettings:
    """Runtime knobs for the transcriber and its decode cache."""

    profile: ThresholdProfile = field(default_factory=ThresholdProfile.default)
    tentative_trigger_chunks: int = DEFAULT_TENTATIVE_TRIGGER_CHUNKS
    max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES
    rollback_strategy: str = DEFAULT_ROLLBACK_STRATEGY
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    unstable_tokens: Tuple[int, ...] = ()
    trailing_margin: int = DEFAULT_TRAILING_MARGIN
    max_symbols_per_frame: int = DEFAULT_MAX_SYMBOLS_PER_FRAME
    repetition_min_repeats: int = DEFAULT_REPETITION_MIN_REPEATS
    repetition_min_score: float = DEFAULT_REPETITION_MIN_SCORE
    repetition_min_tokens: int = DEFAULT_REPETITION_MIN_TOKENS

    def rollback_policy(self) -> RollbackPolicy:
        strategy = (self.rollback_strategy or "confidence").lower()
        if strategy == "confidence":
            return ConfidenceRollbackPolicy(
                threshold=self.confidence_threshold,
                unstable_tokens=self.unstable_tokens,
                trailing_margin=self.trailing_margin,
            )
        if strategy == "repetition":
            return RepetitionRollbackPolicy(
                min_repeats=self.repetition_min_repeats,
                min_score=self.repetition_min_score,
                min_tokens=self.repetition_min_tokens,
            )
        raise CaptionError(
            ErrorCode.CONFIG_INVALID, f"unknown rollback strategy: {strategy}"
        )

    def with_unstable_tokens(self, tokens: Iterable[int]) -> "TranscriberSettings":
        return replace(self, unstable_tokens=tuple(int(t) for t in tokens))


__all__ = [
    "OutcomeKind",
    "SpeechRunState",
    "ThresholdProfile",
    "ThresholdStep",
    "TranscriberSettings",
    "TranscriptionOutcome",
]

"""Recognizer interface consumed by the transcription pipeline."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol, Sequence, Tuple

import numpy as np

if TYPE_CHECKING:
    from livecaption.backend.component.feature_buffer import FeatureExtractor


@dataclass(frozen=True)
class ExecutionContext:
    """Device and threading options passed to every framework-backed component."""

    device: str = "cpu"
    num_threads: Optional[int] = None


@dataclass(frozen=True)
class TokenPrediction:
    """Single joint-network step.

    ``state`` is the predictor state after consuming ``token`` (unchanged for
    blank); ``duration`` is the number of encoder frames to advance, 0 for
    plain transducers.
    """

    token: int
    score: float
    state: Any = None
    duration: int = 0


class Recognizer(Protocol):
    """Backend interface for streaming transducer recognizers."""

    name: str
    sample_rate: int
    blank_id: int
    lead_in_samples: int
    unstable_tokens: Tuple[int, ...]

    def create_feature_extractor(self) -> "FeatureExtractor":
        """Return a fresh feature extractor matching this recognizer."""
        raise NotImplementedError

    def encode(self, features: np.ndarray) -> np.ndarray:
        """Map ``(T, F)`` features to ``(T', D)`` encoder frames."""
        raise NotImplementedError

    def predict(
        self, frame: np.ndarray, tokens: Sequence[int], state: Any
    ) -> TokenPrediction:
        """Run the predictor/joiner for one encoder frame."""
        raise NotImplementedError

    def detokenize(self, tokens: Sequence[int]) -> str:
        """Turn token ids into display text."""
        raise NotImplementedError

    def reset(self) -> None:
        """Drop any per-utterance caches held by the recognizer."""
        raise NotImplementedError


class NullRecognizer:
    """Recognizer that never produces text; used when no model is selected."""

    blank_id = 0
    lead_in_samples = 0
    unstable_tokens: Tuple[int, ...] = ()

    def __init__(
        self,
        name: str = "none",
        context: Optional[ExecutionContext] = None,
        sample_rate: int = 16000,
        **_options: Any,
    ) -> None:
        self.name = name
        self.sample_rate = sample_rate
        self.context = context or ExecutionContext()

    @classmethod
    def from_spec(
        cls, name: str, options: Dict[str, Any], context: ExecutionContext
    ) -> "NullRecognizer":
        return cls(name=name, context=context, **options)

    def create_feature_extractor(self) -> "FeatureExtractor":
        from livecaption.backend.component.feature_buffer import LogMelExtractor

        return LogMelExtractor(sample_rate=self.sample_rate)

    def encode(self, features: np.ndarray) -> np.ndarray:
        return np.zeros((0, 1), dtype=np.float32)

    def predict(
        self, frame: np.ndarray, tokens: Sequence[int], state: Any
    ) -> TokenPrediction:
        return TokenPrediction(token=self.blank_id, score=1.0, state=state, duration=1)

    def detokenize(self, tokens: Sequence[int]) -> str:
        return ""

    def reset(self) -> None:
        return None


__all__ = ["ExecutionContext", "NullRecognizer", "Recognizer", "TokenPrediction"]

import string
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import pytest

from livecaption.backend.application.transcriber import (
    ThresholdProfile,
    Transcriber,
    TranscriberSettings,
)
from livecaption.errors import GateFailure, ModelLoadFailure
from livecaption.model.recognizers.base import TokenPrediction

CHUNK = 160


class ScriptedGate:
    """Gate that calls non-zero audio speech unless told otherwise."""

    def __init__(
        self,
        chunk_samples: int = CHUNK,
        probability: Optional[Callable[[np.ndarray], float]] = None,
    ) -> None:
        self.chunk_samples = chunk_samples
        self.probability = probability
        self.raising = False
        self.calls = 0
        self.resets = 0

    def infer(self, chunk: np.ndarray) -> float:
        self.calls += 1
        if self.raising:
            raise GateFailure("scripted failure")
        if self.probability is not None:
            return self.probability(chunk)
        return 1.0 if np.any(chunk) else 0.0

    def reset(self) -> None:
        self.resets += 1


class IdentityExtractor:
    """One single-value feature per non-overlapping 10 ms window."""

    window_length = CHUNK
    hop_length = CHUNK
    num_features = 1

    def extract(self, frames: np.ndarray) -> np.ndarray:
        return np.asarray(frames[:, :1], dtype=np.float32)


class FakeRecognizer:
    """Emits exactly one token per encoder frame.

    Token ids cycle through the alphabet by hypothesis length, so the output
    of a resumed decode matches a decode from scratch.
    """

    blank_id = 0
    lead_in_samples = 0
    sample_rate = 16000

    def __init__(self, name: str = "fake", score: float = 1.0) -> None:
        self.name = name
        self.score = score
        self.unstable_tokens: tuple = ()
        self.fail_at_token: Optional[int] = None
        self.encode_calls = 0
        self.predict_calls = 0
        self.resets = 0

    def create_feature_extractor(self) -> IdentityExtractor:
        return IdentityExtractor()

    def encode(self, features: np.ndarray) -> np.ndarray:
        self.encode_calls += 1
        return np.asarray(features, dtype=np.float32)

    def predict(self, frame: np.ndarray, tokens: Sequence[int], state: Any) -> TokenPrediction:
        self.predict_calls += 1
        if self.fail_at_token is not None and len(tokens) >= self.fail_at_token:
            raise RuntimeError("joiner exploded")
        token = 1 + len(tokens) % 26
        return TokenPrediction(token=token, score=self.score, state=len(tokens) + 1, duration=1)

    def detokenize(self, tokens: Sequence[int]) -> str:
        return "".join(string.ascii_lowercase[t - 1] for t in tokens)

    def reset(self) -> None:
        self.resets += 1


class FakeLoader:
    """Model loader backed by a dict of prepared recognizers."""

    def __init__(self, recognizers: Optional[Dict[str, Any]] = None) -> None:
        self.recognizers: Dict[str, Any] = recognizers or {}
        self.loaded: List[str] = []

    def __call__(self, name: str) -> Any:
        self.loaded.append(name)
        if name not in self.recognizers:
            raise ModelLoadFailure(f"cannot load {name}")
        return self.recognizers[name]


class FakeSource:
    """Audio source replaying fixed blocks, then either idling or exhausting."""

    sample_rate = 16000

    def __init__(self, blocks: Sequence[np.ndarray], exhaust: bool = True) -> None:
        self.blocks = list(blocks)
        self.exhaust = exhaust
        self.started = False
        self.closed = False

    def start(self) -> "FakeSource":
        self.started = True
        return self

    def read(self) -> Optional[np.ndarray]:
        if self.blocks:
            return self.blocks.pop(0)
        return None

    @property
    def exhausted(self) -> bool:
        return self.exhaust and not self.blocks

    def close(self) -> None:
        self.closed = True


def _speech(chunks: int = 1) -> np.ndarray:
    return np.full(chunks * CHUNK, 0.25, dtype=np.float32)


def _silence(chunks: int = 1) -> np.ndarray:
    return np.zeros(chunks * CHUNK, dtype=np.float32)


def _flat_settings(**overrides: Any) -> TranscriberSettings:
    """Single-step profile (p > 0.9, 20 silent chunks) with tentatives off."""
    values: Dict[str, Any] = {
        "profile": ThresholdProfile.from_rows([(0, 0.9, 20)]),
        "tentative_trigger_chunks": 10_000,
    }
    values.update(overrides)
    return TranscriberSettings(**values)


@pytest.fixture
def speech() -> Callable[..., np.ndarray]:
    """Non-zero audio, ``chunks`` gate sub-chunks long."""
    return _speech


@pytest.fixture
def silence() -> Callable[..., np.ndarray]:
    return _silence


@pytest.fixture
def flat_settings() -> Callable[..., TranscriberSettings]:
    return _flat_settings


@pytest.fixture
def fake_source() -> type:
    return FakeSource


@pytest.fixture
def fake_recognizer() -> type:
    return FakeRecognizer


@pytest.fixture
def gate() -> ScriptedGate:
    return ScriptedGate()


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()


@pytest.fixture
def loader(recognizer: FakeRecognizer) -> FakeLoader:
    return FakeLoader({"fake": recognizer, "other": FakeRecognizer(name="other")})


@pytest.fixture
def make_transcriber(gate: ScriptedGate, loader: FakeLoader):
    def _make(settings: Optional[TranscriberSettings] = None, **kwargs: Any) -> Transcriber:
        return Transcriber(gate, loader, "fake", settings=settings, **kwargs)

    return _make

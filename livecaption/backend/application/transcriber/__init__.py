"""Streaming transcriber and its value types."""

from .transcriber import ModelLoader, Transcriber
from .types import (
    OutcomeKind,
    SpeechRunState,
    ThresholdProfile,
    ThresholdStep,
    TranscriberSettings,
    TranscriptionOutcome,
)

__all__ = [
    "ModelLoader",
    "OutcomeKind",
    "SpeechRunState",
    "ThresholdProfile",
    "ThresholdStep",
    "Transcriber",
    "TranscriberSettings",
    "TranscriptionOutcome",
]

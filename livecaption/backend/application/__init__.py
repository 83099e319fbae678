"""Application layer: transcriber, worker thread and caption sink."""

from .caption_board import CaptionBoard
from .controller import CaptionWorker, ControlKind, ControlMessage, OutcomeSink
from .transcriber import (
    OutcomeKind,
    SpeechRunState,
    ThresholdProfile,
    ThresholdStep,
    Transcriber,
    TranscriberSettings,
    TranscriptionOutcome,
)

__all__ = [
    "CaptionBoard",
    "CaptionWorker",
    "ControlKind",
    "ControlMessage",
    "OutcomeKind",
    "OutcomeSink",
    "SpeechRunState",
    "ThresholdProfile",
    "ThresholdStep",
    "Transcriber",
    "TranscriberSettings",
    "TranscriptionOutcome",
]

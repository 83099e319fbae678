"""Component layer: gating, features, checkpoints and decoding."""

from .decode_cache import (
    CheckpointEntry,
    ConfidenceRollbackPolicy,
    DecodeCheckpointCache,
    HypothesisCheckpoint,
    RepetitionRollbackPolicy,
    ResumePoint,
    RollbackPolicy,
)
from .feature_buffer import FeatureExtractor, IncrementalFeatureBuffer, LogMelExtractor
from .greedy_decoder import GreedyTransducerDecoder
from .text_stabilizer import TextStabilizer
from .vad_gate import EnergyVoiceActivityGate, VoiceActivityGate, build_vad_gate

__all__ = [
    "CheckpointEntry",
    "ConfidenceRollbackPolicy",
    "DecodeCheckpointCache",
    "EnergyVoiceActivityGate",
    "FeatureExtractor",
    "GreedyTransducerDecoder",
    "HypothesisCheckpoint",
    "IncrementalFeatureBuffer",
    "LogMelExtractor",
    "RepetitionRollbackPolicy",
    "ResumePoint",
    "RollbackPolicy",
    "TextStabilizer",
    "VoiceActivityGate",
    "build_vad_gate",
]

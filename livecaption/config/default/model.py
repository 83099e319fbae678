"""Default values and helpers for model and decode configuration."""

from typing import Any, Dict

DEFAULT_MODEL_NAME = "none"
DEFAULT_DEVICE = "cpu"
DEFAULT_NUM_THREADS = None
DEFAULT_RECOGNIZER_BACKEND = "torchscript_transducer"

DEFAULT_ROLLBACK_STRATEGY = "confidence"
DEFAULT_CONFIDENCE_THRESHOLD = 0.99
DEFAULT_TRAILING_MARGIN = 4
DEFAULT_MAX_SYMBOLS_PER_FRAME = 16
DEFAULT_REPETITION_MIN_REPEATS = 5
DEFAULT_REPETITION_MIN_SCORE = 0.9
DEFAULT_REPETITION_MIN_TOKENS = 3

# Options understood by the TorchScript transducer backend.
DEFAULT_TRANSDUCER_OPTIONS: Dict[str, Any] = {
    "sample_rate": 16000,
    "blank_id": 0,
    "context_size": 2,
    "durations": [],
    "suppressed_ids": [],
    "n_mels": 80,
    "window_length": 400,
    "hop_length": 160,
    "lead_in_ms": 10,
    "normalize_features": False,
}


def default_models() -> Dict[str, Dict[str, Any]]:
    """Return the default model catalog (only the null recognizer)."""
    return {"none": {"backend": "null"}}


MODEL_SECTION_MAP = {
    "name": "model",
    "device": "device",
    "num_threads": "num_threads",
}

DECODE_SECTION_MAP = {
    "rollback_strategy": "rollback_strategy",
    "confidence_threshold": "confidence_threshold",
    "unstable_tokens": "unstable_tokens",
    "trailing_margin": "trailing_margin",
    "max_symbols_per_frame": "max_symbols_per_frame",
    "repetition_min_repeats": "repetition_min_repeats",
    "repetition_min_score": "repetition_min_score",
    "repetition_min_tokens": "repetition_min_tokens",
}


__all__ = [
    "DEFAULT_MODEL_NAME",
    "DEFAULT_DEVICE",
    "DEFAULT_NUM_THREADS",
    "DEFAULT_RECOGNIZER_BACKEND",
    "DEFAULT_ROLLBACK_STRATEGY",
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "DEFAULT_TRAILING_MARGIN",
    "DEFAULT_MAX_SYMBOLS_PER_FRAME",
    "DEFAULT_REPETITION_MIN_REPEATS",
    "DEFAULT_REPETITION_MIN_SCORE",
    "DEFAULT_REPETITION_MIN_TOKENS",
    "DEFAULT_TRANSDUCER_OPTIONS",
    "default_models",
    "MODEL_SECTION_MAP",
    "DECODE_SECTION_MAP",
]

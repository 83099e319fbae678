"""Default configuration values."""

from .model import (
    DECODE_SECTION_MAP,
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_DEVICE,
    DEFAULT_MAX_SYMBOLS_PER_FRAME,
    DEFAULT_MODEL_NAME,
    DEFAULT_NUM_THREADS,
    DEFAULT_RECOGNIZER_BACKEND,
    DEFAULT_REPETITION_MIN_REPEATS,
    DEFAULT_REPETITION_MIN_SCORE,
    DEFAULT_REPETITION_MIN_TOKENS,
    DEFAULT_ROLLBACK_STRATEGY,
    DEFAULT_TRAILING_MARGIN,
    DEFAULT_TRANSDUCER_OPTIONS,
    MODEL_SECTION_MAP,
    default_models,
)
from .server import (
    DEFAULT_ENERGY_CHUNK_SAMPLES,
    DEFAULT_ENERGY_REFERENCE_RMS,
    DEFAULT_HTTP_ENABLED,
    DEFAULT_HTTP_HOST,
    DEFAULT_HTTP_PORT,
    DEFAULT_IDLE_SLEEP_SEC,
    DEFAULT_INPUT_BLOCK_MS,
    DEFAULT_INPUT_CHANNELS,
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_CONSECUTIVE_FAILURES,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_STABILIZER_MAX_CHARS,
    DEFAULT_TENTATIVE_TRIGGER_CHUNKS,
    DEFAULT_THRESHOLD_STEPS,
    DEFAULT_TRANSCRIPT_LOG_FILE,
    DEFAULT_VAD_BACKEND,
    SERVER_SECTION_MAP,
)

__all__ = [
    "DECODE_SECTION_MAP",
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "DEFAULT_DEVICE",
    "DEFAULT_ENERGY_CHUNK_SAMPLES",
    "DEFAULT_ENERGY_REFERENCE_RMS",
    "DEFAULT_HTTP_ENABLED",
    "DEFAULT_HTTP_HOST",
    "DEFAULT_HTTP_PORT",
    "DEFAULT_IDLE_SLEEP_SEC",
    "DEFAULT_INPUT_BLOCK_MS",
    "DEFAULT_INPUT_CHANNELS",
    "DEFAULT_LOG_FILE",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MAX_CONSECUTIVE_FAILURES",
    "DEFAULT_MAX_SYMBOLS_PER_FRAME",
    "DEFAULT_MODEL_NAME",
    "DEFAULT_NUM_THREADS",
    "DEFAULT_RECOGNIZER_BACKEND",
    "DEFAULT_REPETITION_MIN_REPEATS",
    "DEFAULT_REPETITION_MIN_SCORE",
    "DEFAULT_REPETITION_MIN_TOKENS",
    "DEFAULT_ROLLBACK_STRATEGY",
    "DEFAULT_SAMPLE_RATE",
    "DEFAULT_STABILIZER_MAX_CHARS",
    "DEFAULT_TENTATIVE_TRIGGER_CHUNKS",
    "DEFAULT_THRESHOLD_STEPS",
    "DEFAULT_TRAILING_MARGIN",
    "DEFAULT_TRANSCRIPT_LOG_FILE",
    "DEFAULT_TRANSDUCER_OPTIONS",
    "DEFAULT_VAD_BACKEND",
    "MODEL_SECTION_MAP",
    "SERVER_SECTION_MAP",
    "default_models",
]

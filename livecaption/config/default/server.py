"""Default values for audio, gating and runtime configuration."""

from typing import Dict, Tuple

DEFAULT_SAMPLE_RATE = 16000
DEFAULT_INPUT_BLOCK_MS = 30
DEFAULT_INPUT_CHANNELS = 1
DEFAULT_VAD_BACKEND = "silero"
DEFAULT_ENERGY_REFERENCE_RMS = 0.05
DEFAULT_ENERGY_CHUNK_SAMPLES = 512
DEFAULT_TENTATIVE_TRIGGER_CHUNKS = 30
DEFAULT_MAX_CONSECUTIVE_FAILURES = 3
DEFAULT_IDLE_SLEEP_SEC = 0.01
DEFAULT_HTTP_ENABLED = False
DEFAULT_HTTP_HOST = "127.0.0.1"
DEFAULT_HTTP_PORT = 8765
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = None
DEFAULT_TRANSCRIPT_LOG_FILE = None
DEFAULT_STABILIZER_MAX_CHARS = 400

# (min speech chunks, probability threshold, max silence chunks); tuned for
# 32 ms windows so 30 chunks is roughly one second of speech.
DEFAULT_THRESHOLD_STEPS: Tuple[Tuple[int, float, int], ...] = (
    (0, 0.9, 20),
    (30, 0.95, 15),
    (60, 0.98, 12),
    (150, 0.99, 10),
    (300, 0.995, 5),
    (600, 0.999, 1),
    (900, 1.0, 0),
)

SERVER_SECTION_MAP: Dict[str, Dict[str, str]] = {
    "audio": {
        "sample_rate": "sample_rate",
        "block_ms": "input_block_ms",
        "channels": "input_channels",
        "device": "input_device",
    },
    "vad": {
        "backend": "vad_backend",
        "energy_reference_rms": "energy_reference_rms",
        "energy_chunk_samples": "energy_chunk_samples",
    },
    "transcriber": {
        "tentative_trigger_chunks": "tentative_trigger_chunks",
        "max_consecutive_failures": "max_consecutive_failures",
    },
    "worker": {
        "idle_sleep_sec": "idle_sleep_sec",
    },
    "http": {
        "enabled": "http_enabled",
        "host": "http_host",
        "port": "http_port",
    },
    "logging": {
        "level": "log_level",
        "file": "log_file",
        "transcript_file": "transcript_log_file",
    },
    "display": {
        "max_chars": "stabilizer_max_chars",
    },
}

__all__ = [
    "DEFAULT_SAMPLE_RATE",
    "DEFAULT_INPUT_BLOCK_MS",
    "DEFAULT_INPUT_CHANNELS",
    "DEFAULT_VAD_BACKEND",
    "DEFAULT_ENERGY_REFERENCE_RMS",
    "DEFAULT_ENERGY_CHUNK_SAMPLES",
    "DEFAULT_TENTATIVE_TRIGGER_CHUNKS",
    "DEFAULT_MAX_CONSECUTIVE_FAILURES",
    "DEFAULT_IDLE_SLEEP_SEC",
    "DEFAULT_HTTP_ENABLED",
    "DEFAULT_HTTP_HOST",
    "DEFAULT_HTTP_PORT",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_LOG_FILE",
    "DEFAULT_TRANSCRIPT_LOG_FILE",
    "DEFAULT_STABILIZER_MAX_CHARS",
    "DEFAULT_THRESHOLD_STEPS",
    "SERVER_SECTION_MAP",
]

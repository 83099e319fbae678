from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

import yaml

from livecaption.config.default import (
    DECODE_SECTION_MAP,
    DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_DEVICE,
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
    DEFAULT_MAX_SYMBOLS_PER_FRAME,
    DEFAULT_MODEL_NAME,
    DEFAULT_NUM_THREADS,
    DEFAULT_REPETITION_MIN_REPEATS,
    DEFAULT_REPETITION_MIN_SCORE,
    DEFAULT_REPETITION_MIN_TOKENS,
    DEFAULT_ROLLBACK_STRATEGY,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_STABILIZER_MAX_CHARS,
    DEFAULT_TENTATIVE_TRIGGER_CHUNKS,
    DEFAULT_THRESHOLD_STEPS,
    DEFAULT_TRAILING_MARGIN,
    DEFAULT_TRANSCRIPT_LOG_FILE,
    DEFAULT_VAD_BACKEND,
    MODEL_SECTION_MAP,
    SERVER_SECTION_MAP,
    default_models,
)
from livecaption.errors import CaptionError, ErrorCode

if TYPE_CHECKING:
    from livecaption.backend.application.transcriber.types import TranscriberSettings
    from livecaption.model.recognizers.base import ExecutionContext


@dataclass
class CaptionConfig:
    model: str = DEFAULT_MODEL_NAME
    device: str = DEFAULT_DEVICE
    num_threads: Optional[int] = DEFAULT_NUM_THREADS
    models: Dict[str, Dict[str, Any]] = field(default_factory=default_models)
    rollback_strategy: str = DEFAULT_ROLLBACK_STRATEGY
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    unstable_tokens: List[int] = field(default_factory=list)
    trailing_margin: int = DEFAULT_TRAILING_MARGIN
    max_symbols_per_frame: int = DEFAULT_MAX_SYMBOLS_PER_FRAME
    repetition_min_repeats: int = DEFAULT_REPETITION_MIN_REPEATS
    repetition_min_score: float = DEFAULT_REPETITION_MIN_SCORE
    repetition_min_tokens: int = DEFAULT_REPETITION_MIN_TOKENS
    threshold_steps: List[Tuple[int, float, int]] = field(
        default_factory=lambda: list(DEFAULT_THRESHOLD_STEPS)
    )
    sample_rate: int = DEFAULT_SAMPLE_RATE
    input_block_ms: int = DEFAULT_INPUT_BLOCK_MS
    input_channels: int = DEFAULT_INPUT_CHANNELS
    input_device: Optional[Union[int, str]] = None
    vad_backend: str = DEFAULT_VAD_BACKEND
    energy_reference_rms: float = DEFAULT_ENERGY_REFERENCE_RMS
    energy_chunk_samples: int = DEFAULT_ENERGY_CHUNK_SAMPLES
    tentative_trigger_chunks: int = DEFAULT_TENTATIVE_TRIGGER_CHUNKS
    max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES
    idle_sleep_sec: float = DEFAULT_IDLE_SLEEP_SEC
    http_enabled: bool = DEFAULT_HTTP_ENABLED
    http_host: str = DEFAULT_HTTP_HOST
    http_port: int = DEFAULT_HTTP_PORT
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = DEFAULT_LOG_FILE
    transcript_log_file: Optional[str] = DEFAULT_TRANSCRIPT_LOG_FILE
    stabilizer_max_chars: int = DEFAULT_STABILIZER_MAX_CHARS

    def transcriber_settings(self) -> "TranscriberSettings":
        """Build validated transcriber settings from this configuration."""
        from livecaption.backend.application.transcriber.types import (
            ThresholdProfile,
            TranscriberSettings,
        )

        return TranscriberSettings(
            profile=ThresholdProfile.from_rows(self.threshold_steps),
            tentative_trigger_chunks=int(self.tentative_trigger_chunks),
            max_consecutive_failures=int(self.max_consecutive_failures),
            rollback_strategy=str(self.rollback_strategy),
            confidence_threshold=float(self.confidence_threshold),
            unstable_tokens=tuple(int(t) for t in self.unstable_tokens),
            trailing_margin=int(self.trailing_margin),
            max_symbols_per_frame=int(self.max_symbols_per_frame),
            repetition_min_repeats=int(self.repetition_min_repeats),
            repetition_min_score=float(self.repetition_min_score),
            repetition_min_tokens=int(self.repetition_min_tokens),
        )

    def execution_context(self) -> "ExecutionContext":
        from livecaption.model.recognizers.base import ExecutionContext

        threads = int(self.num_threads) if self.num_threads else None
        return ExecutionContext(device=str(self.device), num_threads=threads)


PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "caption.yaml"

SECTION_MAP: Dict[str, Dict[str, str]] = {
    "model": MODEL_SECTION_MAP,
    "decode": DECODE_SECTION_MAP,
}
SECTION_MAP.update(SERVER_SECTION_MAP)


def load_config(path: Optional[Path] = None) -> CaptionConfig:
    """Load caption configuration from YAML, falling back to defaults."""
    cfg = CaptionConfig()
    data = _read_yaml(path or DEFAULT_CONFIG_PATH)
    if data:
        _apply_sections(cfg, data)
    return cfg


def _read_yaml(path: Optional[Path]) -> Optional[Dict[str, Any]]:
    if not path or not path.exists():
        return None
    with path.open("r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise CaptionError(ErrorCode.CONFIG_INVALID, f"{path}: {exc}") from exc
    if isinstance(data, dict):
        return data
    return None


def _apply_sections(cfg: CaptionConfig, raw: Dict[str, Any]) -> None:
    field_names = {f.name for f in fields(CaptionConfig)}
    for section, mapping in SECTION_MAP.items():
        data = raw.get(section)
        if not isinstance(data, dict):
            continue
        for key, attr in mapping.items():
            if key in data and data[key] is not None:
                setattr(cfg, attr, data[key])

    _apply_threshold_profile(cfg, raw.get("threshold_profile"))
    _apply_models(cfg, raw.get("models"))

    for key, value in raw.items():
        if key in SECTION_MAP or key in {"threshold_profile", "models"}:
            continue
        if key in field_names and value is not None:
            setattr(cfg, key, value)


def _apply_threshold_profile(cfg: CaptionConfig, steps: Any) -> None:
    if steps is None:
        return
    if not isinstance(steps, list) or not steps:
        raise CaptionError(
            ErrorCode.CONFIG_INVALID, "threshold_profile must be a non-empty list"
        )
    rows: List[Tuple[int, float, int]] = []
    for entry in steps:
        try:
            if isinstance(entry, dict):
                rows.append(
                    (
                        int(entry["min_speech_chunks"]),
                        float(entry["probability"]),
                        int(entry["max_silence_chunks"]),
                    )
                )
            else:
                count, probability, silence = entry
                rows.append((int(count), float(probability), int(silence)))
        except (KeyError, TypeError, ValueError) as exc:
            raise CaptionError(
                ErrorCode.CONFIG_INVALID, f"bad threshold_profile entry {entry!r}"
            ) from exc
    cfg.threshold_steps = rows


def _apply_models(cfg: CaptionConfig, models: Any) -> None:
    if models is None:
        return
    if not isinstance(models, dict):
        raise CaptionError(ErrorCode.CONFIG_INVALID, "models must be a mapping")
    normalized: Dict[str, Dict[str, Any]] = default_models()
    for name, options in models.items():
        if options is None:
            options = {}
        if not isinstance(options, dict):
            raise CaptionError(
                ErrorCode.CONFIG_INVALID, f"model {name!r} must be a mapping"
            )
        normalized[str(name)] = dict(options)
    cfg.models = normalized


__all__ = [
    "CaptionConfig",
    "DEFAULT_CONFIG_PATH",
    "load_config",
]

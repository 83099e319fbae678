"""Voice activity gates producing a speech probability per fixed window."""

from __future__ import annotations

from typing import Any, Optional, Protocol

import numpy as np

from livecaption.errors import ErrorCode, GateFailure
from livecaption.model.recognizers.base import ExecutionContext
from livecaption.utils import audio


class VoiceActivityGate(Protocol):
    chunk_samples: int

    def infer(self, chunk: np.ndarray) -> float:
        """Return the speech probability of exactly ``chunk_samples`` samples."""
        ...

    def reset(self) -> None:
        """Forget any temporal context."""
        ...


def check_chunk(chunk: Any, expected: int) -> np.ndarray:
    """Validate and normalise one gate window."""
    try:
        samples = audio.as_mono_float32(chunk)
    except ValueError as exc:
        raise GateFailure(str(exc), code=ErrorCode.GATE_CHUNK_SIZE_INVALID) from exc
    if samples.size != expected:
        raise GateFailure(
            f"expected {expected} samples, got {samples.size}",
            code=ErrorCode.GATE_CHUNK_SIZE_INVALID,
        )
    return samples


class EnergyVoiceActivityGate:
    """RMS energy gate: probability is ``min(1, rms / reference_rms)``."""

    def __init__(self, chunk_samples: int = 512, reference_rms: float = 0.05) -> None:
        if chunk_samples <= 0:
            raise ValueError("chunk_samples must be positive")
        if reference_rms <= 0:
            raise ValueError("reference_rms must be positive")
        self.chunk_samples = int(chunk_samples)
        self.reference_rms = float(reference_rms)

    def infer(self, chunk: np.ndarray) -> float:
        samples = check_chunk(chunk, self.chunk_samples)
        return min(1.0, audio.chunk_rms(samples) / self.reference_rms)

    def reset(self) -> None:
        return None


def build_vad_gate(
    backend: str,
    sample_rate: int,
    context: Optional[ExecutionContext] = None,
    energy_reference_rms: float = 0.05,
    energy_chunk_samples: int = 512,
) -> VoiceActivityGate:
    """Resolve a gate implementation by name."""
    normalized = (backend or "silero").lower()
    if normalized in {"silero", "silero_vad", "silero-vad"}:
        from livecaption.backend.component.silero_gate import SileroVoiceActivityGate

        return SileroVoiceActivityGate(sample_rate, context or ExecutionContext())
    if normalized in {"energy", "rms"}:
        return EnergyVoiceActivityGate(
            chunk_samples=energy_chunk_samples, reference_rms=energy_reference_rms
        )
    raise ValueError(f"Unknown VAD backend: {backend}")


__all__ = [
    "EnergyVoiceActivityGate",
    "VoiceActivityGate",
    "build_vad_gate",
    "check_chunk",
]

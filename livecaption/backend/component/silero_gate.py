"""Silero VAD wrapped as a voice activity gate."""

from __future__ import annotations

from typing import Optional, Protocol

import numpy as np
import torch
from silero_vad import load_silero_vad

from livecaption.backend.component.vad_gate import check_chunk
from livecaption.errors import ErrorCode, GateFailure
from livecaption.model.recognizers.base import ExecutionContext
from livecaption.utils.logger import LOGGER

_CHUNK_SAMPLES = {16000: 512, 8000: 256}


class VADModel(Protocol):
    def __call__(self, audio: torch.Tensor, sample_rate: int): ...

    def eval(self): ...

    def reset_states(self) -> None: ...


class SileroVoiceActivityGate:
    """Streaming silero gate; 32 ms windows with recurrent context across calls."""

    def __init__(
        self,
        sample_rate: int = 16000,
        context: Optional[ExecutionContext] = None,
        model: Optional[VADModel] = None,
    ) -> None:
        if sample_rate not in _CHUNK_SAMPLES:
            raise GateFailure(
                f"silero VAD supports 8000 or 16000 Hz, got {sample_rate}",
                code=ErrorCode.GATE_CHUNK_SIZE_INVALID,
            )
        self.sample_rate = sample_rate
        self.chunk_samples = _CHUNK_SAMPLES[sample_rate]
        self.context = context or ExecutionContext()
        self._model = model if model is not None else self._load_model()
        self._model.eval()
        self.reset()

    def _load_model(self) -> VADModel:
        try:
            model = load_silero_vad()
        except Exception as exc:
            raise GateFailure(f"failed to load silero VAD: {exc}") from exc
        if self.context.device != "cpu" and hasattr(model, "to"):
            model = model.to(self.context.device)
        LOGGER.info("Loaded silero VAD (device=%s)", self.context.device)
        return model

    def infer(self, chunk: np.ndarray) -> float:
        samples = check_chunk(chunk, self.chunk_samples)
        tensor = torch.from_numpy(samples).unsqueeze(0)
        if self.context.device != "cpu":
            tensor = tensor.to(self.context.device)
        try:
            with torch.no_grad():
                prob = self._model(tensor, self.sample_rate)
        except Exception as exc:
            raise GateFailure(f"silero inference failed: {exc}") from exc
        if isinstance(prob, torch.Tensor):
            value = float(prob.mean().item())
        elif prob is None:
            value = 0.0
        else:
            value = float(prob)
        return min(1.0, max(0.0, value))

    def reset(self) -> None:
        if hasattr(self._model, "reset_states"):
            self._model.reset_states()


__all__ = ["SileroVoiceActivityGate"]

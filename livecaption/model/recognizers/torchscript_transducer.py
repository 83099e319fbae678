"""Transducer recognizer backed by exported TorchScript modules."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import torch

from livecaption.backend.component.feature_buffer import (
    LogMelExtractor,
    normalize_per_feature,
)
from livecaption.config.default.model import DEFAULT_TRANSDUCER_OPTIONS
from livecaption.model.recognizers.base import ExecutionContext, TokenPrediction
from livecaption.model.recognizers.tokens import TokenTable
from livecaption.utils.logger import LOGGER


class TorchScriptTransducerRecognizer:
    """Stateless-predictor transducer split into encoder/decoder/joiner modules.

    Expected layout of ``path``::

        encoder.pt   (features[B, T, F], lengths[B]) -> (out[B, T', D], lengths[B])
        decoder.pt   context[B, context_size] -> out[B, 1, D] or [B, D]
        joiner.pt    (encoder[B, D], decoder[B, D]) -> logits[B, V (+ n_durations)]
        tokens.txt   "<symbol> <id>" per line

    When ``durations`` is non-empty the last ``len(durations)`` joiner logits
    select how many encoder frames to skip after each prediction.
    """

    def __init__(
        self,
        name: str,
        path: str,
        context: Optional[ExecutionContext] = None,
        sample_rate: int = 16000,
        blank_id: int = 0,
        context_size: int = 2,
        durations: Iterable[int] = (),
        suppressed_ids: Iterable[int] = (),
        unstable_tokens: Iterable[int] = (),
        unstable_symbols: Iterable[str] = (),
        n_mels: int = 80,
        window_length: int = 400,
        hop_length: int = 160,
        lead_in_ms: int = 10,
        normalize_features: bool = False,
        **unused: Any,
    ) -> None:
        if unused:
            LOGGER.debug("Ignoring unknown options for %s: %s", name, sorted(unused))
        self.name = name
        self.path = Path(path).expanduser()
        self.context = context or ExecutionContext()
        self.sample_rate = int(sample_rate)
        self.blank_id = int(blank_id)
        self.context_size = max(1, int(context_size))
        self.durations: Tuple[int, ...] = tuple(int(d) for d in durations)
        self.suppressed_ids = frozenset(int(t) for t in suppressed_ids)
        self.n_mels = int(n_mels)
        self.window_length = int(window_length)
        self.hop_length = int(hop_length)
        self.lead_in_samples = self.sample_rate * int(lead_in_ms) // 1000
        self.normalize_features = bool(normalize_features)

        if self.context.num_threads:
            torch.set_num_threads(int(self.context.num_threads))
        self._device = torch.device(self.context.device)
        self.encoder = self._load_module("encoder.pt")
        self.decoder = self._load_module("decoder.pt")
        self.joiner = self._load_module("joiner.pt")
        self.tokens = TokenTable.from_file(self.path / "tokens.txt")
        self.unstable_tokens: Tuple[int, ...] = tuple(
            int(t) for t in unstable_tokens
        ) + self.tokens.ids_of(unstable_symbols)
        LOGGER.info(
            "Loaded transducer %s from %s (device=%s vocab=%d durations=%s)",
            name,
            self.path,
            self.context.device,
            len(self.tokens),
            list(self.durations),
        )

    @classmethod
    def from_spec(
        cls, name: str, options: Dict[str, Any], context: ExecutionContext
    ) -> "TorchScriptTransducerRecognizer":
        opts = {**DEFAULT_TRANSDUCER_OPTIONS, **options}
        path = opts.pop("path", None)
        if not path:
            raise ValueError(f"model {name!r} has no 'path'")
        return cls(name=name, path=path, context=context, **opts)

    def _load_module(self, filename: str) -> torch.jit.ScriptModule:
        module = torch.jit.load(str(self.path / filename), map_location=self._device)
        module.eval()
        return module

    def create_feature_extractor(self) -> LogMelExtractor:
        return LogMelExtractor(
            sample_rate=self.sample_rate,
            n_mels=self.n_mels,
            window_length=self.window_length,
            hop_length=self.hop_length,
        )

    def encode(self, features: np.ndarray) -> np.ndarray:
        if self.normalize_features:
            features = normalize_per_feature(features)
        x = torch.from_numpy(np.ascontiguousarray(features, dtype=np.float32))
        x = x.unsqueeze(0).to(self._device)
        x_lens = torch.tensor([x.shape[1]], dtype=torch.int64, device=self._device)
        with torch.inference_mode():
            out, out_lens = self.encoder(x, x_lens)
        length = int(out_lens[0].item())
        return out[0, :length].float().cpu().numpy()

    def _context(self, tokens: Sequence[int]) -> List[int]:
        recent = list(tokens[-self.context_size :])
        return [self.blank_id] * (self.context_size - len(recent)) + recent

    def _decoder_out(self, tokens: Sequence[int]) -> torch.Tensor:
        ctx = torch.tensor([self._context(tokens)], dtype=torch.int64, device=self._device)
        with torch.inference_mode():
            out = self.decoder(ctx)
        return out.reshape(1, -1)

    def predict(
        self, frame: np.ndarray, tokens: Sequence[int], state: Any
    ) -> TokenPrediction:
        decoder_out = state if state is not None else self._decoder_out(tokens)
        enc = torch.from_numpy(np.ascontiguousarray(frame, dtype=np.float32))
        enc = enc.reshape(1, -1).to(self._device)
        with torch.inference_mode():
            logits = self.joiner(enc, decoder_out).reshape(-1).float()
        n_vocab = logits.shape[0] - len(self.durations)
        probs = torch.softmax(logits[:n_vocab], dim=0)
        token = int(torch.argmax(probs).item())
        duration = 0
        if self.durations:
            duration = self.durations[int(torch.argmax(logits[n_vocab:]).item())]
        if token == self.blank_id or token in self.suppressed_ids:
            return TokenPrediction(
                token=self.blank_id, score=1.0, state=decoder_out, duration=duration
            )
        score = float(probs[token].item())
        next_state = self._decoder_out(list(tokens) + [token])
        return TokenPrediction(
            token=token, score=score, state=next_state, duration=duration
        )

    def detokenize(self, tokens: Sequence[int]) -> str:
        return self.tokens.decode(tokens)

    def reset(self) -> None:
        return None


__all__ = ["TorchScriptTransducerRecognizer"]

"""Incremental acoustic feature extraction over a streaming sample buffer."""

from __future__ import annotations

from typing import List, Optional, Protocol

import librosa
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from livecaption.utils.audio import as_mono_float32

_LOG_FLOOR = float(np.finfo(np.float32).eps)


class FeatureExtractor(Protocol):
    window_length: int
    hop_length: int
    num_features: int

    def extract(self, frames: np.ndarray) -> np.ndarray:
        """Map ``(n, window_length)`` sample frames to ``(n, num_features)``."""
        ...


class LogMelExtractor:
    """Log mel filterbank with per-frame pre-emphasis and a Hann window."""

    def __init__(
        self,
        sample_rate: int = 16000,
        n_mels: int = 80,
        window_length: Optional[int] = None,
        hop_length: Optional[int] = None,
        preemphasis: float = 0.97,
        fmin: float = 0.0,
        fmax: Optional[float] = None,
    ) -> None:
        # 25 ms window and 10 ms hop unless overridden.
        self.sample_rate = int(sample_rate)
        self.window_length = int(window_length or 400 * self.sample_rate // 16000)
        self.hop_length = int(hop_length or 160 * self.sample_rate // 16000)
        if self.window_length <= 0 or self.hop_length <= 0:
            raise ValueError("window_length and hop_length must be positive")
        if self.hop_length > self.window_length:
            raise ValueError("hop_length must not exceed window_length")
        self.num_features = int(n_mels)
        self.preemphasis = float(preemphasis)
        if self.sample_rate == 16000:
            self.n_fft = 1 << (self.window_length - 1).bit_length()
        else:
            self.n_fft = self.window_length
        self.window = librosa.filters.get_window(
            "hann", self.window_length, fftbins=True
        ).astype(np.float32)
        self.mel_basis = librosa.filters.mel(
            sr=self.sample_rate,
            n_fft=self.n_fft,
            n_mels=self.num_features,
            fmin=fmin,
            fmax=fmax if fmax is not None else self.sample_rate / 2,
        ).astype(np.float32)

    def extract(self, frames: np.ndarray) -> np.ndarray:
        frames = np.asarray(frames, dtype=np.float32)
        if frames.shape[0] == 0:
            return np.zeros((0, self.num_features), dtype=np.float32)
        # First sample of each frame is emphasised against itself.
        previous = np.concatenate([frames[:, :1], frames[:, :-1]], axis=1)
        emphasised = (frames - self.preemphasis * previous) * self.window
        spectrum = np.abs(np.fft.rfft(emphasised, n=self.n_fft, axis=1)) ** 2
        mels = spectrum.astype(np.float32) @ self.mel_basis.T
        return np.log(np.maximum(mels, _LOG_FLOOR)).astype(np.float32)


def normalize_per_feature(features: np.ndarray) -> np.ndarray:
    """Zero-mean, unit-variance normalisation of each feature over time."""
    if features.shape[0] < 2:
        return features
    mean = features.mean(axis=0, keepdims=True)
    std = features.std(axis=0, ddof=1, keepdims=True) + 1e-5
    return ((features - mean) / std).astype(np.float32)


class IncrementalFeatureBuffer:
    """Accumulates raw samples and turns every complete window into a frame.

    After each drain fewer than ``window_length`` samples remain; the
    ``window_length - hop_length`` overlap is carried into the next frame.
    """

    def __init__(self, extractor: FeatureExtractor, lead_in_samples: int = 0) -> None:
        self.extractor = extractor
        self.lead_in_samples = max(0, int(lead_in_samples))
        self._samples = np.zeros(0, dtype=np.float32)
        self._frames: List[np.ndarray] = []
        self._num_frames = 0
        self.clear()

    @property
    def num_features(self) -> int:
        return self.extractor.num_features

    @property
    def num_frames(self) -> int:
        return self._num_frames

    @property
    def pending_samples(self) -> int:
        return int(self._samples.size)

    def push(self, samples) -> None:
        audio = as_mono_float32(samples)
        if audio.size == 0:
            return
        self._samples = np.concatenate([self._samples, audio])

    def drain_ready_frames(self) -> np.ndarray:
        window = self.extractor.window_length
        hop = self.extractor.hop_length
        if self._samples.size < window:
            return np.zeros((0, self.num_features), dtype=np.float32)
        n_frames = (self._samples.size - window) // hop + 1
        frames = sliding_window_view(self._samples, window)[::hop][:n_frames]
        features = np.asarray(self.extractor.extract(frames), dtype=np.float32)
        self._samples = self._samples[n_frames * hop :].copy()
        self._frames.append(features)
        self._num_frames += features.shape[0]
        return features

    def accumulated(self) -> np.ndarray:
        if not self._frames:
            return np.zeros((0, self.num_features), dtype=np.float32)
        if len(self._frames) > 1:
            self._frames = [np.concatenate(self._frames, axis=0)]
        return self._frames[0]

    def clear(self) -> None:
        self._samples = np.zeros(self.lead_in_samples, dtype=np.float32)
        self._frames = []
        self._num_frames = 0


__all__ = [
    "FeatureExtractor",
    "IncrementalFeatureBuffer",
    "LogMelExtractor",
    "normalize_per_feature",
]

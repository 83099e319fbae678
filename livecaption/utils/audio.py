import librosa
import numpy as np


def as_mono_float32(samples) -> np.ndarray:
    """Return a contiguous 1-D float32 view/copy of the given samples."""
    audio = np.asarray(samples, dtype=np.float32)
    if audio.ndim == 2:
        audio = downmix(audio)
    if audio.ndim != 1:
        raise ValueError(f"expected mono samples, got shape {audio.shape}")
    return np.ascontiguousarray(audio)


def downmix(frames: np.ndarray) -> np.ndarray:
    """Average (frames, channels) audio down to a single channel."""
    if frames.ndim == 1:
        return frames.astype(np.float32, copy=False)
    return frames.mean(axis=1).astype(np.float32)


def resample(audio: np.ndarray, src_rate: int, dst_rate: int) -> np.ndarray:
    """Resample mono audio to the pipeline rate when needed."""
    if src_rate == dst_rate or audio.size == 0:
        return audio
    return librosa.resample(audio, orig_sr=src_rate, target_sr=dst_rate).astype(
        np.float32
    )


def chunk_rms(samples: np.ndarray) -> float:
    """Compute RMS of float samples."""
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(samples, dtype=np.float64))))


def duration_seconds(num_samples: int, sample_rate: int) -> float:
    """Return the duration of num_samples at sample_rate."""
    if sample_rate <= 0:
        return 0.0
    return num_samples / float(sample_rate)

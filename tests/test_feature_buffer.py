import numpy as np
import pytest

from livecaption.backend.component.feature_buffer import (
    IncrementalFeatureBuffer,
    LogMelExtractor,
    normalize_per_feature,
)


def _tone(seconds=0.5, rate=16000, freq=440.0):
    t = np.arange(int(seconds * rate), dtype=np.float32) / rate
    return (0.3 * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def test_log_mel_defaults_follow_sample_rate():
    """Test log mel defaults follow sample rate."""
    extractor = LogMelExtractor(sample_rate=16000, n_mels=80)
    assert extractor.window_length == 400
    assert extractor.hop_length == 160
    assert extractor.n_fft == 512
    assert extractor.mel_basis.shape == (80, 257)

    narrow = LogMelExtractor(sample_rate=8000, n_mels=40)
    assert narrow.window_length == 200
    assert narrow.hop_length == 80
    assert narrow.n_fft == 200


def test_log_mel_rejects_hop_longer_than_window():
    """Test log mel rejects hop longer than window."""
    with pytest.raises(ValueError):
        LogMelExtractor(window_length=100, hop_length=200)


def test_log_mel_silence_hits_the_floor():
    """Test log mel silence hits the floor."""
    extractor = LogMelExtractor(n_mels=40)
    features = extractor.extract(np.zeros((3, 400), dtype=np.float32))
    assert features.shape == (3, 40)
    assert np.allclose(features, np.log(np.finfo(np.float32).eps))


def test_incremental_frames_match_batch_extraction():
    """Frames drained piecewise equal one pass over the whole signal."""
    signal = _tone()
    extractor = LogMelExtractor(n_mels=40)

    buffer = IncrementalFeatureBuffer(extractor)
    for start in range(0, signal.size, 333):
        buffer.push(signal[start : start + 333])
        buffer.drain_ready_frames()
    streamed = buffer.accumulated()

    n_frames = (signal.size - 400) // 160 + 1
    windows = np.stack([signal[i * 160 : i * 160 + 400] for i in range(n_frames)])
    batch = extractor.extract(windows)

    assert streamed.shape == batch.shape == (n_frames, 40)
    assert np.allclose(streamed, batch, atol=1e-4)
    assert buffer.num_frames == n_frames
    assert buffer.pending_samples < 400


def test_short_push_yields_no_frames():
    """Test short push yields no frames."""
    buffer = IncrementalFeatureBuffer(LogMelExtractor(n_mels=40))
    buffer.push(np.zeros(399, dtype=np.float32))
    assert buffer.drain_ready_frames().shape == (0, 40)
    assert buffer.accumulated().shape == (0, 40)


def test_clear_restores_lead_in_padding():
    """Test clear restores lead in padding."""
    buffer = IncrementalFeatureBuffer(LogMelExtractor(n_mels=40), lead_in_samples=160)
    assert buffer.pending_samples == 160
    buffer.push(np.ones(1000, dtype=np.float32))
    buffer.drain_ready_frames()
    assert buffer.num_frames == 5

    buffer.clear()
    assert buffer.pending_samples == 160
    assert buffer.num_frames == 0
    assert buffer.accumulated().shape == (0, 40)


def test_normalize_per_feature_uses_sample_std():
    """Test normalize per feature uses sample std."""
    features = np.array([[1.0, 10.0], [3.0, 10.0], [5.0, 10.0]], dtype=np.float32)
    normalized = normalize_per_feature(features)
    assert np.allclose(normalized[:, 0], [-1.0, 0.0, 1.0], atol=1e-4)
    assert np.allclose(normalized[:, 1], 0.0)
    single = np.ones((1, 2), dtype=np.float32)
    assert normalize_per_feature(single) is single


def test_second_drain_without_push_is_empty():
    """Test second drain without push is empty."""
    buffer = IncrementalFeatureBuffer(LogMelExtractor(n_mels=40))
    buffer.push(_tone(0.1))
    assert buffer.drain_ready_frames().shape[0] == 8
    assert buffer.drain_ready_frames().shape == (0, 40)
    assert buffer.accumulated().shape == (8, 40)

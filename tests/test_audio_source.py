from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from livecaption.audio.source import FileSource, MicrophoneSource, open_source
from livecaption.utils import audio


def _write_wav(path: Path, samples: np.ndarray, rate: int) -> Path:
    sf.write(str(path), samples, rate)
    return path


def test_file_source_reads_fixed_blocks(tmp_path: Path):
    """Test file source reads fixed blocks."""
    samples = np.linspace(-0.5, 0.5, 1600, dtype=np.float32)
    path = _write_wav(tmp_path / "clip.wav", samples, 16000)
    source = FileSource(path, sample_rate=16000, block_ms=30).start()

    sizes = []
    while not source.exhausted:
        block = source.read()
        assert block is not None
        sizes.append(block.size)
    assert sizes == [480, 480, 480, 160]
    assert source.read() is None
    source.close()


def test_file_source_downmixes_and_resamples(tmp_path: Path):
    """Test file source downmixes and resamples."""
    stereo = np.zeros((8000, 2), dtype=np.float32)
    stereo[:, 0] = 0.2
    path = _write_wav(tmp_path / "stereo.wav", stereo, 8000)
    source = FileSource(path, sample_rate=16000, block_ms=1000).start()
    block = source.read()
    assert block.ndim == 1
    assert block.size == pytest.approx(16000, abs=32)
    assert float(np.median(block)) == pytest.approx(0.1, abs=1e-2)


def test_realtime_file_source_waits_for_wall_clock(tmp_path: Path):
    """Test realtime file source waits for wall clock."""
    path = _write_wav(tmp_path / "clip.wav", np.zeros(16000, dtype=np.float32), 16000)
    source = FileSource(path, sample_rate=16000, block_ms=500, realtime=True).start()
    assert source.read() is None
    assert not source.exhausted


def test_open_source_picks_implementation(tmp_path: Path):
    """Test open source picks implementation."""
    mic = open_source("mic", 16000, device="3")
    assert isinstance(mic, MicrophoneSource)
    assert mic.device == 3
    assert mic.frames_per_block == 480
    assert mic.read() is None
    mic.close()

    source = open_source(str(tmp_path / "x.wav"), 16000)
    assert isinstance(source, FileSource)


def test_audio_helpers():
    """Test audio helpers."""
    assert audio.as_mono_float32([[0.0, 1.0], [1.0, 1.0]]).tolist() == [0.5, 1.0]
    with pytest.raises(ValueError):
        audio.as_mono_float32(np.zeros((1, 1, 1)))
    assert audio.chunk_rms(np.array([], dtype=np.float32)) == 0.0
    assert audio.chunk_rms(np.full(4, 0.5, dtype=np.float32)) == pytest.approx(0.5)
    assert audio.duration_seconds(8000, 16000) == 0.5
    assert audio.resample(np.ones(10, dtype=np.float32), 16000, 16000).size == 10

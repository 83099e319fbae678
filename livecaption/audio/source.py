"""Audio sources producing mono float32 blocks at the pipeline sample rate."""

from __future__ import annotations

import queue
import time
from pathlib import Path
from typing import Any, Optional, Protocol, Union

import numpy as np
import soundfile as sf

from livecaption.utils import audio
from livecaption.utils.logger import LOGGER


class AudioSource(Protocol):
    sample_rate: int

    def start(self) -> "AudioSource": ...

    def read(self) -> Optional[np.ndarray]:
        """Return the next captured block, or None when nothing is ready."""
        ...

    @property
    def exhausted(self) -> bool: ...

    def close(self) -> None: ...


class MicrophoneSource:
    """Capture float32 audio from an input device through PortAudio."""

    def __init__(
        self,
        sample_rate: int = 16000,
        block_ms: int = 30,
        device: Optional[Union[int, str]] = None,
        channels: int = 1,
        device_rate: Optional[int] = None,
        max_queued_blocks: int = 256,
    ) -> None:
        self.sample_rate = sample_rate
        self.device = device
        self.channels = max(1, int(channels))
        self.device_rate = int(device_rate or sample_rate)
        self.frames_per_block = max(self.device_rate * int(block_ms) // 1000, 1)
        self.queue: "queue.Queue[np.ndarray]" = queue.Queue(maxsize=max_queued_blocks)
        self.dropped_blocks = 0
        self._stream: Optional[Any] = None

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            LOGGER.warning("Microphone status: %s", status)
        try:
            self.queue.put_nowait(np.array(indata, dtype=np.float32, copy=True))
        except queue.Full:
            self.dropped_blocks += 1

    def start(self) -> "MicrophoneSource":
        if self._stream is not None:
            return self
        # PortAudio is only needed once a device is actually opened.
        import sounddevice as sd

        self._stream = sd.InputStream(
            samplerate=self.device_rate,
            blocksize=self.frames_per_block,
            channels=self.channels,
            dtype="float32",
            device=self.device,
            callback=self._callback,
        )
        self._stream.start()
        LOGGER.info(
            "Microphone capture started (device=%s rate=%d channels=%d)",
            self.device,
            self.device_rate,
            self.channels,
        )
        return self

    def read(self) -> Optional[np.ndarray]:
        blocks = []
        while True:
            try:
                blocks.append(self.queue.get_nowait())
            except queue.Empty:
                break
        if not blocks:
            return None
        frames = np.concatenate(blocks, axis=0)
        mono = audio.downmix(frames)
        return audio.resample(mono, self.device_rate, self.sample_rate)

    @property
    def exhausted(self) -> bool:
        return False

    def close(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
        finally:
            self._stream.close()
            self._stream = None
        if self.dropped_blocks:
            LOGGER.warning("Dropped %d microphone blocks", self.dropped_blocks)


class FileSource:
    """Stream a sound file in fixed blocks, optionally paced in real time."""

    def __init__(
        self,
        path: Union[str, Path],
        sample_rate: int = 16000,
        block_ms: int = 30,
        realtime: bool = False,
    ) -> None:
        self.path = Path(path)
        self.sample_rate = sample_rate
        self.block_ms = block_ms
        self.realtime = realtime
        self.block_samples = max(int(sample_rate) * int(block_ms) // 1000, 1)
        self._audio: Optional[np.ndarray] = None
        self._offset = 0
        self._started_at = 0.0

    def start(self) -> "FileSource":
        if self._audio is None:
            data, src_rate = sf.read(str(self.path), dtype="float32", always_2d=True)
            mono = audio.downmix(data)
            self._audio = audio.resample(mono, int(src_rate), self.sample_rate)
            LOGGER.info(
                "Loaded %s (%.2fs at %d Hz)",
                self.path,
                audio.duration_seconds(self._audio.size, self.sample_rate),
                src_rate,
            )
        self._offset = 0
        self._started_at = time.monotonic()
        return self

    def read(self) -> Optional[np.ndarray]:
        if self._audio is None or self.exhausted:
            return None
        end = min(self._offset + self.block_samples, self._audio.size)
        if self.realtime:
            elapsed = time.monotonic() - self._started_at
            available = int(elapsed * self.sample_rate)
            if available < end:
                return None
        block = self._audio[self._offset : end]
        self._offset = end
        return block

    @property
    def exhausted(self) -> bool:
        return self._audio is not None and self._offset >= self._audio.size

    def close(self) -> None:
        self._audio = None


def open_source(
    spec: str,
    sample_rate: int,
    block_ms: int = 30,
    device: Optional[Union[int, str]] = None,
    channels: int = 1,
    realtime: bool = False,
) -> AudioSource:
    """Build the source named by ``spec``: ``mic`` or a file path."""
    if spec in {"mic", "microphone", "-"}:
        if isinstance(device, str) and device.isdigit():
            device = int(device)
        return MicrophoneSource(
            sample_rate=sample_rate, block_ms=block_ms, device=device, channels=channels
        )
    return FileSource(spec, sample_rate=sample_rate, block_ms=block_ms, realtime=realtime)


__all__ = ["AudioSource", "FileSource", "MicrophoneSource", "open_source"]

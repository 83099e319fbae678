"""Worker thread that drives capture, gating and decoding."""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import numpy as np

from livecaption.audio.source import AudioSource
from livecaption.backend.application.transcriber import (
    OutcomeKind,
    Transcriber,
    TranscriberSettings,
    TranscriptionOutcome,
)
from livecaption.backend.runtime.metrics import Metrics
from livecaption.errors import CaptionError, ErrorCode, ModelLoadFailure
from livecaption.utils.logger import LOGGER

OutcomeSink = Callable[[TranscriptionOutcome], None]


class ControlKind(str, Enum):
    QUIT = "quit"
    CLEAR = "clear"
    SET_MODEL = "set_model"
    UPDATE_SETTINGS = "update_settings"


@dataclass(frozen=True)
class ControlMessage:
    kind: ControlKind
    payload: Any = None


class CaptionWorker:
    """Runs the transcriber on a dedicated thread.

    Control messages are drained one per iteration between audio blocks, so
    they never interleave with a poll. Outcomes are handed to ``sink`` on a
    separate dispatcher thread; a slow sink never stalls capture.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        source: AudioSource,
        sink: OutcomeSink,
        idle_sleep_sec: float = 0.01,
        metrics: Optional[Metrics] = None,
        flush_on_exhaust: bool = True,
    ) -> None:
        self.transcriber = transcriber
        self.source = source
        self.sink = sink
        self.idle_sleep_sec = max(0.0, float(idle_sleep_sec))
        self.metrics = metrics
        self.flush_on_exhaust = flush_on_exhaust
        self._control: "queue.Queue[ControlMessage]" = queue.Queue()
        self._outbox: "queue.Queue[Optional[TranscriptionOutcome]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._dispatcher: Optional[threading.Thread] = None
        self._running = threading.Event()
        self._finished = threading.Event()
        self._last_failure: Optional[CaptionError] = None
        self.error: Optional[BaseException] = None

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    @property
    def model_name(self) -> str:
        return self.transcriber.model_name

    def start(self) -> "CaptionWorker":
        if self._thread is not None:
            return self
        self.source.start()
        self._running.set()
        self._finished.clear()
        self._dispatcher = threading.Thread(
            target=self._dispatch_loop, name="caption-dispatch", daemon=True
        )
        self._dispatcher.start()
        self._thread = threading.Thread(
            target=self._run, name="caption-worker", daemon=True
        )
        self._thread.start()
        LOGGER.info("Caption worker started (model=%s)", self.model_name)
        return self

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Ask the worker to quit and wait for both threads to finish."""
        if self._thread is None:
            return
        self._control.put(ControlMessage(ControlKind.QUIT))
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            LOGGER.warning("Caption worker did not stop within %.1fs", timeout or 0)
        self._outbox.put(None)
        if self._dispatcher is not None:
            self._dispatcher.join(timeout=timeout)
        self.source.close()
        self._thread = None
        self._dispatcher = None
        LOGGER.info("Caption worker stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker loop exits (source exhausted or quit)."""
        return self._finished.wait(timeout)

    def clear(self) -> None:
        self._send(ControlMessage(ControlKind.CLEAR))

    def set_model(self, name: str) -> None:
        self._send(ControlMessage(ControlKind.SET_MODEL, name))

    def update_settings(self, settings: TranscriberSettings) -> None:
        self._send(ControlMessage(ControlKind.UPDATE_SETTINGS, settings))

    def _send(self, message: ControlMessage) -> None:
        if not self._running.is_set():
            raise CaptionError(ErrorCode.WORKER_NOT_RUNNING)
        self._control.put(message)

    def _run(self) -> None:
        try:
            while True:
                try:
                    message = self._control.get_nowait()
                except queue.Empty:
                    message = None
                if message is not None:
                    if not self._handle(message):
                        break
                    continue
                if not self._work():
                    break
        except Exception as exc:
            LOGGER.exception("Caption worker crashed")
            self.error = exc
            self._dispatch(
                TranscriptionOutcome.failed(
                    CaptionError(ErrorCode.WORKER_UNEXPECTED, str(exc))
                )
            )
        finally:
            self._running.clear()
            self._finished.set()

    def _handle(self, message: ControlMessage) -> bool:
        LOGGER.debug("Control message: %s", message.kind.value)
        if message.kind is ControlKind.QUIT:
            # Any utterance still in progress is discarded.
            return False
        if message.kind is ControlKind.CLEAR:
            self.transcriber.clear()
            self._last_failure = None
        elif message.kind is ControlKind.SET_MODEL:
            try:
                self.transcriber.set_model(str(message.payload))
            except ModelLoadFailure as exc:
                LOGGER.error("Model switch to %s failed: %s", message.payload, exc)
                if self.metrics is not None:
                    self.metrics.record_model_load_failure()
                self._dispatch(TranscriptionOutcome.failed(exc))
            else:
                self._last_failure = None
        elif message.kind is ControlKind.UPDATE_SETTINGS:
            try:
                self.transcriber.update_settings(message.payload)
            except CaptionError as exc:
                LOGGER.error("Settings update rejected: %s", exc)
                self._dispatch(TranscriptionOutcome.failed(exc))
        return True

    def _work(self) -> bool:
        block = self.source.read()
        if block is None:
            if self.source.exhausted:
                if self.flush_on_exhaust:
                    self._flush()
                LOGGER.info("Audio source exhausted")
                return False
            if self.transcriber.ready_outcomes:
                self._dispatch(self.transcriber.poll())
            time.sleep(self.idle_sleep_sec)
            return True
        self.transcriber.push(block)
        self._dispatch(self.transcriber.poll())
        while self.transcriber.ready_outcomes:
            self._dispatch(self.transcriber.poll())
        return True

    def _flush(self) -> None:
        # Trailing silence long enough to close the utterance under any step.
        transcriber = self.transcriber
        if transcriber.speech_run.speech_count == 0:
            return
        steps = transcriber.settings.profile.steps
        chunks = max(step.max_silence_chunks for step in steps) + 2
        silent = np.zeros(chunks * transcriber.chunk_samples, dtype=np.float32)
        transcriber.push(silent)
        while True:
            self._dispatch(transcriber.poll())
            while transcriber.ready_outcomes:
                self._dispatch(transcriber.poll())
            if transcriber.speech_run.speech_count == 0 or transcriber.faulted:
                break
            # A failed finalize stops the poll early; retry on what is left.
            if transcriber.pending_samples < transcriber.chunk_samples:
                break

    def _dispatch(self, outcome: TranscriptionOutcome) -> None:
        if outcome.kind is OutcomeKind.NONE:
            return
        if outcome.kind is OutcomeKind.FAILED:
            # Sticky failures repeat on every poll; report each one once.
            if outcome.error is self._last_failure:
                return
            self._last_failure = outcome.error
        self._outbox.put(outcome)

    def _dispatch_loop(self) -> None:
        while True:
            outcome = self._outbox.get()
            if outcome is None:
                break
            try:
                self.sink(outcome)
            except Exception:
                LOGGER.exception("Outcome sink raised")


__all__ = [
    "CaptionWorker",
    "ControlKind",
    "ControlMessage",
    "OutcomeSink",
]

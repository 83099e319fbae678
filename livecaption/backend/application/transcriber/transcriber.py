"""Streaming transcriber: gate, feature buffering and incremental decoding."""

from __future__ import annotations

import time
from collections import deque
from typing import Callable, Deque, Optional

import numpy as np

from livecaption.backend.application.transcriber.types import (
    OutcomeKind,
    SpeechRunState,
    TranscriberSettings,
    TranscriptionOutcome,
)
from livecaption.backend.component.decode_cache import (
    DecodeCheckpointCache,
    HypothesisCheckpoint,
)
from livecaption.backend.component.feature_buffer import IncrementalFeatureBuffer
from livecaption.backend.component.greedy_decoder import GreedyTransducerDecoder
from livecaption.backend.component.vad_gate import VoiceActivityGate
from livecaption.backend.runtime.metrics import Metrics
from livecaption.errors import (
    CaptionError,
    ErrorCode,
    GateFailure,
    RecognizerFailure,
)
from livecaption.model.recognizers.base import Recognizer
from livecaption.utils import audio
from livecaption.utils.logger import LOGGER

ModelLoader = Callable[[str], Recognizer]


class Transcriber:
    """Turns pushed audio into tentative and confirmed transcriptions.

    Audio is consumed in sub-chunks of ``gate.chunk_samples``. Each sub-chunk
    is scored by the gate; speech (and short pauses inside an utterance) is
    fed to the feature buffer, and a silence run longer than the current
    profile step allows finalizes the utterance as a confirmed outcome.
    Long utterances additionally yield a tentative decode per poll.

    Not thread-safe; owned by a single worker thread.
    """

    def __init__(
        self,
        gate: VoiceActivityGate,
        loader: ModelLoader,
        model_name: str,
        settings: Optional[TranscriberSettings] = None,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self._gate = gate
        self._loader = loader
        self._settings = settings or TranscriberSettings()
        self._metrics = metrics
        self._run = SpeechRunState()
        self._pending = np.zeros(0, dtype=np.float32)
        self._previous_chunk = np.zeros(gate.chunk_samples, dtype=np.float32)
        self._ready: Deque[TranscriptionOutcome] = deque()
        self._failures = 0
        self._fault: Optional[CaptionError] = None
        self._install(loader(model_name), model_name)

    @property
    def speech_run(self) -> SpeechRunState:
        return SpeechRunState(self._run.speech_count, self._run.silence_count)

    @property
    def checkpoint(self) -> HypothesisCheckpoint:
        return self._cache.checkpoint

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def recognizer(self) -> Recognizer:
        return self._recognizer

    @property
    def settings(self) -> TranscriberSettings:
        return self._settings

    @property
    def faulted(self) -> bool:
        return self._fault is not None

    @property
    def pending_samples(self) -> int:
        return int(self._pending.size)

    @property
    def ready_outcomes(self) -> int:
        """Outcomes already produced and waiting for the next polls."""
        return len(self._ready)

    @property
    def chunk_samples(self) -> int:
        return self._gate.chunk_samples

    def push(self, samples) -> None:
        """Queue mono float32 samples for the next poll."""
        if self._fault is not None:
            return
        chunk = audio.as_mono_float32(samples)
        if chunk.size:
            self._pending = np.concatenate([self._pending, chunk])

    def poll(self) -> TranscriptionOutcome:
        """Process every whole sub-chunk queued so far and report one outcome."""
        if self._ready:
            return self._ready.popleft()
        if self._fault is not None:
            return TranscriptionOutcome.failed(self._fault)

        size = self._gate.chunk_samples
        n_chunks = self._pending.size // size
        consumed = 0
        try:
            for index in range(n_chunks):
                consumed = index + 1
                self._step(self._pending[index * size : consumed * size])
            if not self._ready and (
                self._run.speech_count > self._settings.tentative_trigger_chunks
            ):
                text = self._decode()
                if text is not None:
                    self._emit(TranscriptionOutcome.tentative(text))
        except RecognizerFailure as exc:
            self._register_failure(exc)
        finally:
            self._pending = self._pending[consumed * size :].copy()

        if self._ready:
            return self._ready.popleft()
        return TranscriptionOutcome.none()

    def _step(self, chunk: np.ndarray) -> None:
        try:
            prob = self._gate.infer(chunk)
        except GateFailure as exc:
            LOGGER.warning("VAD inference failed, treating chunk as silence: %s", exc)
            if self._metrics is not None:
                self._metrics.record_gate_failure()
            prob = 0.0

        run = self._run
        step = self._settings.profile.lookup(run.speech_count)
        speaking = prob > step.probability
        finalize = False
        if speaking:
            run.silence_count = 0
            if run.speech_count == 0:
                # Prefix the previous sub-chunk to keep the utterance onset.
                self._feed(np.concatenate([self._previous_chunk, chunk]))
            else:
                self._feed(chunk)
            run.speech_count += 1
        else:
            if run.speech_count > 0 and run.silence_count < step.max_silence_chunks:
                self._feed(chunk)
                run.speech_count += 1
            elif run.speech_count > 0:
                finalize = True
            run.silence_count += 1
        self._previous_chunk = chunk.copy()
        if self._metrics is not None:
            self._metrics.record_subchunk(speaking)
        if finalize:
            self._finalize()

    def _feed(self, samples: np.ndarray) -> None:
        self._buffer.push(samples)
        self._buffer.drain_ready_frames()

    def _finalize(self) -> None:
        text = self._decode()
        if text is not None:
            self._emit(TranscriptionOutcome.confirmed(text))
        LOGGER.debug(
            "utterance finalized after %d sub-chunks", self._run.speech_count
        )
        self._reset_utterance()

    def _decode(self) -> Optional[str]:
        features = self._buffer.accumulated()
        if features.shape[0] == 0:
            return None
        started = time.perf_counter()
        try:
            encoder_out = self._recognizer.encode(features)
            if encoder_out.shape[0] == 0:
                return None
            tokens = self._decoder.decode(encoder_out)
            text = self._recognizer.detokenize(tokens)
        except CaptionError:
            raise
        except Exception as exc:
            raise RecognizerFailure(f"{self._model_name}: {exc}") from exc
        if self._metrics is not None:
            self._metrics.record_decode(time.perf_counter() - started)
        self._failures = 0
        return text

    def _emit(self, outcome: TranscriptionOutcome) -> None:
        if self._metrics is not None:
            if outcome.kind is OutcomeKind.TENTATIVE:
                self._metrics.record_tentative()
            elif outcome.kind is OutcomeKind.CONFIRMED:
                self._metrics.record_confirmed()
        self._ready.append(outcome)

    def _register_failure(self, exc: RecognizerFailure) -> None:
        self._failures += 1
        if self._metrics is not None:
            self._metrics.record_recognizer_failure()
        limit = self._settings.max_consecutive_failures
        if limit > 0 and self._failures >= limit:
            self._fault = CaptionError(
                ErrorCode.RECOGNIZER_FAILURE_LIMIT,
                f"{self._failures} consecutive failures: {exc.detail}",
            )
            if self._metrics is not None:
                self._metrics.record_error(ErrorCode.RECOGNIZER_FAILURE_LIMIT)
            LOGGER.error("Recognizer %s faulted: %s", self._model_name, self._fault)
            self._pending = np.zeros(0, dtype=np.float32)
            self._ready.append(TranscriptionOutcome.failed(self._fault))
            return
        LOGGER.warning(
            "Recognizer %s failed (%d/%d): %s",
            self._model_name,
            self._failures,
            limit,
            exc,
        )
        self._ready.append(TranscriptionOutcome.failed(exc))

    def set_model(self, name: str) -> None:
        """Swap the recognizer; the old one stays active if loading fails."""
        recognizer = self._loader(name)
        self._install(recognizer, name)
        if self._metrics is not None:
            self._metrics.record_model_swap()
        LOGGER.info("Switched recognizer to %s", name)

    def clear(self) -> None:
        """Drop the running utterance, queued outcomes and pending audio."""
        self._reset_utterance()
        self._reset_stream()
        LOGGER.debug("Transcriber cleared")

    reset = clear

    def update_settings(self, settings: TranscriberSettings) -> None:
        """Apply new thresholds/policy without discarding the running utterance.

        Everything is validated before anything is installed, so a rejected
        update leaves the current settings in place.
        """
        policy = self._rollback_policy(settings)
        if settings.max_symbols_per_frame < 1:
            raise CaptionError(
                ErrorCode.CONFIG_INVALID,
                f"max_symbols_per_frame must be >= 1: {settings.max_symbols_per_frame}",
            )
        self._settings = settings
        self._cache.set_policy(policy)
        self._decoder.max_symbols_per_frame = settings.max_symbols_per_frame

    def _rollback_policy(self, settings: Optional[TranscriberSettings] = None):
        settings = settings or self._settings
        extra = tuple(getattr(self._recognizer, "unstable_tokens", ()) or ())
        if extra:
            settings = settings.with_unstable_tokens(
                tuple(settings.unstable_tokens) + extra
            )
        return settings.rollback_policy()

    def _install(self, recognizer: Recognizer, name: str) -> None:
        buffer = IncrementalFeatureBuffer(
            recognizer.create_feature_extractor(), recognizer.lead_in_samples
        )
        self._recognizer = recognizer
        self._model_name = name
        self._buffer = buffer
        self._cache = DecodeCheckpointCache(self._rollback_policy())
        self._decoder = GreedyTransducerDecoder(
            recognizer, self._cache, self._settings.max_symbols_per_frame
        )
        self._run.reset()
        self._reset_stream()

    def _reset_utterance(self) -> None:
        self._buffer.clear()
        self._cache.clear()
        self._recognizer.reset()
        self._run.reset()

    def _reset_stream(self) -> None:
        self._gate.reset()
        self._pending = np.zeros(0, dtype=np.float32)
        self._previous_chunk = np.zeros(self._gate.chunk_samples, dtype=np.float32)
        self._ready.clear()
        self._failures = 0
        self._fault = None


__all__ = ["ModelLoader", "Transcriber"]

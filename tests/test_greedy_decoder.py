from typing import List

import numpy as np
import pytest

from livecaption.backend.component.decode_cache import (
    ConfidenceRollbackPolicy,
    DecodeCheckpointCache,
)
from livecaption.backend.component.greedy_decoder import GreedyTransducerDecoder
from livecaption.errors import ErrorCode, RecognizerFailure
from livecaption.model.recognizers.base import TokenPrediction


class ScriptedRecognizer:
    """Replays predictions keyed by encoder frame value."""

    blank_id = 0

    def __init__(self, script):
        self.script = {frame: list(preds) for frame, preds in script.items()}
        self.calls: List[int] = []

    def predict(self, frame, tokens, state):
        index = int(frame[0])
        self.calls.append(index)
        queue = self.script.get(index)
        if queue:
            token, duration = queue.pop(0)
        else:
            token, duration = self.blank_id, 0
        if token == self.blank_id:
            return TokenPrediction(token, 1.0, state, duration)
        return TokenPrediction(token, 1.0, (state or 0) + 1, duration)


def _frames(n):
    return np.arange(n, dtype=np.float32).reshape(n, 1)


def _decoder(recognizer, max_symbols=16, margin=0):
    cache = DecodeCheckpointCache(ConfidenceRollbackPolicy(trailing_margin=margin))
    return GreedyTransducerDecoder(recognizer, cache, max_symbols), cache


def test_blank_advances_one_frame():
    """Test blank advances one frame."""
    recognizer = ScriptedRecognizer({})
    decoder, cache = _decoder(recognizer)
    assert decoder.decode(_frames(4)) == []
    assert recognizer.calls == [0, 1, 2, 3]
    assert len(cache) == 0


def test_zero_duration_tokens_stay_on_frame():
    """Several plain-transducer symbols can come out of one frame."""
    recognizer = ScriptedRecognizer({0: [(5, 0), (6, 0)], 1: [(7, 0)]})
    decoder, cache = _decoder(recognizer)
    assert decoder.decode(_frames(2)) == [5, 6, 7]
    assert recognizer.calls == [0, 0, 0, 1, 1]
    assert cache.checkpoint.times == [0, 0, 1]
    assert cache.checkpoint.states == [1, 2, 3]


def test_durations_skip_frames():
    """Test durations skip frames."""
    recognizer = ScriptedRecognizer({0: [(5, 2)], 2: [(6, 1)], 3: [(0, 2)]})
    decoder, cache = _decoder(recognizer)
    assert decoder.decode(_frames(6)) == [5, 6]
    assert recognizer.calls == [0, 2, 3, 5]
    # Times record the frame reached after the skip.
    assert cache.checkpoint.times == [2, 3]


def test_symbol_cap_forces_progress():
    """Test symbol cap forces progress."""
    recognizer = ScriptedRecognizer({0: [(5, 0)] * 10})
    decoder, _ = _decoder(recognizer, max_symbols=3)
    assert decoder.decode(_frames(2)) == [5, 5, 5]
    assert recognizer.calls == [0, 0, 0, 1]


def test_resume_skips_stable_prefix():
    """Test resume skips stable prefix."""
    recognizer = ScriptedRecognizer({0: [(5, 1)], 1: [(6, 1)], 2: [(7, 1)]})
    decoder, cache = _decoder(recognizer, margin=1)
    assert decoder.decode(_frames(3)) == [5, 6, 7]

    recognizer.calls.clear()
    recognizer.script = {2: [(8, 1)], 3: [(9, 1)]}
    assert decoder.decode(_frames(4)) == [5, 6, 8, 9]
    assert recognizer.calls == [2, 3]
    assert cache.checkpoint.tokens == [5, 6, 8, 9]


def test_failure_mid_decode_commits_nothing():
    """Test failure mid decode commits nothing."""
    recognizer = ScriptedRecognizer({0: [(5, 1)], 1: [(6, 1)]})
    decoder, cache = _decoder(recognizer)
    decoder.decode(_frames(2))

    def boom(frame, tokens, state):
        if int(frame[0]) >= 3:
            raise RuntimeError("joiner")
        return TokenPrediction(4, 1.0, state, 1)

    recognizer.predict = boom
    with pytest.raises(RecognizerFailure) as excinfo:
        decoder.decode(_frames(5))
    assert excinfo.value.code is ErrorCode.RECOGNIZER_FAILED
    assert cache.checkpoint.tokens == [5, 6]


def test_rejects_non_positive_symbol_cap():
    """Test rejects non positive symbol cap."""
    with pytest.raises(ValueError):
        _decoder(ScriptedRecognizer({}), max_symbols=0)

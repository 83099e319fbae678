"""Greedy transducer search that resumes from the checkpoint cache."""

from __future__ import annotations

from typing import List

import numpy as np

from livecaption.backend.component.decode_cache import (
    CheckpointEntry,
    DecodeCheckpointCache,
)
from livecaption.errors import CaptionError, RecognizerFailure
from livecaption.model.recognizers.base import Recognizer
from livecaption.utils.logger import LOGGER


class GreedyTransducerDecoder:
    """Frame-synchronous greedy search with optional token durations.

    A blank (or a zero-duration prediction that hits the per-frame cap)
    advances one frame; a non-zero duration advances that many frames.
    """

    def __init__(
        self,
        recognizer: Recognizer,
        cache: DecodeCheckpointCache,
        max_symbols_per_frame: int = 16,
    ) -> None:
        if max_symbols_per_frame < 1:
            raise ValueError("max_symbols_per_frame must be >= 1")
        self.recognizer = recognizer
        self.cache = cache
        self.max_symbols_per_frame = int(max_symbols_per_frame)

    def decode(self, encoder_out: np.ndarray) -> List[int]:
        point = self.cache.resume()
        tokens = list(point.tokens)
        state = point.state
        time = point.time
        staged: List[CheckpointEntry] = []
        blank_id = self.recognizer.blank_id
        num_frames = int(encoder_out.shape[0])

        try:
            while time < num_frames:
                frame = encoder_out[time]
                skip = 0
                for _ in range(self.max_symbols_per_frame):
                    prediction = self.recognizer.predict(frame, tokens, state)
                    skip = max(0, int(prediction.duration))
                    is_blank = prediction.token == blank_id
                    if is_blank and skip == 0:
                        skip = 1
                    time += skip
                    if not is_blank:
                        tokens.append(prediction.token)
                        state = prediction.state
                        staged.append(
                            CheckpointEntry(
                                token=prediction.token,
                                score=prediction.score,
                                time=time,
                                state=state,
                            )
                        )
                    if skip > 0:
                        break
                if skip == 0:
                    time += 1
        except CaptionError:
            raise
        except Exception as exc:
            raise RecognizerFailure(f"decode failed at frame {time}: {exc}") from exc

        self.cache.apply(point, staged)
        LOGGER.trace(
            "decoded %d frames from t=%d: kept=%d new=%d",
            num_frames,
            point.time,
            point.length,
            len(staged),
        )
        return tokens


__all__ = ["GreedyTransducerDecoder"]

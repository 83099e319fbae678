"""Per-token checkpoints that let incremental decodes resume mid-utterance."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Protocol, Sequence, Tuple

from livecaption.utils.logger import LOGGER


@dataclass(frozen=True)
class CheckpointEntry:
    """One emitted token together with the recognizer state after it."""

    token: int
    score: float
    time: int
    state: Any = None


@dataclass(frozen=True)
class ResumePoint:
    """Where the next decode restarts: kept prefix, its state and frame index."""

    tokens: Tuple[int, ...]
    state: Any
    time: int
    length: int

    @classmethod
    def empty(cls) -> "ResumePoint":
        return cls(tokens=(), state=None, time=0, length=0)


class HypothesisCheckpoint:
    """Four index-aligned lists; entry i is the state right after token i.

    Only tail append and tail truncation are allowed so the lists can never
    drift out of alignment.
    """

    def __init__(self) -> None:
        self.tokens: List[int] = []
        self.scores: List[float] = []
        self.states: List[Any] = []
        self.times: List[int] = []

    def __len__(self) -> int:
        return len(self.tokens)

    def append(self, entry: CheckpointEntry) -> None:
        self.tokens.append(int(entry.token))
        self.scores.append(float(entry.score))
        self.states.append(entry.state)
        self.times.append(int(entry.time))

    def truncate(self, length: int) -> None:
        if length < 0:
            raise ValueError("length must be >= 0")
        del self.tokens[length:]
        del self.scores[length:]
        del self.states[length:]
        del self.times[length:]

    def clear(self) -> None:
        self.truncate(0)

    def is_aligned(self) -> bool:
        n = len(self.tokens)
        return len(self.scores) == n and len(self.states) == n and len(self.times) == n

    def resume_point(self, length: int) -> ResumePoint:
        if length <= 0:
            return ResumePoint.empty()
        return ResumePoint(
            tokens=tuple(self.tokens[:length]),
            state=self.states[length - 1],
            time=self.times[length - 1],
            length=length,
        )


class RollbackPolicy(Protocol):
    def stable_length(self, checkpoint: HypothesisCheckpoint) -> int:
        """Return how many leading entries are trusted enough to resume from."""
        ...

    def observe(
        self, previous: Sequence[int], checkpoint: HypothesisCheckpoint, start: int
    ) -> None:
        """Called after entries from index ``start`` onward were (re)written."""
        ...

    def reset(self) -> None: ...


class ConfidenceRollbackPolicy:
    """Trust the prefix up to the last confident, stable token minus a margin."""

    def __init__(
        self,
        threshold: float = 0.99,
        unstable_tokens: Iterable[int] = (),
        trailing_margin: int = 4,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        if trailing_margin < 0:
            raise ValueError("trailing_margin must be >= 0")
        self.threshold = float(threshold)
        self.unstable_tokens = frozenset(int(t) for t in unstable_tokens)
        self.trailing_margin = int(trailing_margin)

    def stable_length(self, checkpoint: HypothesisCheckpoint) -> int:
        n = len(checkpoint)
        while n > 0 and (
            checkpoint.scores[n - 1] < self.threshold
            or checkpoint.tokens[n - 1] in self.unstable_tokens
        ):
            n -= 1
        return max(0, n - self.trailing_margin)

    def observe(
        self, previous: Sequence[int], checkpoint: HypothesisCheckpoint, start: int
    ) -> None:
        return None

    def reset(self) -> None:
        return None


class RepetitionRollbackPolicy:
    """Trust a prefix once each of its tokens has been re-derived repeatedly.

    Every decode rewrites the tail after the resume point; a token that comes
    back unchanged at the same position gains one repetition. The stable
    prefix is the longest run of tokens with at least ``min_repeats``
    repetitions and score ``>= min_score``; shorter than ``min_tokens`` means
    nothing is trusted yet.
    """

    def __init__(
        self, min_repeats: int = 5, min_score: float = 0.9, min_tokens: int = 3
    ) -> None:
        if min_repeats < 1:
            raise ValueError("min_repeats must be >= 1")
        self.min_repeats = int(min_repeats)
        self.min_score = float(min_score)
        self.min_tokens = max(0, int(min_tokens))
        self._counts: List[int] = []

    def stable_length(self, checkpoint: HypothesisCheckpoint) -> int:
        n = 0
        limit = min(len(checkpoint), len(self._counts))
        while (
            n < limit
            and self._counts[n] >= self.min_repeats
            and checkpoint.scores[n] >= self.min_score
        ):
            n += 1
        if n < self.min_tokens:
            return 0
        return n

    def observe(
        self, previous: Sequence[int], checkpoint: HypothesisCheckpoint, start: int
    ) -> None:
        counts = self._counts[:start]
        for index in range(start, len(checkpoint)):
            token = checkpoint.tokens[index]
            if (
                index < len(previous)
                and index < len(self._counts)
                and previous[index] == token
            ):
                counts.append(self._counts[index] + 1)
            else:
                counts.append(1)
        self._counts = counts

    def reset(self) -> None:
        self._counts = []

    @property
    def counts(self) -> Tuple[int, ...]:
        return tuple(self._counts)


class DecodeCheckpointCache:
    """Owns the hypothesis checkpoint and decides where decoding resumes."""

    def __init__(self, policy: Optional[RollbackPolicy] = None) -> None:
        self._checkpoint = HypothesisCheckpoint()
        self._policy: RollbackPolicy = policy or ConfidenceRollbackPolicy()

    def __len__(self) -> int:
        return len(self._checkpoint)

    @property
    def checkpoint(self) -> HypothesisCheckpoint:
        return self._checkpoint

    @property
    def policy(self) -> RollbackPolicy:
        return self._policy

    def set_policy(self, policy: RollbackPolicy) -> None:
        self._policy = policy
        self._policy.reset()

    def resume(self) -> ResumePoint:
        """Return the resume point without mutating the checkpoint."""
        length = self._policy.stable_length(self._checkpoint)
        length = max(0, min(length, len(self._checkpoint)))
        return self._checkpoint.resume_point(length)

    def commit(self, token: int, score: float, audio_time: int, state: Any) -> None:
        previous = list(self._checkpoint.tokens)
        start = len(self._checkpoint)
        self._checkpoint.append(CheckpointEntry(token, score, audio_time, state))
        self._policy.observe(previous, self._checkpoint, start)

    def apply(self, point: ResumePoint, entries: Sequence[CheckpointEntry]) -> None:
        """Truncate to ``point`` and append ``entries`` as one step."""
        if point.length > len(self._checkpoint):
            raise ValueError(
                f"resume point {point.length} beyond checkpoint {len(self._checkpoint)}"
            )
        previous = list(self._checkpoint.tokens)
        self._checkpoint.truncate(point.length)
        for entry in entries:
            self._checkpoint.append(entry)
        self._policy.observe(previous, self._checkpoint, point.length)
        LOGGER.trace(
            "checkpoint resumed at %d, appended %d (total=%d)",
            point.length,
            len(entries),
            len(self._checkpoint),
        )

    def clear(self) -> None:
        self._checkpoint.clear()
        self._policy.reset()


__all__ = [
    "CheckpointEntry",
    "ConfidenceRollbackPolicy",
    "DecodeCheckpointCache",
    "HypothesisCheckpoint",
    "RepetitionRollbackPolicy",
    "ResumePoint",
    "RollbackPolicy",
]

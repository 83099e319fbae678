"""Runtime metrics for the caption pipeline."""

import bisect
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict

from livecaption.errors import ErrorCode


@dataclass(frozen=True)
class HistogramSnapshot:
    """Serializable histogram snapshot for metrics export."""

    bounds: tuple[float, ...]
    cumulative_counts: tuple[int, ...]
    count: int
    sum: float


class Histogram:
    """Thread-safe(under external lock) histogram with fixed buckets."""

    def __init__(self, bounds: tuple[float, ...]):
        normalized = []
        for value in bounds:
            value = float(value)
            if value < 0:
                continue
            if normalized and value <= normalized[-1]:
                continue
            normalized.append(value)
        self._bounds = tuple(normalized)
        self._bucket_counts = [0] * (len(self._bounds) + 1)  # includes +Inf bucket
        self._count = 0
        self._sum = 0.0

    def observe(self, value: float) -> None:
        """Observe a non-negative sample."""
        if value < 0:
            return
        index = bisect.bisect_left(self._bounds, value)
        self._bucket_counts[index] += 1
        self._count += 1
        self._sum += value

    def snapshot(self) -> HistogramSnapshot:
        cumulative = []
        running = 0
        for count in self._bucket_counts:
            running += count
            cumulative.append(running)
        return HistogramSnapshot(
            bounds=self._bounds,
            cumulative_counts=tuple(cumulative),
            count=self._count,
            sum=self._sum,
        )


class Metrics:
    """Thread-safe counters shared by the worker thread and the HTTP surface."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subchunks = 0
        self._speech_subchunks = 0
        self._gate_failures = 0
        self._tentative = 0
        self._confirmed = 0
        self._recognizer_failures = 0
        self._model_swaps = 0
        self._model_load_failures = 0
        self._decode_count = 0
        self._decode_total = 0.0
        self._decode_max = 0.0
        self._error_counts: Dict[str, int] = defaultdict(int)
        self._decode_latency_hist = Histogram(
            (0.005, 0.01, 0.02, 0.05, 0.1, 0.2, 0.5, 1.0, 2.5, 5.0)
        )

    def record_subchunk(self, speech: bool) -> None:
        with self._lock:
            self._subchunks += 1
            if speech:
                self._speech_subchunks += 1

    def record_gate_failure(self) -> None:
        with self._lock:
            self._gate_failures += 1
            self._error_counts[ErrorCode.GATE_INFERENCE_FAILED.value] += 1

    def record_tentative(self) -> None:
        with self._lock:
            self._tentative += 1

    def record_confirmed(self) -> None:
        with self._lock:
            self._confirmed += 1

    def record_recognizer_failure(self) -> None:
        with self._lock:
            self._recognizer_failures += 1
            self._error_counts[ErrorCode.RECOGNIZER_FAILED.value] += 1

    def record_model_swap(self) -> None:
        with self._lock:
            self._model_swaps += 1

    def record_model_load_failure(self) -> None:
        with self._lock:
            self._model_load_failures += 1
            self._error_counts[ErrorCode.MODEL_LOAD_FAILED.value] += 1

    def record_error(self, code: ErrorCode) -> None:
        """Record an error code occurrence."""
        with self._lock:
            self._error_counts[code.value] += 1

    def record_decode(self, inference_sec: float) -> None:
        """Record timing for a single decode pass."""
        with self._lock:
            self._decode_count += 1
            self._decode_total += inference_sec
            self._decode_max = max(self._decode_max, inference_sec)
            self._decode_latency_hist.observe(inference_sec)

    def render(self) -> Dict[str, Any]:
        """Render metrics as a serializable payload."""
        with self._lock:
            return {
                "subchunks_total": self._subchunks,
                "speech_subchunks_total": self._speech_subchunks,
                "gate_failures_total": self._gate_failures,
                "tentative_total": self._tentative,
                "confirmed_total": self._confirmed,
                "recognizer_failures_total": self._recognizer_failures,
                "model_swaps_total": self._model_swaps,
                "model_load_failures_total": self._model_load_failures,
                "decode_latency_total": self._decode_total,
                "decode_latency_count": self._decode_count,
                "decode_latency_max": self._decode_max,
                "error_counts": dict(self._error_counts),
                "histograms": {
                    "decode_latency_sec": self._histogram_payload(
                        self._decode_latency_hist
                    )
                },
            }

    @staticmethod
    def _histogram_payload(histogram: Histogram) -> Dict[str, Any]:
        snap = histogram.snapshot()
        buckets: Dict[str, int] = {}
        for idx, bound in enumerate(snap.bounds):
            buckets[str(bound)] = snap.cumulative_counts[idx]
        buckets["+Inf"] = snap.cumulative_counts[-1]
        return {"buckets": buckets, "count": snap.count, "sum": snap.sum}

    def snapshot(self) -> Dict[str, float]:
        """Return averages and maxima for log lines."""
        with self._lock:
            decode_avg = (
                (self._decode_total / self._decode_count) if self._decode_count else 0.0
            )
            return {
                "decode_latency_avg": decode_avg,
                "decode_latency_max": self._decode_max,
                "confirmed_total": float(self._confirmed),
                "recognizer_failures_total": float(self._recognizer_failures),
            }


__all__ = ["Histogram", "HistogramSnapshot", "Metrics"]

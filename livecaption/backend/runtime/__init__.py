"""Runtime helpers shared across layers."""

from .metrics import Histogram, HistogramSnapshot, Metrics

__all__ = ["Histogram", "HistogramSnapshot", "Metrics"]

"""Per-tile workload histogram normalisation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class HistogramDisplay:
    values: np.ndarray
    max_count: int
    summary: str


def normalize_histogram(counts: Sequence[int]) -> HistogramDisplay:
    """Scale tile counts into [0, 1] by the largest count.

    An all-zero (or empty) histogram uses a scale factor of 1 so every value
    comes out as 0.0.
    """
    data = np.asarray(counts, dtype=np.float64).ravel()
    max_count = int(data.max()) if data.size else 0
    divisor = float(max_count) if max_count > 0 else 1.0
    values = (data / divisor).astype(np.float32)
    return HistogramDisplay(values=values, max_count=max_count, summary=f"max tile: {max_count}")

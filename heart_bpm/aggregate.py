"""
Consumer-side running average of emitted readings.

Readings are averaged over the most recent ``history`` estimates, each
weighted by its reliability.  Squaring the weight (the default) makes
ambiguous cycles count much less than clean ones.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Optional

from heart_bpm.models import BpmEstimate


class WeightedBpmAverage:
    def __init__(self, history: int = 50, square_weights: bool = True) -> None:
        if history <= 0:
            raise ValueError(f"history must be positive, got {history}")
        self.history = history
        self.square_weights = square_weights
        self._entries: Deque[tuple[int, float]] = deque(maxlen=history)

    def add(self, estimate: BpmEstimate) -> None:
        weight = estimate.weight ** 2 if self.square_weights else estimate.weight
        self._entries.append((estimate.bpm, weight))

    @property
    def value(self) -> Optional[int]:
        """Weighted BPM (floored), or *None* if no weight has accumulated."""
        total = sum(w for _, w in self._entries)
        if total <= 0:
            return None
        return int(sum(bpm * w for bpm, w in self._entries) // total)

    @property
    def reliability(self) -> float:
        """Mean weight of the averaged readings (0 – 1)."""
        if not self._entries:
            return 0.0
        return sum(w for _, w in self._entries) / len(self._entries)

    def reset(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

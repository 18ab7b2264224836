"""
Fixed-capacity rolling window of samples.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Tuple

import numpy as np

from heart_bpm.models import Sample


class SampleBuffer:
    """
    FIFO window holding at most ``capacity`` samples, oldest first.

    Pushing into a full buffer evicts the oldest sample.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._samples: Deque[Sample] = deque(maxlen=capacity)

    def push(self, sample: Sample) -> None:
        self._samples.append(sample)

    def snapshot(self) -> Tuple[Sample, ...]:
        """Immutable copy of the window, oldest first."""
        return tuple(self._samples)

    def arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(timestamps, values)`` as float arrays."""
        timestamps = np.fromiter((s.timestamp for s in self._samples), dtype=np.float64)
        values = np.fromiter((s.value for s in self._samples), dtype=np.float64)
        return timestamps, values

    @property
    def is_full(self) -> bool:
        return len(self._samples) == self.capacity

    @property
    def fill_ratio(self) -> float:
        """How full the window is (0 – 1)."""
        return len(self._samples) / self.capacity

    def clear(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)

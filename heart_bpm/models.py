"""
Value types passed between the capture side, the estimator and consumers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List


@dataclass(frozen=True)
class Sample:
    """One intensity reading.

    ``timestamp`` is in seconds (any monotonic origin); ``value`` is the
    scalar intensity, or a conditioned/spectral value when emitted back to
    consumers.
    """

    timestamp: float
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.timestamp, "value": self.value}


def samples_to_dicts(samples: Iterable[Sample]) -> List[Dict[str, Any]]:
    """Map samples to plain dicts, e.g. for storing a recording."""
    return [s.to_dict() for s in samples]


@dataclass(frozen=True)
class RGB:
    """Mean colour of a frame, each channel in 0 – 255."""

    red: float
    green: float
    blue: float


@dataclass(frozen=True)
class BpmEstimate:
    """
    Emitted reading.

    ``weight`` is the raw reliability of the cycle's frequency estimate in
    [0, 1]; it is not a probability.  Consumers typically square it before
    using it to weight a running average.
    """

    bpm: int
    weight: float

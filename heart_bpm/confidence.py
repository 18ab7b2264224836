"""
Reliability weight of a spectral estimate.

A local peak is a bin whose magnitude strictly exceeds both neighbours;
the first and last bins never qualify.  The weight of the dominant bin is
its magnitude over the summed magnitudes of all peaks, so one clean pulse
frequency scores 1 and an ambiguous spectrum with ``k`` comparable peaks
scores about ``1 / k``.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from scipy.signal import argrelmax


def spectral_peaks(magnitudes: Sequence[float]) -> np.ndarray:
    """Indices of strict local maxima, boundary bins excluded."""
    mags = np.asarray(magnitudes, dtype=np.float64)
    if mags.size < 3:
        return np.array([], dtype=np.intp)
    return argrelmax(mags, order=1)[0]


def peak_weight(magnitudes: Sequence[float], dominant_bin: int) -> Optional[float]:
    """
    Return the weight of *dominant_bin* in [0, 1], or *None* when the
    spectrum has no peaks at all.

    If the dominant bin is not itself a local peak (e.g. it sits on the
    last bin) it still counts towards the total so the ratio stays ≤ 1.
    """
    mags = np.asarray(magnitudes, dtype=np.float64)
    peaks = spectral_peaks(mags)
    if peaks.size == 0:
        return None
    total = float(mags[peaks].sum())
    if dominant_bin not in peaks:
        total += float(mags[dominant_bin])
    if total <= 0:
        return None
    return float(np.clip(mags[dominant_bin] / total, 0.0, 1.0))

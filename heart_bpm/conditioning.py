"""
Time-domain conditioning of the PPG window.

Pipeline
--------
1. Normalize the raw intensities into 0 – 10.
2. Detrend in cascade at decreasing spreads (baseline wander from breathing,
   finger pressure and auto-exposure at several timescales).
3. Smooth with a forward exponential moving average.

Every stage is a pure function of its input array except the normalizer,
which counts its invocations to decide when to recalibrate its bounds.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
from scipy.signal import lfilter

logger = logging.getLogger(__name__)

NORMALIZED_SCALE = 10.0


class Normalizer:
    """
    Rescale a window into ``0 – 10`` using its absolute min/max.

    Once per window cycle (every ``cycle``-th call) the rescaled values are
    additionally clamped to smoothed bounds: the window is split into blocks
    of ``block`` samples, the per-block maxima and minima are averaged, and
    values outside that band are clipped.  This keeps a single outlier from
    dominating the scale.

    Parameters
    ----------
    cycle:
        Number of calls per recalibration, normally the window length.
    block:
        Block size for the averaged extrema.
    """

    def __init__(self, cycle: int, block: int = 10) -> None:
        self.cycle = cycle
        self.block = block
        self._calls = 0

    def __call__(self, values: Sequence[float]) -> np.ndarray:
        x = np.asarray(values, dtype=np.float64)
        self._calls += 1
        if x.size == 0:
            return x.copy()

        lo, hi = float(x.min()), float(x.max())
        span = hi - lo
        if span == 0:
            # Flat window
            return np.zeros_like(x)

        ratio = (x - lo) / span
        if self._calls % self.cycle == 0:
            low_bound, high_bound = self._averaged_extrema(ratio)
            logger.debug(
                "Normalizer recalibrated: bounds=(%.3f, %.3f)", low_bound, high_bound
            )
            ratio = np.clip(ratio, low_bound, high_bound)
        return ratio * NORMALIZED_SCALE

    def reset(self) -> None:
        self._calls = 0

    def _averaged_extrema(self, ratio: np.ndarray) -> tuple[float, float]:
        blocks = [ratio[i:i + self.block] for i in range(0, ratio.size, self.block)]
        low = float(np.mean([b.min() for b in blocks]))
        high = float(np.mean([b.max() for b in blocks]))
        return low, high


def detrend(values: Sequence[float], spread: int) -> np.ndarray:
    """
    Subtract a centred moving average of half-width *spread*.

    The average at index ``i`` covers ``values[i - spread : i + spread]``.
    Window sums come from one cumulative sum, so each index costs a single
    subtraction.  Indices closer than *spread* to either edge reuse the
    nearest interior trend value.  A window shorter than ``2 * spread``
    has no interior; its trend is the plain mean.
    """
    x = np.asarray(values, dtype=np.float64)
    n = x.size
    width = 2 * spread
    if n == 0:
        return x.copy()
    if n < width:
        return x - x.mean()

    csum = np.concatenate(([0.0], np.cumsum(x)))
    centres = np.arange(spread, n - spread + 1)
    interior = (csum[centres + spread] - csum[centres - spread]) / width

    trend = np.empty(n)
    trend[spread:n - spread + 1] = interior
    trend[:spread] = interior[0]
    trend[n - spread + 1:] = interior[-1]
    return x - trend


def ema_smooth(values: Sequence[float], ratio: float) -> np.ndarray:
    """
    Forward exponential moving average.

    ``ema[0] = x[0]``, ``ema[i] = ratio * x[i] + (1 - ratio) * ema[i - 1]``.
    """
    x = np.asarray(values, dtype=np.float64)
    if x.size == 0:
        return x.copy()
    smoothed, _ = lfilter([ratio], [1.0, ratio - 1.0], x, zi=[(1.0 - ratio) * x[0]])
    return smoothed


def condition(
    values: Sequence[float],
    normalizer: Normalizer,
    spreads: Sequence[int],
    ratio: float,
) -> np.ndarray:
    """Run normalize → detrend (each spread, in order) → smooth."""
    series = normalizer(values)
    for spread in spreads:
        series = detrend(series, spread)
    return ema_smooth(series, ratio)

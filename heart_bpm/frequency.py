"""
Dominant pulse frequency of a conditioned window.

Two interchangeable strategies share the ``analyze(timestamps, series)``
interface and return a :class:`FrequencyResult` or *None* when the window
holds no usable estimate.

Spectral (default)
    Trim ``cutoff`` samples from both edges, taper with a Hann window,
    take the real-input DFT and pick the largest-magnitude bin above DC.
    The bin is converted to BPM with the measured duration of the trimmed
    window rather than an assumed frame rate, so jitter in the capture
    cadence does not bias the result.

Threshold crossing
    Mark rising edges through ``(mean + max) / 2`` and average the
    instantaneous rate of consecutive edges, skipping the edge samples the
    last detrend pass could not compute.
    It has no spectral weight and always reports weight 1.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from heart_bpm.confidence import peak_weight

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60000.0


@dataclass
class FrequencyResult:
    bpm: float
    weight: float
    dominant_bin: Optional[int] = None
    magnitudes: Optional[np.ndarray] = None
    spectrum_timestamps: Optional[np.ndarray] = None


class SpectralAnalyzer:
    """
    Parameters
    ----------
    cutoff:
        Samples dropped from each edge before the transform, where the
        detrend passes replicate edge trend values.
    """

    name = "spectral"

    def __init__(self, cutoff: int) -> None:
        self.cutoff = cutoff

    def spectrum(self, timestamps: np.ndarray, series: np.ndarray):
        """Return ``(timestamps, magnitudes)`` of the trimmed window.

        The trimmed window is mean-removed and Hann-tapered before the
        transform so the replicated detrend edges do not leak into the bins.
        """
        n = series.size
        trimmed = series[self.cutoff:n - self.cutoff]
        trimmed_ts = timestamps[self.cutoff:n - self.cutoff]
        tapered = (trimmed - trimmed.mean()) * np.hanning(trimmed.size)
        return trimmed_ts, np.abs(np.fft.rfft(tapered))

    def analyze(self, timestamps: np.ndarray, series: np.ndarray) -> Optional[FrequencyResult]:
        trimmed_ts, magnitudes = self.spectrum(timestamps, series)
        length = trimmed_ts.size
        if length < 3 or magnitudes.size < length // 2 + 1:
            logger.debug("Too few spectral bins (%d) for %d samples", magnitudes.size, length)
            return None

        dominant = int(np.argmax(magnitudes[1:])) + 1
        if magnitudes[dominant] <= 0:
            logger.debug("Degenerate spectrum: no energy above DC")
            return None

        weight = peak_weight(magnitudes, dominant)
        if weight is None:
            logger.debug("Degenerate spectrum: no local peaks")
            return None

        # Bin k completes k cycles over length * mean sample interval.
        duration_ms = (trimmed_ts[-1] - trimmed_ts[0]) * 1000.0 * length / (length - 1)
        if duration_ms <= 0:
            logger.debug("Non-increasing timestamps in window; skipping")
            return None

        period_ms = duration_ms / dominant
        return FrequencyResult(
            bpm=MS_PER_MINUTE / period_ms,
            weight=weight,
            dominant_bin=dominant,
            magnitudes=magnitudes,
            spectrum_timestamps=trimmed_ts[:magnitudes.size],
        )


class ThresholdCrossingAnalyzer:
    """
    Average beat rate between consecutive rising edges.

    ``cutoff`` samples are skipped at both edges, normally the last detrend
    spread: there the trend is replicated rather than computed, and an
    offset edge can hold the window maximum and lift the threshold above
    every real pulse.
    """

    name = "threshold"

    def __init__(self, cutoff: int = 0) -> None:
        self.cutoff = cutoff

    def analyze(self, timestamps: np.ndarray, series: np.ndarray) -> Optional[FrequencyResult]:
        n = series.size
        series = series[self.cutoff:n - self.cutoff]
        timestamps = timestamps[self.cutoff:n - self.cutoff]
        if series.size < 2:
            return None
        threshold = (float(series.mean()) + float(series.max())) / 2.0
        rising = np.flatnonzero((series[:-1] < threshold) & (series[1:] >= threshold)) + 1
        if rising.size < 2:
            logger.debug("Found %d rising edge(s); need two", rising.size)
            return None

        intervals_ms = np.diff(timestamps[rising]) * 1000.0
        intervals_ms = intervals_ms[intervals_ms > 0]
        if intervals_ms.size == 0:
            return None
        return FrequencyResult(bpm=float(np.mean(MS_PER_MINUTE / intervals_ms)), weight=1.0)


def make_analyzer(strategy: str, cutoff: int, threshold_cutoff: int = 0):
    if strategy == "threshold":
        return ThresholdCrossingAnalyzer(threshold_cutoff)
    return SpectralAnalyzer(cutoff)

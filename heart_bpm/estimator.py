"""
Per-session BPM estimator.

Each pushed sample triggers one full pass over the current window:

    push → normalize → detrend (each spread) → smooth → analyze → emit

No state is carried between passes except the raw window, the normalizer's
cycle counter and the session-smoothed BPM.  Cycles without a frequency
estimate emit nothing; the last emitted value stays available through
:attr:`BpmEstimator.last_estimate`.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

import numpy as np

from heart_bpm.buffer import SampleBuffer
from heart_bpm.conditioning import Normalizer, condition
from heart_bpm.config import EstimatorConfig, validate_alpha
from heart_bpm.finger_detector import FingerDetector
from heart_bpm.frequency import make_analyzer
from heart_bpm.models import RGB, BpmEstimate, Sample

logger = logging.getLogger(__name__)

BpmCallback = Callable[[int, float], None]
SeriesCallback = Callable[[List[Sample]], None]
QualityCallback = Callable[[bool], None]


class BpmEstimator:
    """
    Owns one measurement session: the sample window and the running BPM.

    Parameters
    ----------
    config:
        Validated :class:`EstimatorConfig`; defaults are used when omitted.
    on_bpm:
        Called with ``(bpm, weight)`` on every cycle that produced an
        estimate.  Should be non-blocking.
    on_raw_data:
        Called with the conditioned window (one :class:`Sample` per raw
        sample, same timestamps) on every full-window cycle.
    on_spectrum:
        Called with ``(timestamp, magnitude)`` samples of the spectrum when
        the spectral strategy produced an estimate.
    on_signal_quality:
        Called with the finger-presence verdict whenever a sample arrives
        with its mean colour.
    """

    def __init__(
        self,
        config: Optional[EstimatorConfig] = None,
        on_bpm: Optional[BpmCallback] = None,
        on_raw_data: Optional[SeriesCallback] = None,
        on_spectrum: Optional[SeriesCallback] = None,
        on_signal_quality: Optional[QualityCallback] = None,
    ) -> None:
        self._config = config if config is not None else EstimatorConfig()
        self.on_bpm = on_bpm
        self.on_raw_data = on_raw_data
        self.on_spectrum = on_spectrum
        self.on_signal_quality = on_signal_quality

        self._buffer = SampleBuffer(self._config.window_length)
        self._normalizer = Normalizer(
            cycle=self._config.window_length, block=self._config.normalizer_block
        )
        self._analyzer = make_analyzer(
            self._config.strategy, self._config.cutoff, self._config.threshold_cutoff
        )
        self._finger_detector = FingerDetector(self._config.finger_predicate)

        self._smoothed_bpm: Optional[float] = None
        self._last_estimate: Optional[BpmEstimate] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def push(self, sample: Sample, rgb: Optional[RGB] = None) -> Optional[BpmEstimate]:
        """
        Add *sample* to the window and run one cycle.

        Returns the emitted estimate, or *None* while the window is warming
        up or when the window holds no usable frequency.
        """
        self._buffer.push(sample)
        if rgb is not None:
            self._report_signal_quality(rgb)

        if not self._buffer.is_full:
            return None

        timestamps, values = self._buffer.arrays()
        series = condition(
            values,
            self._normalizer,
            self._config.detrend_spreads,
            self._config.ema_ratio,
        )
        if self.on_raw_data is not None:
            self.on_raw_data(_to_samples(timestamps, series))

        result = self._analyzer.analyze(timestamps, series)
        if result is None:
            return None

        if self.on_spectrum is not None and result.magnitudes is not None:
            self.on_spectrum(_to_samples(result.spectrum_timestamps, result.magnitudes))

        smoothed = self._update_smoothed(result.bpm)
        estimate = BpmEstimate(bpm=int(round(smoothed)), weight=result.weight)
        self._last_estimate = estimate
        if self.on_bpm is not None:
            self.on_bpm(estimate.bpm, estimate.weight)
        return estimate

    def set_alpha(self, alpha: float) -> None:
        """Change the session smoothing factor; must lie in (0, 1]."""
        self._config.alpha = validate_alpha(alpha)

    def reset(self) -> None:
        """Discard the session and start a new one with the same config."""
        self._buffer.clear()
        self._normalizer.reset()
        self._smoothed_bpm = None
        self._last_estimate = None
        logger.info("Measurement session reset.")

    @property
    def config(self) -> EstimatorConfig:
        return self._config

    @property
    def buffer_fill_ratio(self) -> float:
        """How full the window is (0 – 1)."""
        return self._buffer.fill_ratio

    @property
    def window(self) -> Tuple[Sample, ...]:
        """Snapshot of the raw window, oldest first."""
        return self._buffer.snapshot()

    @property
    def smoothed_bpm(self) -> Optional[float]:
        return self._smoothed_bpm

    @property
    def last_estimate(self) -> Optional[BpmEstimate]:
        return self._last_estimate

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _update_smoothed(self, raw_bpm: float) -> float:
        # The first estimate of a session seeds the average.
        if self._smoothed_bpm is None:
            self._smoothed_bpm = raw_bpm
        else:
            alpha = self._config.alpha
            self._smoothed_bpm = (1 - alpha) * self._smoothed_bpm + alpha * raw_bpm
        return self._smoothed_bpm

    def _report_signal_quality(self, rgb: RGB) -> None:
        present = self._finger_detector.is_finger(rgb)
        if not present:
            logger.debug("No finger detected (rgb=%s)", rgb)
        if self.on_signal_quality is not None:
            self.on_signal_quality(present)


def _to_samples(timestamps: np.ndarray, values: np.ndarray) -> List[Sample]:
    return [Sample(float(t), float(v)) for t, v in zip(timestamps, values)]

"""
Estimator configuration.

All options are validated once, when the config is built.  Invalid values
are rejected with :class:`ConfigurationError`; nothing is silently clamped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Tuple

from heart_bpm.models import RGB

STRATEGIES = ("spectral", "threshold")


class ConfigurationError(ValueError):
    """Raised for option values that cannot start a measurement session."""


def default_finger_predicate(rgb: RGB) -> bool:
    """A lit fingertip saturates red and absorbs most green and blue."""
    return rgb.red > 150 and rgb.green < 100 and rgb.blue < 50


def validate_alpha(alpha: float) -> float:
    if alpha <= 0:
        raise ConfigurationError("smoothing factor alpha cannot be 0 or negative")
    if alpha > 1:
        raise ConfigurationError("smoothing factor alpha cannot be greater than 1")
    return float(alpha)


@dataclass
class EstimatorConfig:
    """
    Parameters
    ----------
    window_length:
        Number of samples ``N`` in the rolling window.
    cutoff:
        Samples trimmed from each edge of the conditioned window before the
        Fourier transform.  The spectrum is Hann-tapered, so the default
        keeps the whole window: 50 samples at ~30 Hz give 36 BPM bins.
    threshold_cutoff:
        Samples skipped at each edge by the threshold-crossing strategy.
        The default matches the last detrend spread.
    detrend_spreads:
        Half-widths of the cascaded moving-average detrend passes.
    ema_constant:
        ``K`` in the in-window EMA ratio ``K / (N + 1)``.
    normalizer_block:
        Block size used when the normalizer recalibrates its bounds.
    alpha:
        Session-level BPM smoothing factor in (0, 1].
        ``y_n = alpha * x_n + (1 - alpha) * y_{n-1}``
    sample_delay:
        Minimum delay in seconds between accepted samples.
    strategy:
        ``"spectral"`` (default) or ``"threshold"``.
    finger_predicate:
        Presence test on the mean colour of a frame.
    """

    window_length: int = 50
    cutoff: int = 0
    threshold_cutoff: int = 5
    detrend_spreads: Tuple[int, ...] = (25, 10, 5)
    ema_constant: float = 20.0
    normalizer_block: int = 10
    alpha: float = 0.8
    sample_delay: float = 0.05
    strategy: str = "spectral"
    finger_predicate: Callable[[RGB], bool] = field(default=default_finger_predicate)

    def __post_init__(self) -> None:
        if self.window_length <= 0:
            raise ConfigurationError(
                f"window_length must be positive, got {self.window_length}"
            )
        if self.cutoff < 0:
            raise ConfigurationError(f"cutoff cannot be negative, got {self.cutoff}")
        if self.window_length - 2 * self.cutoff < 3:
            raise ConfigurationError(
                f"cutoff={self.cutoff} leaves fewer than 3 samples of a "
                f"{self.window_length}-sample window"
            )
        if self.threshold_cutoff < 0:
            raise ConfigurationError(
                f"threshold_cutoff cannot be negative, got {self.threshold_cutoff}"
            )
        if self.window_length - 2 * self.threshold_cutoff < 2:
            raise ConfigurationError(
                f"threshold_cutoff={self.threshold_cutoff} leaves fewer than 2 samples "
                f"of a {self.window_length}-sample window"
            )
        self.detrend_spreads = tuple(int(s) for s in self.detrend_spreads)
        if any(s <= 0 for s in self.detrend_spreads):
            raise ConfigurationError(
                f"detrend spreads must be positive, got {self.detrend_spreads}"
            )
        if not 0 < self.ema_constant <= self.window_length + 1:
            raise ConfigurationError(
                f"ema_constant must lie in (0, {self.window_length + 1}], "
                f"got {self.ema_constant}"
            )
        if self.normalizer_block <= 0:
            raise ConfigurationError(
                f"normalizer_block must be positive, got {self.normalizer_block}"
            )
        self.alpha = validate_alpha(self.alpha)
        if self.sample_delay < 0:
            raise ConfigurationError(
                f"sample_delay cannot be negative, got {self.sample_delay}"
            )
        if self.strategy not in STRATEGIES:
            raise ConfigurationError(
                f"unknown strategy {self.strategy!r}, expected one of {STRATEGIES}"
            )
        if not callable(self.finger_predicate):
            raise ConfigurationError("finger_predicate must be callable")

    @property
    def ema_ratio(self) -> float:
        return self.ema_constant / (self.window_length + 1)

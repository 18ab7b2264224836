"""
Tests for the measurement session, the drop-on-busy channel and the
consumer-side weighted average.
Run with:  pytest tests/
"""

from __future__ import annotations

import numpy as np
import pytest

from heart_bpm.aggregate import WeightedBpmAverage
from heart_bpm.channel import SampleChannel
from heart_bpm.config import ConfigurationError, EstimatorConfig
from heart_bpm.estimator import BpmEstimator
from heart_bpm.finger_detector import FingerDetector
from heart_bpm.models import RGB, BpmEstimate, Sample
from heart_bpm.synthetic import synthetic_readings


def _sine_samples(n, fps=30.0, hz=1.2, baseline=100.0, amplitude=5.0):
    t = np.arange(n) / fps
    values = baseline + amplitude * np.sin(2 * np.pi * hz * t)
    return [Sample(float(ts), float(v)) for ts, v in zip(t, values)]


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestEstimatorConfig:

    @pytest.mark.parametrize("alpha", [0.0, -0.2, 1.01, 5.0])
    def test_rejects_invalid_alpha(self, alpha):
        with pytest.raises(ConfigurationError):
            EstimatorConfig(alpha=alpha)

    @pytest.mark.parametrize("alpha", [0.01, 0.5, 1.0])
    def test_accepts_valid_alpha(self, alpha):
        assert EstimatorConfig(alpha=alpha).alpha == alpha

    @pytest.mark.parametrize("kwargs", [
        {"window_length": 0},
        {"window_length": -5},
        {"cutoff": -1},
        {"cutoff": 24},
        {"threshold_cutoff": -1},
        {"threshold_cutoff": 25},
        {"detrend_spreads": (25, 0, 5)},
        {"ema_constant": 0},
        {"ema_constant": 52},
        {"normalizer_block": 0},
        {"sample_delay": -0.1},
        {"strategy": "wavelet"},
        {"finger_predicate": "red"},
    ])
    def test_rejects_invalid_options(self, kwargs):
        with pytest.raises(ConfigurationError):
            EstimatorConfig(**kwargs)

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)

    def test_ema_ratio(self):
        assert EstimatorConfig(window_length=50, ema_constant=20).ema_ratio == pytest.approx(20 / 51)


# ---------------------------------------------------------------------------
# BpmEstimator
# ---------------------------------------------------------------------------

class TestBpmEstimator:

    def test_warm_up_suppresses_emission(self):
        emitted, raw = [], []
        est = BpmEstimator(on_bpm=lambda b, w: emitted.append((b, w)),
                           on_raw_data=raw.append)
        for sample in _sine_samples(49):
            assert est.push(sample) is None
        assert emitted == []
        assert raw == []
        assert est.buffer_fill_ratio == pytest.approx(49 / 50)

    def test_sine_72_bpm_end_to_end(self):
        emitted, raw, spectra = [], [], []
        est = BpmEstimator(
            on_bpm=lambda b, w: emitted.append((b, w)),
            on_raw_data=raw.append,
            on_spectrum=spectra.append,
        )
        samples = _sine_samples(50)
        for sample in samples:
            est.push(sample)

        assert len(emitted) == 1
        bpm, weight = emitted[0]
        assert isinstance(bpm, int)
        assert abs(bpm - 72) <= 2
        assert weight > 0.8
        assert est.last_estimate == BpmEstimate(bpm=bpm, weight=weight)

        conditioned = raw[-1]
        assert len(conditioned) == 50
        assert [s.timestamp for s in conditioned] == [s.timestamp for s in samples]
        assert len(spectra[-1]) == 50 // 2 + 1

    def test_threshold_strategy_end_to_end(self):
        config = EstimatorConfig(window_length=100, threshold_cutoff=20, strategy="threshold")
        est = BpmEstimator(config)
        results = [est.push(s) for s in _sine_samples(100)]
        assert all(r is None for r in results[:-1])
        assert results[-1] is not None
        assert abs(results[-1].bpm - 72) <= 1
        assert results[-1].weight == 1.0

    def test_threshold_strategy_default_window(self):
        config = EstimatorConfig(strategy="threshold", alpha=1.0)
        est = BpmEstimator(config)
        results = [est.push(s) for s in _sine_samples(150, hz=2.0)]
        emitted = [r for r in results[49:] if r is not None]
        # 101 full-window cycles.
        assert len(emitted) >= 0.8 * 101
        assert abs(np.median([r.bpm for r in emitted]) - 120) <= 10
        assert all(r.weight == 1.0 for r in emitted)

    @pytest.mark.parametrize("hz, expected", [
        (1.2, 72),
        (1.8, 108),
        (2.4, 144),
        # 100 BPM reads as the nearest 36 BPM bin.
        (100 / 60, 108),
    ])
    def test_spectral_default_window_tracks_rate(self, hz, expected):
        est = BpmEstimator(EstimatorConfig(alpha=1.0))
        results = [est.push(s) for s in _sine_samples(50, hz=hz)]
        assert results[-1] is not None
        assert abs(results[-1].bpm - expected) <= 2

    def test_spectral_output_moves_with_input(self):
        bpms = []
        for hz in (1.2, 1.8, 2.4):
            est = BpmEstimator(EstimatorConfig(alpha=1.0))
            for sample in _sine_samples(50, hz=hz):
                est.push(sample)
            bpms.append(est.last_estimate.bpm)
        assert bpms == sorted(bpms)
        assert len(set(bpms)) == 3

    def test_flat_window_emits_nothing(self):
        emitted, raw, quality = [], [], []
        est = BpmEstimator(
            on_bpm=lambda b, w: emitted.append((b, w)),
            on_raw_data=raw.append,
            on_signal_quality=quality.append,
        )
        for i in range(50):
            assert est.push(Sample(i / 30.0, 100.0)) is None
        assert emitted == []
        assert quality == []
        assert all(s.value == 0.0 for s in raw[-1])
        assert est.smoothed_bpm is None

    def test_signal_quality_default_predicate(self):
        quality = []
        est = BpmEstimator(on_signal_quality=quality.append)
        est.push(Sample(0.0, 1.0), RGB(200, 60, 30))
        est.push(Sample(0.1, 1.0), RGB(120, 120, 120))
        assert quality == [True, False]

    def test_signal_quality_predicate_override(self):
        quality = []
        config = EstimatorConfig(finger_predicate=lambda rgb: rgb.green > 100)
        est = BpmEstimator(config, on_signal_quality=quality.append)
        est.push(Sample(0.0, 1.0), RGB(120, 120, 120))
        assert quality == [True]

    def test_signal_quality_goes_through_finger_detector(self, monkeypatch):
        seen = []

        def is_finger(self, rgb):
            seen.append(rgb)
            return False

        monkeypatch.setattr(FingerDetector, "is_finger", is_finger)
        quality = []
        est = BpmEstimator(on_signal_quality=quality.append)
        est.push(Sample(0.0, 1.0), RGB(200, 60, 30))
        assert seen == [RGB(200, 60, 30)]
        assert quality == [False]

    @pytest.mark.parametrize("alpha", [0.1, 0.5, 0.8, 1.0])
    def test_smoothed_update_between_previous_and_raw(self, alpha):
        est = BpmEstimator(EstimatorConfig(alpha=alpha))
        assert est._update_smoothed(60.0) == 60.0
        updated = est._update_smoothed(90.0)
        assert 60.0 < updated <= 90.0
        if alpha == 1.0:
            assert updated == 90.0

    def test_smoothed_bpm_persists_across_windows(self):
        est = BpmEstimator()
        for sample in _sine_samples(80):
            est.push(sample)
        assert est.smoothed_bpm is not None
        assert abs(est.last_estimate.bpm - 72) <= 2

    def test_set_alpha_validates(self):
        est = BpmEstimator()
        est.set_alpha(0.3)
        assert est.config.alpha == 0.3
        with pytest.raises(ConfigurationError):
            est.set_alpha(0)
        with pytest.raises(ConfigurationError):
            est.set_alpha(1.5)
        assert est.config.alpha == 0.3

    def test_window_is_tuple_of_samples(self):
        est = BpmEstimator()
        samples = _sine_samples(3)
        for sample in samples:
            est.push(sample)
        assert est.window == tuple(samples)

    def test_reset_starts_new_session(self):
        est = BpmEstimator()
        for sample in _sine_samples(50):
            est.push(sample)
        assert est.last_estimate is not None
        est.reset()
        assert est.buffer_fill_ratio == 0.0
        assert est.last_estimate is None
        assert est.smoothed_bpm is None
        assert est.window == ()

    def test_noisy_synthetic_source(self):
        est = BpmEstimator()
        estimates = [est.push(s, rgb) for s, rgb in
                     synthetic_readings(bpm=72, duration=6.0, drift=3.0, noise=0.2, seed=1)]
        emitted = [e for e in estimates if e is not None]
        assert emitted
        assert all(0.0 <= e.weight <= 1.0 for e in emitted)


# ---------------------------------------------------------------------------
# SampleChannel
# ---------------------------------------------------------------------------

class TestSampleChannel:

    def test_drops_samples_inside_min_delay(self):
        clock = FakeClock()
        est = BpmEstimator()
        channel = SampleChannel(est, min_delay=0.05, clock=clock)

        assert channel.offer(Sample(0.0, 1.0)) is True
        clock.now = 0.01
        assert channel.busy
        assert channel.offer(Sample(0.01, 1.0)) is False
        clock.now = 0.06
        assert channel.offer(Sample(0.06, 1.0)) is True

        assert channel.accepted == 2
        assert channel.dropped == 1
        assert [s.timestamp for s in est.window] == [0.0, 0.06]

    def test_drops_samples_offered_during_a_cycle(self):
        clock = FakeClock()
        results = []
        est = BpmEstimator()
        channel = SampleChannel(est, min_delay=0.0, clock=clock)
        est.on_signal_quality = lambda present: results.append(
            channel.offer(Sample(99.0, 1.0))
        )
        assert channel.offer(Sample(0.0, 1.0), RGB(200, 60, 30)) is True
        assert results == [False]
        assert channel.dropped == 1
        assert not channel.busy

    def test_default_delay_from_config(self):
        est = BpmEstimator(EstimatorConfig(sample_delay=0.033))
        assert SampleChannel(est).min_delay == 0.033


# ---------------------------------------------------------------------------
# WeightedBpmAverage
# ---------------------------------------------------------------------------

class TestWeightedBpmAverage:

    def test_empty(self):
        avg = WeightedBpmAverage()
        assert avg.value is None
        assert avg.reliability == 0.0

    def test_squared_weights(self):
        avg = WeightedBpmAverage()
        avg.add(BpmEstimate(70, 1.0))
        avg.add(BpmEstimate(80, 0.5))
        # weights 1 and 0.25: (70 + 20) / 1.25
        assert avg.value == 72
        assert avg.reliability == pytest.approx(0.625)

    def test_raw_weights(self):
        avg = WeightedBpmAverage(square_weights=False)
        avg.add(BpmEstimate(70, 1.0))
        avg.add(BpmEstimate(80, 0.5))
        assert avg.value == 73

    def test_history_limit(self):
        avg = WeightedBpmAverage(history=2)
        for bpm in (200, 60, 60):
            avg.add(BpmEstimate(bpm, 1.0))
        assert len(avg) == 2
        assert avg.value == 60

    def test_zero_weight(self):
        avg = WeightedBpmAverage()
        avg.add(BpmEstimate(70, 0.0))
        assert avg.value is None

    def test_reset(self):
        avg = WeightedBpmAverage()
        avg.add(BpmEstimate(70, 1.0))
        avg.reset()
        assert len(avg) == 0

"""
Synthetic fingertip PPG source for demos and tests.

The intensity is a sinusoidal pulse on top of a slow baseline drift (as
from breathing or a shifting finger), with optional Gaussian noise.
Timestamps are evenly spaced at ``fps``.
"""

from __future__ import annotations

from typing import Generator, Optional

import numpy as np

from heart_bpm.camera import Reading
from heart_bpm.models import RGB, Sample

FINGER_RGB = RGB(red=200.0, green=60.0, blue=30.0)


def synthetic_readings(
    bpm: float = 72.0,
    fps: float = 30.0,
    duration: float = 10.0,
    baseline: float = 120.0,
    amplitude: float = 5.0,
    drift: float = 0.0,
    drift_hz: float = 0.2,
    noise: float = 0.0,
    start: float = 0.0,
    rgb: RGB = FINGER_RGB,
    seed: Optional[int] = None,
) -> Generator[Reading, None, None]:
    rng = np.random.default_rng(seed)
    t = np.arange(int(round(fps * duration))) / fps
    values = (
        baseline
        + amplitude * np.sin(2 * np.pi * (bpm / 60.0) * t)
        + drift * np.sin(2 * np.pi * drift_hz * t)
    )
    if noise > 0:
        values = values + rng.normal(0.0, noise, t.size)
    for ts, value in zip(t, values):
        yield Sample(timestamp=start + float(ts), value=float(value)), rgb

"""
Heart BPM: fingertip photoplethysmography (PPG) pulse estimation.

Cover the camera lens and light source with a fingertip; every frame
contributes one intensity sample, and a rolling window of samples is
conditioned and analysed to produce a BPM reading with a reliability
weight.
"""

from heart_bpm.config import ConfigurationError, EstimatorConfig
from heart_bpm.estimator import BpmEstimator
from heart_bpm.models import RGB, BpmEstimate, Sample

__version__ = "0.1.0"
__author__ = "heart_bpm"

__all__ = [
    "BpmEstimate",
    "BpmEstimator",
    "ConfigurationError",
    "EstimatorConfig",
    "RGB",
    "Sample",
]

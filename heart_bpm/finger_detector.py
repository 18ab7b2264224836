"""
Finger-on-lens detector.

With the torch on and a fingertip pressed over the lens, the frame turns
almost uniformly bright red: light passing through tissue keeps the red
band and loses most green and blue.  The detector reduces a frame to its
mean colour and applies a presence predicate to it, so the estimator can
report whether the signal it is fed is worth trusting.
"""

from __future__ import annotations

from typing import Callable, Optional

import cv2
import numpy as np

from heart_bpm.config import default_finger_predicate
from heart_bpm.models import RGB


def mean_rgb(frame: np.ndarray) -> RGB:
    """
    Mean colour of *frame*.

    Parameters
    ----------
    frame:
        BGR image array (H × W × 3, uint8), as delivered by OpenCV.
    """
    blue, green, red = cv2.mean(frame)[:3]
    return RGB(red=float(red), green=float(green), blue=float(blue))


class FingerDetector:
    """
    Parameters
    ----------
    predicate:
        Test applied to the mean colour.  Default: red > 150, green < 100,
        blue < 50.
    """

    def __init__(self, predicate: Optional[Callable[[RGB], bool]] = None) -> None:
        self.predicate = predicate if predicate is not None else default_finger_predicate

    def is_finger(self, rgb: RGB) -> bool:
        return bool(self.predicate(rgb))

    def is_finger_frame(self, frame: np.ndarray) -> bool:
        """Return *True* if *frame* looks like a lit finger covering the lens."""
        return self.is_finger(mean_rgb(frame))

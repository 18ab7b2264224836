"""
OpenCV capture adapter.

Turns camera frames into ``(Sample, RGB)`` readings: the sample value is
the frame's mean luma, the colour triple feeds the finger detector.
Torch control and device permissions are left to the platform.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Generator, Tuple

import cv2
import numpy as np

from heart_bpm.finger_detector import mean_rgb
from heart_bpm.models import RGB, Sample

logger = logging.getLogger(__name__)

Reading = Tuple[Sample, RGB]


def frame_to_reading(frame: np.ndarray, timestamp: float) -> Reading:
    """Reduce a BGR frame to its mean-luma sample and mean colour."""
    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    return Sample(timestamp=timestamp, value=float(gray.mean())), mean_rgb(frame)


class FingertipCamera:
    """
    Thin wrapper around ``cv2.VideoCapture``.

    Parameters
    ----------
    camera_index:
        OpenCV camera index.
    resolution:
        (width, height) requested from the device.  A low resolution is
        enough since each frame collapses to one number.
    fps:
        Requested frame rate.  Actual rate may differ slightly; samples
        carry their own timestamps.
    clock:
        Time source for sample timestamps, in seconds.
    """

    def __init__(
        self,
        camera_index: int = 0,
        resolution: Tuple[int, int] = (320, 240),
        fps: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.camera_index = camera_index
        self.resolution = resolution
        self.fps = fps
        self._clock = clock
        self._cap: "cv2.VideoCapture | None" = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            raise RuntimeError(
                f"Cannot open video capture device index={self.camera_index}"
            )
        w, h = self.resolution
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        cap.set(cv2.CAP_PROP_FPS, self.fps)
        self._cap = cap
        logger.info(
            "Camera opened – index=%d resolution=%s fps=%d",
            self.camera_index, self.resolution, self.fps,
        )

    def close(self) -> None:
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None
        logger.info("Camera closed.")

    def __enter__(self) -> "FingertipCamera":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    def read_frame(self) -> np.ndarray | None:
        """Capture one BGR frame, or *None* on a failed read."""
        if self._cap is None:
            raise RuntimeError("Camera is not open.  Call open() first.")
        ok, frame = self._cap.read()
        if not ok:
            logger.warning("VideoCapture.read() returned False.")
            return None
        return frame

    def readings(self) -> Generator[Reading, None, None]:
        """
        Yield readings until the camera is closed or stops delivering.

        Usage::

            with FingertipCamera() as cam:
                for sample, rgb in cam.readings():
                    channel.offer(sample, rgb)
        """
        null_streak = 0
        while self._cap is not None:
            frame = self.read_frame()
            if frame is None:
                null_streak += 1
                if null_streak >= 10:
                    logger.error("Camera returned 10 consecutive empty frames – aborting.")
                    break
                continue
            null_streak = 0
            yield frame_to_reading(frame, self._clock())

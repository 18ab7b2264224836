"""
Drop-on-busy entry point between a capture producer and an estimator.

The capture side may run faster than the estimator.  Instead of queueing,
the channel accepts a sample only when no cycle is running and at least
``min_delay`` seconds have passed since the previous cycle finished;
anything offered earlier is dropped.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from heart_bpm.estimator import BpmEstimator
from heart_bpm.models import RGB, Sample

logger = logging.getLogger(__name__)


class SampleChannel:
    """
    Parameters
    ----------
    estimator:
        Session that processes accepted samples.
    min_delay:
        Seconds after a cycle during which new samples are dropped.
        Defaults to the estimator's ``sample_delay``.
    clock:
        Monotonic time source in seconds.
    """

    def __init__(
        self,
        estimator: BpmEstimator,
        min_delay: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.estimator = estimator
        self.min_delay = estimator.config.sample_delay if min_delay is None else min_delay
        self._clock = clock
        self._processing = False
        self._ready_at = float("-inf")
        self.accepted = 0
        self.dropped = 0

    @property
    def busy(self) -> bool:
        return self._processing or self._clock() < self._ready_at

    def offer(self, sample: Sample, rgb: Optional[RGB] = None) -> bool:
        """Run a cycle for *sample* if the channel is free; return whether it was taken."""
        if self.busy:
            self.dropped += 1
            logger.debug("Channel busy, dropped sample at t=%.3f", sample.timestamp)
            return False

        self._processing = True
        try:
            self.estimator.push(sample, rgb)
        finally:
            self._processing = False
            self._ready_at = self._clock() + self.min_delay
        self.accepted += 1
        return True

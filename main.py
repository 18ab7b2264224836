#!/usr/bin/env python3
"""
Heart BPM – command-line entry point.

Usage
-----
    python main.py [OPTIONS]

Options
-------
    --camera-index INT   OpenCV camera index (default: 0)
    --synthetic BPM      Use a synthetic PPG source at BPM instead of a camera
    --duration FLOAT     Stop after this many seconds (default: run until Ctrl-C)
    --window INT         Samples per analysis window (default: 50)
    --cutoff INT         Samples trimmed from each window edge (default: 0)
    --threshold-cutoff INT  Edge samples skipped by the threshold strategy (default: 5)
    --alpha FLOAT        Session BPM smoothing factor in (0, 1] (default: 0.8)
    --sample-delay FLOAT Minimum seconds between accepted samples (default: 0.05)
    --strategy NAME      spectral | threshold (default: spectral)
    --log-level NAME     Logging level (default: INFO)

Place a fingertip over the lens with the torch on and hold still; a reading
is printed about once per second once the first window has filled.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from heart_bpm.aggregate import WeightedBpmAverage
from heart_bpm.camera import FingertipCamera
from heart_bpm.channel import SampleChannel
from heart_bpm.config import STRATEGIES, ConfigurationError, EstimatorConfig
from heart_bpm.estimator import BpmEstimator
from heart_bpm.models import BpmEstimate
from heart_bpm.synthetic import synthetic_readings

logger = logging.getLogger("heart_bpm")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fingertip PPG heart-rate monitor",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--camera-index", type=int, default=0,
                        help="OpenCV VideoCapture index")
    parser.add_argument("--synthetic", type=float, default=None, metavar="BPM",
                        help="Replace the camera with a synthetic source at BPM")
    parser.add_argument("--duration", type=float, default=None,
                        help="Stop after this many seconds")
    parser.add_argument("--window", type=int, default=50,
                        help="Samples per analysis window")
    parser.add_argument("--cutoff", type=int, default=0,
                        help="Samples trimmed from each window edge")
    parser.add_argument("--threshold-cutoff", type=int, default=5,
                        help="Edge samples skipped by the threshold strategy")
    parser.add_argument("--alpha", type=float, default=0.8,
                        help="Session BPM smoothing factor in (0, 1]")
    parser.add_argument("--sample-delay", type=float, default=0.05,
                        help="Minimum seconds between accepted samples")
    parser.add_argument("--strategy", choices=STRATEGIES, default="spectral",
                        help="Frequency estimation strategy")
    parser.add_argument("--log-level", default="INFO",
                        help="Logging level")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = EstimatorConfig(
            window_length=args.window,
            cutoff=args.cutoff,
            threshold_cutoff=args.threshold_cutoff,
            alpha=args.alpha,
            sample_delay=args.sample_delay,
            strategy=args.strategy,
        )
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    average = WeightedBpmAverage()
    finger_present = True

    def on_signal_quality(present: bool) -> None:
        nonlocal finger_present
        if finger_present and not present:
            logger.info("No finger detected – cover the lens and torch.")
        finger_present = present

    def on_bpm(bpm: int, weight: float) -> None:
        logger.debug("bpm=%d weight=%.2f", bpm, weight)
        average.add(BpmEstimate(bpm=bpm, weight=weight))

    estimator = BpmEstimator(
        config,
        on_bpm=on_bpm,
        on_signal_quality=on_signal_quality,
    )
    # Synthetic readings are timestamped on their own clock; accept them all.
    channel = SampleChannel(estimator, min_delay=0.0 if args.synthetic is not None else None)

    logger.info("Starting heart-rate monitor (%s strategy).  Press Ctrl-C to quit.",
                config.strategy)

    started = time.monotonic()
    last_print = float("-inf")

    def handle(readings) -> None:
        nonlocal last_print
        for sample, rgb in readings:
            if not channel.offer(sample, rgb):
                continue
            estimate = estimator.last_estimate
            if sample.timestamp - last_print >= 1.0:
                last_print = sample.timestamp
                ts = time.strftime("%H:%M:%S")
                if estimate is not None:
                    print(f"[{ts}] BPM={estimate.bpm}  weight={estimate.weight:.2f}  "
                          f"avg={average.value}  reliability={average.reliability:.2f}  "
                          f"finger={finger_present}")
                else:
                    print(f"[{ts}] Waiting for signal…  "
                          f"window={estimator.buffer_fill_ratio:.0%}  finger={finger_present}")
            if args.duration is not None and _elapsed(sample, started, args) >= args.duration:
                break

    try:
        if args.synthetic is not None:
            handle(synthetic_readings(
                bpm=args.synthetic,
                duration=args.duration if args.duration is not None else 60.0,
                drift=3.0,
                noise=0.3,
                seed=0,
            ))
        else:
            with FingertipCamera(camera_index=args.camera_index) as camera:
                handle(camera.readings())
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    except RuntimeError as exc:
        logger.error("%s", exc)
        return 1

    return 0


def _elapsed(sample, started: float, args: argparse.Namespace) -> float:
    if args.synthetic is not None:
        return sample.timestamp
    return time.monotonic() - started


def main() -> int:
    return run(parse_args())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
PPG Beat – replay entry point.

Usage
-----
    python main.py [RECORDING] [OPTIONS]

Replays a filtered PPG recording (CSV, see ``ppg_beat.recording``) through
a beat detector sample by sample, exactly as a live sampling loop would,
and logs the heart-rate estimate about once per second of signal time.
Without a RECORDING a synthetic pulse train is generated instead.

Options
-------
    --fs FLOAT             Sample rate of a single-column recording / synthetic signal
    --divisor INT          Hysteresis divisor (0 = default 5)
    --hr-min FLOAT         Lowest accepted heart rate in BPM (default: 40)
    --hr-max FLOAT         Highest accepted heart rate in BPM (default: 240)
    --synthetic-bpm FLOAT  Rate of the synthetic signal (default: 72)
    --duration FLOAT       Length of the synthetic signal in seconds (default: 30)
    --noise FLOAT          Noise std of the synthetic signal (default: 0)
    -v, --verbose          Enable debug logging
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from ppg_beat.batch import beat_intervals_ms, process_samples
from ppg_beat.detector import (
    DEFAULT_HEART_RATE_MAX,
    DEFAULT_HEART_RATE_MIN,
    BeatDetector,
)
from ppg_beat.recording import RecordingError, load_recording
from ppg_beat.synthetic import make_ppg

logger = logging.getLogger("ppg_beat")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay a PPG signal through the real-time beat detector",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("recording", type=Path, nargs="?", default=None,
                        help="CSV recording (timestamp_ms,sample or sample)")
    parser.add_argument("--fs", type=float, default=100.0,
                        help="Sample rate in Hz (single-column files, synthetic signal)")
    parser.add_argument("--divisor", type=int, default=5,
                        help="Hysteresis divisor (0 selects the default)")
    parser.add_argument("--hr-min", type=float, default=DEFAULT_HEART_RATE_MIN,
                        help="Lowest accepted heart rate (BPM)")
    parser.add_argument("--hr-max", type=float, default=DEFAULT_HEART_RATE_MAX,
                        help="Highest accepted heart rate (BPM)")
    parser.add_argument("--synthetic-bpm", type=float, default=72.0,
                        help="Heart rate of the synthetic signal")
    parser.add_argument("--duration", type=float, default=30.0,
                        help="Synthetic signal length in seconds")
    parser.add_argument("--noise", type=float, default=0.0,
                        help="Synthetic signal noise standard deviation")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    return parser.parse_args(argv)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
        datefmt="%H:%M:%S",
    )


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    try:
        detector = BeatDetector(
            args.divisor,
            heart_rate_min=args.hr_min,
            heart_rate_max=args.hr_max,
        )
    except ValueError as e:
        logger.error("Invalid detector settings: %s", e)
        return 1

    if args.recording is not None:
        try:
            timestamps, samples = load_recording(args.recording, sample_rate=args.fs)
        except (OSError, RecordingError) as e:
            logger.error("Cannot load recording: %s", e)
            return 1
    else:
        if args.synthetic_bpm <= 0 or args.fs <= 0:
            logger.error("--synthetic-bpm and --fs must be positive.")
            return 1
        timestamps, samples = make_ppg(
            args.synthetic_bpm, args.duration, args.fs, noise_std=args.noise,
        )
        logger.info(
            "Synthetic signal: %.1f BPM, %.0f s at %.0f Hz",
            args.synthetic_bpm, args.duration, args.fs,
        )

    if samples.size == 0:
        logger.error("Nothing to replay.")
        return 1

    with detector:
        result = process_samples(detector, samples, timestamps)

    # One log line per second of signal time
    next_report = int(timestamps[0])
    for ts, bpm in zip(timestamps.tolist(), result.estimates.tolist()):
        if ts < next_report:
            continue
        if bpm > 0:
            logger.info("t=%8.2fs  BPM=%.1f", ts / 1000.0, bpm)
        else:
            logger.info("t=%8.2fs  Waiting for signal…", ts / 1000.0)
        next_report = ts + 1000

    intervals = beat_intervals_ms(result)
    logger.info("Detected %d beats.", int(result.beats.sum()))
    if intervals.size:
        valid = intervals[intervals > 0]
        if valid.size:
            logger.info(
                "Median beat interval %.0f ms (%.1f BPM), final estimate %.1f BPM",
                float(np.median(valid)),
                60000.0 / float(np.median(valid)),
                float(result.estimates[-1]),
            )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)
    try:
        return run(args)
    except KeyboardInterrupt:
        logger.info("Interrupted.")
        return 1


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())

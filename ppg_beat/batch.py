"""Drive a :class:`BeatDetector` over whole numpy arrays."""

from __future__ import annotations

from typing import NamedTuple

import numpy as np

from .detector import BeatDetector


class BatchResult(NamedTuple):
    estimates: np.ndarray       # float64, one BPM value per input sample
    beats: np.ndarray           # bool, True where the sample was a beat
    beat_times_ms: np.ndarray   # int64 timestamps of the detected beats


def process_samples(
    detector: BeatDetector,
    samples: np.ndarray,
    timestamps_ms: np.ndarray,
) -> BatchResult:
    """
    Feed *samples* through *detector* in order.

    The detector keeps its state afterwards, so consecutive chunks of one
    stream can be processed with consecutive calls.
    """
    samples = np.asarray(samples)
    timestamps_ms = np.asarray(timestamps_ms)
    if samples.ndim != 1 or timestamps_ms.ndim != 1:
        raise ValueError("samples and timestamps_ms must be 1-D")
    if samples.shape != timestamps_ms.shape:
        raise ValueError(
            f"length mismatch: {samples.size} samples, "
            f"{timestamps_ms.size} timestamps"
        )

    estimates = np.empty(samples.size, dtype=np.float64)
    beats = np.zeros(samples.size, dtype=bool)
    for i, (sample, ts) in enumerate(zip(samples.tolist(), timestamps_ms.tolist())):
        estimates[i] = detector.process_sample(sample, ts)
        beats[i] = detector.beat_detected

    return BatchResult(
        estimates=estimates,
        beats=beats,
        beat_times_ms=timestamps_ms[beats].astype(np.int64),
    )


def beat_intervals_ms(result: BatchResult) -> np.ndarray:
    """Intervals between consecutive detected beats."""
    return np.diff(result.beat_times_ms)

"""
Synthetic PPG generators.

Deterministic, seeded signals with a known heart rate, used by the test
suite and by ``main.py --synthetic-bpm`` when no recording is at hand.

Every generator returns ``(timestamps_ms, samples)``: an int64 array of
millisecond timestamps and an int32 array of amplitudes, ready to be fed
to :class:`ppg_beat.detector.BeatDetector` one pair at a time.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np


def _timestamps(n_samples: int, sample_rate: float, start_ms: int) -> np.ndarray:
    t_ms = np.arange(n_samples, dtype=np.float64) * (1000.0 / sample_rate)
    return start_ms + np.round(t_ms).astype(np.int64)


def make_ppg(
    bpm: float,
    duration_sec: float,
    sample_rate: float,
    *,
    amplitude: float = 1000.0,
    offset: float = 0.0,
    noise_std: float = 0.0,
    dicrotic: float = 0.0,
    start_ms: int = 0,
    seed: int = 0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate a filtered-PPG-like pulse train.

    The waveform is a sine at the heart-rate frequency plus, optionally, a
    second harmonic that mimics the dicrotic wave of a real pulse.

    Parameters
    ----------
    bpm:
        Heart rate of the generated signal.
    duration_sec:
        Signal length in seconds.
    sample_rate:
        Samples per second.
    amplitude:
        Peak amplitude of the fundamental.
    offset:
        DC level added to every sample.
    noise_std:
        Standard deviation of additive Gaussian noise (seeded).
    dicrotic:
        Relative amplitude of the second harmonic (0 disables it).
    start_ms:
        Timestamp of the first sample.
    seed:
        Seed of the noise generator.
    """
    if bpm <= 0 or sample_rate <= 0:
        raise ValueError("bpm and sample_rate must be positive")

    n_samples = int(duration_sec * sample_rate)
    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    phase = 2.0 * math.pi * (bpm / 60.0) * t

    signal = amplitude * np.sin(phase)
    if dicrotic:
        # Delayed second harmonic: a shoulder on the falling limb
        signal += dicrotic * amplitude * np.sin(2.0 * phase - math.pi / 2.0)
    if noise_std > 0:
        rng = np.random.default_rng(seed)
        signal += rng.normal(0.0, noise_std, n_samples)
    signal += offset

    samples = np.round(signal).astype(np.int32)
    return _timestamps(n_samples, sample_rate, start_ms), samples


def make_flatline(
    duration_sec: float,
    sample_rate: float,
    *,
    level: int = 0,
    start_ms: int = 0,
) -> Tuple[np.ndarray, np.ndarray]:
    """Constant signal, as seen when the sensor loses contact."""
    n_samples = int(duration_sec * sample_rate)
    samples = np.full(n_samples, level, dtype=np.int32)
    return _timestamps(n_samples, sample_rate, start_ms), samples

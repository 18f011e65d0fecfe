"""
PPG recordings on disk.

A recording is a small CSV file, either

* two columns ``timestamp_ms,sample``, or
* one ``sample`` column, in which case the sample rate must be given and
  timestamps are derived from it.

An optional single header line is skipped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class RecordingError(ValueError):
    """The recording file cannot be used as detector input."""


def _has_header(path: Path) -> bool:
    with open(path, "r", encoding="utf-8") as f:
        first = f.readline().strip()
    if not first:
        return False
    try:
        [float(v) for v in first.split(",")]
    except ValueError:
        return True
    return False


def _as_integers(path: Path, column: np.ndarray, dtype, name: str) -> np.ndarray:
    if not np.all(np.isfinite(column)):
        raise RecordingError(f"{path}: non-finite {name} value")
    if np.any(column != np.trunc(column)):
        raise RecordingError(f"{path}: {name} values must be integers")
    info = np.iinfo(dtype)
    if np.any((column < info.min) | (column >= float(info.max) + 1)):
        raise RecordingError(f"{path}: {name} value out of {np.dtype(dtype).name} range")
    return column.astype(dtype)


def load_recording(
    path: Path | str,
    sample_rate: Optional[float] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Load ``(timestamps_ms, samples)`` from *path*.

    Parameters
    ----------
    path:
        CSV file to read.
    sample_rate:
        Required for single-column files; ignored otherwise.

    Raises
    ------
    RecordingError
        If the file is empty, has an unsupported layout, holds values that
        are not finite integers in range, or its timestamps go backwards.
    """
    path = Path(path)
    skip = 1 if _has_header(path) else 0
    try:
        data = np.loadtxt(path, delimiter=",", skiprows=skip, ndmin=2, dtype=np.float64)
    except ValueError as e:
        raise RecordingError(f"{path}: {e}") from e

    if data.size == 0:
        raise RecordingError(f"{path}: no samples")

    n_cols = data.shape[1]
    if n_cols == 2:
        timestamps = _as_integers(path, data[:, 0], np.int64, "timestamp")
        samples = _as_integers(path, data[:, 1], np.int32, "sample")
    elif n_cols == 1:
        if not sample_rate or sample_rate <= 0:
            raise RecordingError(
                f"{path}: single-column recording needs a positive sample rate"
            )
        samples = _as_integers(path, data[:, 0], np.int32, "sample")
        t_ms = np.arange(samples.size, dtype=np.float64) * (1000.0 / sample_rate)
        timestamps = np.round(t_ms).astype(np.int64)
    else:
        raise RecordingError(f"{path}: expected 1 or 2 columns, found {n_cols}")

    if np.any(np.diff(timestamps) < 0):
        raise RecordingError(f"{path}: timestamps must not decrease")

    logger.info(
        "Loaded %d samples from %s (%.1f s)",
        samples.size, path, (timestamps[-1] - timestamps[0]) / 1000.0,
    )
    return timestamps, samples


def save_recording(
    path: Path | str,
    timestamps_ms: np.ndarray,
    samples: np.ndarray,
) -> None:
    """Write a two-column recording with a header line."""
    timestamps_ms = np.asarray(timestamps_ms, dtype=np.int64)
    samples = np.asarray(samples, dtype=np.int64)
    if timestamps_ms.shape != samples.shape:
        raise ValueError("timestamps_ms and samples must have the same length")
    np.savetxt(
        Path(path),
        np.column_stack([timestamps_ms, samples]),
        delimiter=",",
        fmt="%d",
        header="timestamp_ms,sample",
        comments="",
    )

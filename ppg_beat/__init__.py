"""
PPG Beat — real-time heart-rate estimation from filtered PPG samples.
Feed one sample and its millisecond timestamp at a time; the detector
confirms peaks and troughs with an adaptive hysteresis and reports the
heart rate from the interval between falling-edge threshold crossings.
"""

from .detector import (
    ERROR,
    NO_ESTIMATE,
    BeatDetector,
    ExtremumPhase,
    create,
    destroy,
    process_sample,
    reset,
)

__all__ = [
    "BeatDetector",
    "ExtremumPhase",
    "NO_ESTIMATE",
    "ERROR",
    "create",
    "destroy",
    "reset",
    "process_sample",
]

__version__ = "0.1.0"

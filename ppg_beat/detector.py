"""
Sample-by-sample PPG beat detector.

Algorithm
---------
1. Track a local maximum and a local minimum with two small state machines
   (``IDLE → SEARCHING → FOUND``).  An extremum is confirmed once the signal
   has moved past it by at least the current hysteresis margin.
2. When both extrema are confirmed, latch a beat threshold half-way between
   them.  A falling-edge crossing of that threshold is a heartbeat.
3. On every beat the hysteresis margin is re-derived from the max–min swing
   of the cycle that just ended, so it follows the signal amplitude.
4. The heart rate is 60000 / (interval between two consecutive beats in ms),
   accepted only inside the configured physiological band.

A detector that sees no beat for ``STALE_SIGNAL_TIMEOUT_MS`` drops its cycle
state and starts over, so it recovers on its own after signal loss.

The input is expected to be band-limited already; this module does no
filtering of its own.
"""

from __future__ import annotations

import enum
import logging
from typing import NamedTuple, Optional

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60_000

DEFAULT_HYSTERESIS_DIVISOR = 5
DEFAULT_HEART_RATE_MIN = 40.0
DEFAULT_HEART_RATE_MAX = 240.0

STALE_SIGNAL_TIMEOUT_MS = 2000

# Sentinels returned by process_sample()
NO_ESTIMATE = 0.0
ERROR = -1.0


def _trunc_div(num: int, den: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(num) // abs(den)
    return q if (num < 0) == (den < 0) else -q


class ExtremumPhase(enum.Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    FOUND = "found"


class ExtremumSnapshot(NamedTuple):
    value: int
    phase: ExtremumPhase


class ExtremumTracker:
    """
    Confirms a single local extremum of the sample stream.

    Parameters
    ----------
    direction:
        ``+1`` to track a maximum, ``-1`` to track a minimum.
    """

    def __init__(self, direction: int) -> None:
        self.direction = direction
        self.value = 0
        self.phase = ExtremumPhase.IDLE

    def update(self, sample: int, hysteresis: int) -> None:
        if self.phase is ExtremumPhase.IDLE:
            self.value = sample
            self.phase = ExtremumPhase.SEARCHING
        elif self.phase is ExtremumPhase.SEARCHING:
            # Distance travelled back from the candidate, positive for both
            # directions.
            retreat = (self.value - sample) * self.direction
            if retreat < 0:
                self.value = sample
            elif retreat >= hysteresis:
                self.phase = ExtremumPhase.FOUND

    @property
    def found(self) -> bool:
        return self.phase is ExtremumPhase.FOUND

    def reset(self) -> None:
        self.value = 0
        self.phase = ExtremumPhase.IDLE

    def snapshot(self) -> ExtremumSnapshot:
        return ExtremumSnapshot(self.value, self.phase)


class BeatDetector:
    """
    Real-time heart-rate estimator for one PPG stream.

    Parameters
    ----------
    hysteresis_divisor:
        Fraction of the previous cycle's max–min swing used as the
        hysteresis margin (``swing / divisor``).  ``0`` selects the
        default of 5.
    heart_rate_min:
        Lowest accepted instantaneous rate in BPM (default 40).
    heart_rate_max:
        Highest accepted instantaneous rate in BPM (default 240).

    Notes
    -----
    The hysteresis margin is zero until the first beat after construction,
    reset or a stale-signal timeout, so the first cycle confirms an extremum
    as soon as the signal stops moving away from it.

    Timestamps are plain Python integers and are never wrapped.  A caller
    feeding a 32-bit millisecond counter must unwrap it (or reset the
    detector) before it rolls over after ~49.7 days; a backwards step is
    treated as an invalid beat interval rather than a rate.
    """

    def __init__(
        self,
        hysteresis_divisor: int = DEFAULT_HYSTERESIS_DIVISOR,
        *,
        heart_rate_min: float = DEFAULT_HEART_RATE_MIN,
        heart_rate_max: float = DEFAULT_HEART_RATE_MAX,
    ) -> None:
        if heart_rate_min > heart_rate_max:
            raise ValueError(
                f"heart_rate_min ({heart_rate_min}) exceeds "
                f"heart_rate_max ({heart_rate_max})"
            )
        if not hysteresis_divisor:
            hysteresis_divisor = DEFAULT_HYSTERESIS_DIVISOR

        self._hysteresis_divisor = int(hysteresis_divisor)
        self._heart_rate_min = float(heart_rate_min)
        self._heart_rate_max = float(heart_rate_max)

        self._max = ExtremumTracker(+1)
        self._min = ExtremumTracker(-1)
        self._closed = False
        self.reset()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Return to the just-created state, keeping the configuration."""
        self._reset_cycle()
        self._previous_sample = 0
        self._hysteresis = 0
        self._previous_beat_ts = 0
        self._heart_rate = 0.0
        self._beat_detected = False

    def close(self) -> None:
        """Release the detector.  Further samples yield ``ERROR``."""
        self._closed = True

    def __enter__(self) -> "BeatDetector":
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process_sample(self, sample: int, timestamp_ms: int) -> float:
        """
        Feed one sample and return the current BPM estimate.

        Parameters
        ----------
        sample:
            Filtered PPG amplitude on an arbitrary but consistent integer
            scale.
        timestamp_ms:
            Millisecond time of *sample*; must not go backwards.

        Returns
        -------
        bpm:
            The last accepted heart rate, ``NO_ESTIMATE`` (0.0) when no rate
            is known yet or this call produced the first beat of a run, or
            ``ERROR`` (-1.0) if the detector has been closed.
        """
        if self._closed:
            return ERROR

        sample = int(sample)
        timestamp_ms = int(timestamp_ms)

        self._min.update(sample, self._hysteresis)
        self._max.update(sample, self._hysteresis)

        self._beat_detected = self._crossed_threshold(sample)
        if self._beat_detected:
            self._hysteresis = _trunc_div(
                self._max.value - self._min.value, self._hysteresis_divisor
            )
            self._reset_cycle()
            return self._register_beat(timestamp_ms)

        self._previous_sample = sample

        if (
            self._previous_beat_ts
            and timestamp_ms - self._previous_beat_ts > STALE_SIGNAL_TIMEOUT_MS
        ):
            logger.debug(
                "No beat for %d ms – resetting detector state",
                timestamp_ms - self._previous_beat_ts,
            )
            self._reset_cycle()
            self._hysteresis = 0
            self._previous_beat_ts = 0

        return self._heart_rate

    # ------------------------------------------------------------------
    # State inspection
    # ------------------------------------------------------------------

    @property
    def hysteresis_divisor(self) -> int:
        return self._hysteresis_divisor

    @property
    def heart_rate_min(self) -> float:
        return self._heart_rate_min

    @property
    def heart_rate_max(self) -> float:
        return self._heart_rate_max

    @property
    def heart_rate(self) -> float:
        """Last accepted BPM value (0.0 until the first valid interval)."""
        return self._heart_rate

    @property
    def hysteresis(self) -> int:
        return self._hysteresis

    @property
    def beat_threshold(self) -> Optional[int]:
        """Latched threshold of the current cycle, or *None* if not set."""
        return self._beat_threshold

    @property
    def previous_beat_timestamp(self) -> int:
        """Timestamp of the last beat; 0 when there is none."""
        return self._previous_beat_ts

    @property
    def previous_sample(self) -> int:
        return self._previous_sample

    @property
    def local_max(self) -> ExtremumSnapshot:
        return self._max.snapshot()

    @property
    def local_min(self) -> ExtremumSnapshot:
        return self._min.snapshot()

    @property
    def beat_detected(self) -> bool:
        """*True* if the most recent ``process_sample`` call was a beat."""
        return self._beat_detected

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _reset_cycle(self) -> None:
        # max and min always start a new cycle together
        self._max.reset()
        self._min.reset()
        self._beat_threshold = None

    def _crossed_threshold(self, sample: int) -> bool:
        if not (self._max.found and self._min.found):
            return False
        if self._beat_threshold is None:
            self._beat_threshold = _trunc_div(self._max.value + self._min.value, 2)
        return (
            sample < self._beat_threshold
            and self._previous_sample >= self._beat_threshold
        )

    def _register_beat(self, timestamp_ms: int) -> float:
        if not self._previous_beat_ts:
            self._previous_beat_ts = timestamp_ms
            return NO_ESTIMATE

        period_ms = timestamp_ms - self._previous_beat_ts
        self._previous_beat_ts = timestamp_ms

        if period_ms <= 0:
            logger.debug("Ignoring non-positive beat interval (%d ms)", period_ms)
            return self._heart_rate

        bpm = MS_PER_MINUTE / period_ms
        if self._heart_rate_min <= bpm <= self._heart_rate_max:
            self._heart_rate = bpm
        else:
            logger.debug(
                "Rejected %.1f BPM (outside %.0f–%.0f)",
                bpm, self._heart_rate_min, self._heart_rate_max,
            )
        return self._heart_rate


# ---------------------------------------------------------------------------
# Handle-style API
# ---------------------------------------------------------------------------

def create(hysteresis_divisor: int = 0) -> Optional[BeatDetector]:
    """
    Build a detector with the default rate bounds.

    Returns *None* if the detector could not be allocated.
    """
    try:
        return BeatDetector(hysteresis_divisor)
    except MemoryError:
        logger.error("Could not allocate beat detector")
        return None


def destroy(handle: Optional[BeatDetector]) -> None:
    """Release *handle*; a *None* handle is ignored."""
    if handle is None:
        return
    handle.close()


def reset(handle: Optional[BeatDetector]) -> None:
    """Reset *handle* to its just-created state; a *None* handle is ignored."""
    if handle is None:
        return
    handle.reset()


def process_sample(
    handle: Optional[BeatDetector], sample: int, timestamp_ms: int
) -> float:
    """Feed one sample through *handle*; returns ``ERROR`` without a handle."""
    if handle is None:
        return ERROR
    return handle.process_sample(sample, timestamp_ms)

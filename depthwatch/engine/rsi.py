"""
Relative Strength Index with Wilder smoothing.

Two states:
- UNSEEDED: collecting the first `periods + 1` samples; update() is rejected
- SEEDED: every new sample updates the running averages in O(1)

The seed uses a fixed `periods` denominator: a zero difference adds to neither
the gain nor the loss sum but still counts towards the average.
"""

from __future__ import annotations

import logging
import math
import threading
from enum import Enum
from typing import Sequence

import numpy as np

from ..errors import IndicatorStateError
from ..types import IndicatorReading, Signal

logger = logging.getLogger(__name__)

DEFAULT_PERIODS = 14
OVERBOUGHT = 70.0
OVERSOLD = 30.0


class IndicatorStatus(str, Enum):
    UNSEEDED = "unseeded"
    SEEDED = "seeded"


def rsi_value(avg_gain: float, avg_loss: float) -> float:
    """RSI from smoothed averages; saturates at 100 when there are no losses."""
    if avg_loss == 0:
        return 100.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)


def signal_for(value: float) -> Signal:
    """Map an RSI value to a signal. Both thresholds themselves are HOLD."""
    if value > OVERBOUGHT:
        return Signal.SELL
    if value < OVERSOLD:
        return Signal.BUY
    return Signal.HOLD


class RSIEngine:
    """
    Streaming RSI over a price sample series.

    Usage:
        rsi = RSIEngine(periods=14)
        rsi.seed(first_15_closes)
        reading = rsi.update(next_close)

    Or, when samples arrive one at a time, push() buffers until the seed
    window is full and seeds automatically.

    Thread-safety: all state changes hold self._lock.
    """

    __slots__ = (
        'periods', 'status', 'prev_sample', 'avg_gain', 'avg_loss',
        '_pending', '_last', '_lock',
    )

    def __init__(self, periods: int = DEFAULT_PERIODS) -> None:
        if periods < 1:
            raise ValueError(f"periods must be >= 1, got {periods}")

        self.periods = periods
        self.status = IndicatorStatus.UNSEEDED

        self.prev_sample: float = 0.0
        self.avg_gain: float = 0.0
        self.avg_loss: float = 0.0

        # Samples collected by push() before seeding
        self._pending: list[float] = []
        self._last: IndicatorReading | None = None
        self._lock = threading.Lock()

    @property
    def seeded(self) -> bool:
        return self.status is IndicatorStatus.SEEDED

    @property
    def last_reading(self) -> IndicatorReading | None:
        """Most recent reading, None until seeded."""
        return self._last

    @property
    def samples_needed(self) -> int:
        """How many more samples push() needs before the RSI seeds."""
        if self.seeded:
            return 0
        return self.periods + 1 - len(self._pending)

    def _reading(self) -> IndicatorReading:
        value = rsi_value(self.avg_gain, self.avg_loss)
        self._last = IndicatorReading(value, signal_for(value))
        return self._last

    def _seed_locked(self, window: Sequence[float]) -> IndicatorReading:
        if self.seeded:
            raise IndicatorStateError("RSI is already seeded")
        if len(window) != self.periods + 1:
            raise ValueError(
                f"seed window needs {self.periods + 1} samples, got {len(window)}"
            )

        samples = np.asarray(window, dtype=np.float64)
        if not np.isfinite(samples).all():
            raise ValueError("seed window contains non-finite samples")

        diffs = np.diff(samples)
        gain_sum = float(diffs[diffs > 0].sum())
        loss_sum = float(-diffs[diffs < 0].sum())

        self.avg_gain = gain_sum / self.periods
        self.avg_loss = loss_sum / self.periods
        self.prev_sample = float(window[-1])
        self.status = IndicatorStatus.SEEDED
        self._pending.clear()

        reading = self._reading()
        logger.info(
            "RSI(%d) seeded: avg_gain=%.6f avg_loss=%.6f value=%.2f",
            self.periods, self.avg_gain, self.avg_loss, reading.value,
        )
        return reading

    def _update_locked(self, sample: float) -> IndicatorReading:
        if not self.seeded:
            raise IndicatorStateError("RSI update before seeding")
        if not math.isfinite(sample):
            raise ValueError(f"sample must be finite, got {sample!r}")

        diff = sample - self.prev_sample
        gain = diff if diff > 0 else 0.0
        loss = -diff if diff < 0 else 0.0

        n = self.periods
        self.avg_gain = (self.avg_gain * (n - 1) + gain) / n
        self.avg_loss = (self.avg_loss * (n - 1) + loss) / n
        self.prev_sample = sample
        return self._reading()

    def seed(self, window: Sequence[float]) -> IndicatorReading:
        """
        Seed from exactly `periods + 1` consecutive samples.

        Transitions UNSEEDED -> SEEDED; may only happen once.
        """
        with self._lock:
            return self._seed_locked(window)

    def update(self, sample: float) -> IndicatorReading:
        """Fold one new sample into the averages. Requires a seeded engine."""
        with self._lock:
            return self._update_locked(float(sample))

    def push(self, sample: float) -> IndicatorReading | None:
        """
        Streaming entry point: buffer until the seed window is full, then
        seed; afterwards every call is an update(). Returns None while
        still unseeded.
        """
        with self._lock:
            if self.seeded:
                return self._update_locked(float(sample))

            sample = float(sample)
            if not math.isfinite(sample):
                raise ValueError(f"sample must be finite, got {sample!r}")
            self._pending.append(sample)
            if len(self._pending) < self.periods + 1:
                return None
            return self._seed_locked(list(self._pending))

"""
Data types for depthwatch.

Performance notes:
- Using NamedTuple for immutable, memory-efficient structures
- Enums carry their wire/display value so they print cleanly in the UI
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class Side(str, Enum):
    """Order book side."""
    ASK = "ask"
    BID = "bid"


class Signal(str, Enum):
    """Discrete trading recommendation derived from the RSI value."""
    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"


class PriceLevel(NamedTuple):
    """Aggregate resting volume at one price on one side."""
    price: float
    volume: float  # always > 0 while the level exists


class DeltaEvent(NamedTuple):
    """Incremental depth update: new absolute volume at a price (0 = remove)."""
    side: Side
    price: float
    volume: float


class SampleEvent(NamedTuple):
    """Scalar price sample for the indicator (last traded price)."""
    price: float
    timestamp_ms: int


class IndicatorReading(NamedTuple):
    """RSI output: value in [0, 100] and the signal it maps to."""
    value: float
    signal: Signal


class DepthSnapshot(NamedTuple):
    """
    Complete view for UI rendering.

    Built by MarketState.tick() on every render frame (~60 FPS).
    """
    symbol: str
    asks: list[PriceLevel]    # Ascending (best ask first)
    bids: list[PriceLevel]    # Descending (best bid first)
    best_bid: float
    best_ask: float
    mid_price: float
    spread: float
    last_price: float | None
    reading: IndicatorReading | None  # None until the RSI is seeded
    samples_needed: int       # Samples still missing before the RSI seeds
    connected: bool
    updates_per_sec: float
    timestamp_ms: int

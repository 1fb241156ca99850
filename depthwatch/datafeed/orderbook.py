"""
Price-level order book for a single instrument.

HOT PATH: apply_delta() runs for every price level in every depth message
(100s-1000s per second on active symbols). snapshot() runs on every render
frame (~60 FPS).

Performance strategy:
1. One SortedDict per side: O(log n) insert/update/remove, always ordered
2. Bid side keyed by negated price so both sides iterate best-first
3. snapshot() walks only the first `depth` items, no per-frame re-sort
4. One lock per book; a batch takes the lock once, not once per delta
"""

from __future__ import annotations

import logging
import math
import threading
import time
from itertools import islice
from operator import neg
from typing import Iterable

from sortedcontainers import SortedDict

from ..errors import InvariantViolation
from ..types import DeltaEvent, PriceLevel, Side

logger = logging.getLogger(__name__)


class OrderBook:
    """
    Local order book maintained from incremental depth deltas.

    A delta carries the new absolute volume at a price; volume 0 removes the
    level. Crossed books (best bid >= best ask) are tolerated.

    Thread-safety: every mutation and every snapshot pass holds self._lock, so
    the ingestion and render activities may live on different threads.
    """

    __slots__ = (
        'symbol', 'strict', '_asks', '_bids', '_lock',
        '_update_count', '_update_start_time',
    )

    def __init__(self, symbol: str = "", strict: bool = False) -> None:
        self.symbol = symbol
        # strict=True raises on invariant violations instead of logging them
        self.strict = strict

        # price -> volume, iterated best-first
        self._asks: SortedDict = SortedDict()      # ascending
        self._bids: SortedDict = SortedDict(neg)   # descending
        self._lock = threading.Lock()

        # Performance tracking
        self._update_count: int = 0
        self._update_start_time: float = time.perf_counter()

    def _side(self, side: Side) -> SortedDict:
        if side is Side.ASK:
            return self._asks
        if side is Side.BID:
            return self._bids
        raise ValueError(f"unknown side: {side!r}")

    def _apply_locked(self, side: Side, price: float, volume: float) -> None:
        if volume < 0 or math.isnan(volume):
            raise ValueError(f"volume must be >= 0, got {volume!r}")
        if math.isnan(price):
            raise ValueError("price must not be NaN")

        levels = self._side(side)
        if volume == 0:
            levels.pop(price, None)
        else:
            levels[price] = volume
        self._update_count += 1

    def apply_delta(self, side: Side, price: float, volume: float) -> None:
        """
        Apply one delta. Volume 0 removes the level (no-op if absent),
        anything else inserts or overwrites it.

        HOT PATH.
        """
        with self._lock:
            self._apply_locked(side, price, volume)

    def apply_deltas(self, deltas: Iterable[DeltaEvent]) -> int:
        """
        Apply a batch of deltas under a single lock acquisition.

        Every delta is applied on its own merits: neither a removal nor an
        invalid delta ends the batch early. Invalid deltas are logged and
        skipped. Returns the number of deltas applied.
        """
        applied = 0
        with self._lock:
            for delta in deltas:
                try:
                    self._apply_locked(delta.side, delta.price, delta.volume)
                except ValueError as e:
                    logger.warning("Skipping invalid delta %r: %s", delta, e)
                    continue
                applied += 1
        return applied

    def snapshot(self, side: Side, depth: int) -> list[PriceLevel]:
        """
        Top `depth` levels of `side`, best first.

        Asks ascending, bids descending. Returns min(depth, level_count)
        entries, never padded.
        """
        if depth < 0:
            raise ValueError(f"depth must be >= 0, got {depth}")

        with self._lock:
            levels = self._side(side)
            result = [PriceLevel(p, v) for p, v in islice(levels.items(), depth)]
            count = len(levels)

        self._check_snapshot(side, depth, count, result)
        return result

    def _check_snapshot(
        self,
        side: Side,
        depth: int,
        count: int,
        result: list[PriceLevel],
    ) -> None:
        problem = None
        if len(result) != min(depth, count):
            problem = f"snapshot length {len(result)} != min({depth}, {count})"
        else:
            for prev, cur in zip(result, result[1:]):
                in_order = prev.price < cur.price if side is Side.ASK else prev.price > cur.price
                if not in_order:
                    problem = f"{side.value} levels out of order: {prev.price} then {cur.price}"
                    break
            else:
                for level in result:
                    if not level.volume > 0:
                        problem = f"non-positive volume stored at {level.price}"
                        break

        if problem is None:
            return
        if self.strict:
            raise InvariantViolation(problem)
        logger.error("Order book invariant violated (%s): %s", self.symbol, problem)

    def level_count(self, side: Side) -> int:
        """Number of levels currently held on `side`."""
        with self._lock:
            return len(self._side(side))

    @property
    def best_bid(self) -> float:
        """Best bid price. Returns 0.0 if no bids."""
        with self._lock:
            return self._bids.peekitem(0)[0] if self._bids else 0.0

    @property
    def best_ask(self) -> float:
        """Best ask price. Returns 0.0 if no asks."""
        with self._lock:
            return self._asks.peekitem(0)[0] if self._asks else 0.0

    def top_of_book(self) -> tuple[float, float]:
        """(best_bid, best_ask) read under one lock; 0.0 for an empty side."""
        with self._lock:
            bb = self._bids.peekitem(0)[0] if self._bids else 0.0
            ba = self._asks.peekitem(0)[0] if self._asks else 0.0
        return bb, ba

    @property
    def mid_price(self) -> float:
        """Mid price. Returns 0.0 if no book."""
        bb, ba = self.top_of_book()
        if bb > 0 and ba > 0:
            return (bb + ba) / 2.0
        return bb or ba

    @property
    def spread(self) -> float:
        """best_ask - best_bid, 0.0 unless both sides are populated. May be negative."""
        bb, ba = self.top_of_book()
        if bb > 0 and ba > 0:
            return ba - bb
        return 0.0

    def clear(self) -> None:
        """Drop every level on both sides."""
        with self._lock:
            self._asks.clear()
            self._bids.clear()

    @property
    def update_count(self) -> int:
        """Deltas applied since the last perf counter reset."""
        return self._update_count

    def get_updates_per_sec(self) -> float:
        """Return delta application rate for performance monitoring."""
        elapsed = time.perf_counter() - self._update_start_time
        if elapsed < 0.001:
            return 0.0
        return self._update_count / elapsed

    def reset_perf_counters(self) -> None:
        """Reset performance counters."""
        self._update_count = 0
        self._update_start_time = time.perf_counter()

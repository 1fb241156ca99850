"""
Shared market state: the one handle both activities hold.

Ingestion (BinanceClient) writes deltas and price samples into it; the render
tick (UI or headless loop) calls tick() to pull a DepthSnapshot. The book and
the RSI engine each guard themselves; this object guards its own scalars.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Iterable

from ..datafeed.orderbook import OrderBook
from ..types import DeltaEvent, DepthSnapshot, SampleEvent, Side
from .rsi import RSIEngine

logger = logging.getLogger(__name__)


class MarketState:
    """
    Order book + RSI + latest trade price for one symbol.

    The RSI is fed from tick(), at most once per `sample_interval_sec`, with
    the latest traded price. Feeding on trade arrival instead would tie the
    indicator's period to trade frequency.
    """

    def __init__(
        self,
        symbol: str,
        depth: int = 20,
        rsi_periods: int = 14,
        sample_interval_sec: float = 1.0,
        strict: bool = False,
    ) -> None:
        self.symbol = symbol
        self.depth = depth
        self.sample_interval_sec = sample_interval_sec

        self.book = OrderBook(symbol, strict=strict)
        self.rsi = RSIEngine(rsi_periods)

        self._lock = threading.Lock()
        self._last_price: float | None = None
        self._last_price_ts: int = 0
        self._last_sample_time: float | None = None
        self._connected: bool = False
        self._decode_errors: int = 0

        # Rolling update rate
        self._rate_calc_time: float = time.perf_counter()
        self._update_count_last: int = 0
        self._updates_per_sec: float = 0.0

    # -- ingestion side -------------------------------------------------

    def apply_deltas(self, deltas: Iterable[DeltaEvent]) -> int:
        return self.book.apply_deltas(deltas)

    def record_sample(self, sample: SampleEvent) -> None:
        """Remember the latest traded price; older samples are ignored."""
        with self._lock:
            if sample.timestamp_ms < self._last_price_ts:
                return
            self._last_price = sample.price
            self._last_price_ts = sample.timestamp_ms

    def record_decode_errors(self, count: int) -> None:
        with self._lock:
            self._decode_errors += count

    def set_connected(self, connected: bool) -> None:
        with self._lock:
            self._connected = connected

    @property
    def connected(self) -> bool:
        with self._lock:
            return self._connected

    @property
    def decode_errors(self) -> int:
        with self._lock:
            return self._decode_errors

    @property
    def last_price(self) -> float | None:
        with self._lock:
            return self._last_price

    # -- render side ----------------------------------------------------

    def _maybe_sample(self, now: float) -> None:
        with self._lock:
            price = self._last_price
            due = (
                self._last_sample_time is None
                or now - self._last_sample_time >= self.sample_interval_sec
            )
            if price is None or not due:
                return
            self._last_sample_time = now

        reading = self.rsi.push(price)
        if reading is not None:
            logger.debug("RSI sample %.2f -> %.2f (%s)", price, reading.value, reading.signal.value)

    def _update_rate(self, now: float) -> float:
        elapsed = now - self._rate_calc_time
        if elapsed >= 1.0:
            count = self.book.update_count
            if count < self._update_count_last:
                # Counters were reset
                self._update_count_last = 0
            self._updates_per_sec = (count - self._update_count_last) / elapsed
            self._update_count_last = count
            self._rate_calc_time = now
        return self._updates_per_sec

    def tick(self, now: float | None = None) -> DepthSnapshot:
        """
        One render frame: feed the RSI if a sample is due, then take both
        book snapshots.

        Never blocks on I/O.
        """
        if now is None:
            now = time.perf_counter()

        self._maybe_sample(now)

        asks = self.book.snapshot(Side.ASK, self.depth)
        bids = self.book.snapshot(Side.BID, self.depth)

        best_ask = asks[0].price if asks else 0.0
        best_bid = bids[0].price if bids else 0.0
        if best_bid > 0 and best_ask > 0:
            mid = (best_bid + best_ask) / 2.0
            spread = best_ask - best_bid
        else:
            mid = best_bid or best_ask
            spread = 0.0

        with self._lock:
            last_price = self._last_price
            connected = self._connected

        return DepthSnapshot(
            symbol=self.symbol,
            asks=asks,
            bids=bids,
            best_bid=best_bid,
            best_ask=best_ask,
            mid_price=mid,
            spread=spread,
            last_price=last_price,
            reading=self.rsi.last_reading,
            samples_needed=self.rsi.samples_needed,
            connected=connected,
            updates_per_sec=self._update_rate(now),
            timestamp_ms=int(time.time() * 1000),
        )

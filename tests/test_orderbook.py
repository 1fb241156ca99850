"""
Tests for the price-level order book.

Tests cover:
- Delta application (insert, overwrite, remove, idempotence)
- Batch independence
- Snapshot ordering and depth bounds
- Invariant checking and thread safety
"""

import random
import threading

import pytest

from depthwatch.datafeed.orderbook import OrderBook
from depthwatch.errors import InvariantViolation
from depthwatch.types import DeltaEvent, PriceLevel, Side


@pytest.fixture
def book():
    return OrderBook("BTCUSDT", strict=True)


# =============================================================================
# DELTA APPLICATION
# =============================================================================


class TestApplyDelta:
    """Single delta semantics."""

    def test_insert_then_remove_leaves_side_empty(self, book):
        """Scenario A: ask (100.00, 1.0) then (100.00, 0)."""
        book.apply_delta(Side.ASK, 100.00, 1.0)
        book.apply_delta(Side.ASK, 100.00, 0)

        assert book.snapshot(Side.ASK, 10) == []

    def test_overwrite_replaces_volume(self, book):
        book.apply_delta(Side.BID, 50.0, 1.0)
        book.apply_delta(Side.BID, 50.0, 4.5)

        assert book.snapshot(Side.BID, 10) == [PriceLevel(50.0, 4.5)]

    def test_identical_delta_is_idempotent(self, book):
        book.apply_delta(Side.ASK, 101.5, 2.0)
        once = book.snapshot(Side.ASK, 10)
        book.apply_delta(Side.ASK, 101.5, 2.0)

        assert book.snapshot(Side.ASK, 10) == once == [PriceLevel(101.5, 2.0)]
        assert book.level_count(Side.ASK) == 1

    def test_remove_absent_level_is_noop(self, book):
        book.apply_delta(Side.BID, 99.0, 1.0)
        book.apply_delta(Side.BID, 42.0, 0)

        assert book.snapshot(Side.BID, 10) == [PriceLevel(99.0, 1.0)]

    def test_sides_are_independent(self, book):
        book.apply_delta(Side.ASK, 100.0, 1.0)
        book.apply_delta(Side.BID, 100.0, 3.0)
        book.apply_delta(Side.ASK, 100.0, 0)

        assert book.snapshot(Side.ASK, 10) == []
        assert book.snapshot(Side.BID, 10) == [PriceLevel(100.0, 3.0)]

    def test_removed_price_stays_gone_until_reinserted(self, book):
        book.apply_delta(Side.ASK, 100.0, 1.0)
        book.apply_delta(Side.ASK, 100.0, 0)
        for price in (100.5, 101.0, 99.5):
            book.apply_delta(Side.ASK, price, 1.0)

        assert 100.0 not in [l.price for l in book.snapshot(Side.ASK, 10)]

        book.apply_delta(Side.ASK, 100.0, 7.0)
        assert PriceLevel(100.0, 7.0) in book.snapshot(Side.ASK, 10)

    def test_negative_volume_rejected(self, book):
        with pytest.raises(ValueError):
            book.apply_delta(Side.ASK, 100.0, -1.0)
        assert book.level_count(Side.ASK) == 0

    def test_nan_price_rejected(self, book):
        with pytest.raises(ValueError):
            book.apply_delta(Side.BID, float("nan"), 1.0)

    def test_crossed_book_tolerated(self, book):
        book.apply_delta(Side.BID, 101.0, 1.0)
        book.apply_delta(Side.ASK, 100.0, 1.0)

        assert book.best_bid == 101.0
        assert book.best_ask == 100.0
        assert book.spread == pytest.approx(-1.0)


class TestApplyDeltas:
    """Batch semantics."""

    def test_removal_does_not_stop_batch(self, book):
        book.apply_delta(Side.ASK, 100.0, 1.0)
        batch = [
            DeltaEvent(Side.ASK, 100.0, 0),
            DeltaEvent(Side.ASK, 101.0, 2.0),
            DeltaEvent(Side.ASK, 102.0, 3.0),
            DeltaEvent(Side.BID, 99.0, 0),
            DeltaEvent(Side.BID, 98.0, 4.0),
        ]

        assert book.apply_deltas(batch) == 5
        assert book.snapshot(Side.ASK, 10) == [PriceLevel(101.0, 2.0), PriceLevel(102.0, 3.0)]
        assert book.snapshot(Side.BID, 10) == [PriceLevel(98.0, 4.0)]

    def test_invalid_delta_does_not_stop_batch(self, book, caplog):
        batch = [
            DeltaEvent(Side.ASK, 100.0, 1.0),
            DeltaEvent(Side.ASK, 101.0, -1.0),
            DeltaEvent(Side.ASK, float("nan"), 1.0),
            DeltaEvent(Side.ASK, 102.0, 2.0),
        ]

        assert book.apply_deltas(batch) == 2
        assert book.snapshot(Side.ASK, 10) == [PriceLevel(100.0, 1.0), PriceLevel(102.0, 2.0)]
        assert book.level_count(Side.ASK) == 2
        assert "Skipping invalid delta" in caplog.text

    def test_generator_input(self, book):
        applied = book.apply_deltas(DeltaEvent(Side.BID, 90.0 + i, 1.0) for i in range(3))

        assert applied == 3
        assert book.level_count(Side.BID) == 3

    def test_counts_updates(self, book):
        book.apply_deltas([DeltaEvent(Side.ASK, 1.0, 1.0), DeltaEvent(Side.ASK, 1.0, 0)])
        assert book.update_count == 2

        book.reset_perf_counters()
        assert book.update_count == 0


# =============================================================================
# SNAPSHOTS
# =============================================================================


class TestSnapshot:
    """Snapshot ordering and depth."""

    def test_bid_top_two(self, book):
        """Scenario B: bids (99, 2), (98, 3), (97, 1) -> top 2."""
        book.apply_delta(Side.BID, 99, 2)
        book.apply_delta(Side.BID, 98, 3)
        book.apply_delta(Side.BID, 97, 1)

        assert book.snapshot(Side.BID, 2) == [PriceLevel(99, 2), PriceLevel(98, 3)]

    def test_ask_ascending(self, book):
        for price in (103.0, 100.0, 102.0, 101.0):
            book.apply_delta(Side.ASK, price, 1.0)

        prices = [l.price for l in book.snapshot(Side.ASK, 10)]
        assert prices == [100.0, 101.0, 102.0, 103.0]

    def test_random_stream_keeps_order_and_bounds(self, book):
        rng = random.Random(7)
        for _ in range(2000):
            side = rng.choice((Side.ASK, Side.BID))
            price = round(rng.uniform(90, 110), 1)
            volume = 0.0 if rng.random() < 0.3 else round(rng.uniform(0.1, 5), 3)
            book.apply_delta(side, price, volume)

        for depth in (0, 1, 5, 50, 10_000):
            asks = book.snapshot(Side.ASK, depth)
            bids = book.snapshot(Side.BID, depth)

            assert len(asks) == min(depth, book.level_count(Side.ASK))
            assert len(bids) == min(depth, book.level_count(Side.BID))
            assert all(a.price <= b.price for a, b in zip(asks, asks[1:]))
            assert all(a.price >= b.price for a, b in zip(bids, bids[1:]))
            assert all(l.volume > 0 for l in asks + bids)

    def test_fewer_levels_than_depth_not_padded(self, book):
        book.apply_delta(Side.ASK, 100.0, 1.0)

        assert book.snapshot(Side.ASK, 25) == [PriceLevel(100.0, 1.0)]

    def test_zero_depth(self, book):
        book.apply_delta(Side.ASK, 100.0, 1.0)

        assert book.snapshot(Side.ASK, 0) == []

    def test_negative_depth_rejected(self, book):
        with pytest.raises(ValueError):
            book.snapshot(Side.BID, -1)

    def test_top_of_book_helpers(self, book):
        assert book.best_bid == 0.0
        assert book.best_ask == 0.0
        assert book.mid_price == 0.0

        book.apply_delta(Side.BID, 99.0, 1.0)
        assert book.mid_price == 99.0
        assert book.spread == 0.0

        book.apply_delta(Side.ASK, 101.0, 1.0)
        assert book.mid_price == 100.0
        assert book.spread == 2.0

    def test_clear(self, book):
        book.apply_delta(Side.BID, 99.0, 1.0)
        book.apply_delta(Side.ASK, 101.0, 1.0)
        book.clear()

        assert book.level_count(Side.BID) == 0
        assert book.level_count(Side.ASK) == 0


# =============================================================================
# INVARIANTS & CONCURRENCY
# =============================================================================


class TestInvariants:
    """Invariant checks on snapshots."""

    def test_strict_mode_raises(self, book):
        with pytest.raises(InvariantViolation):
            book._check_snapshot(
                Side.ASK, 2, 2, [PriceLevel(101.0, 1.0), PriceLevel(100.0, 1.0)]
            )

    def test_strict_mode_raises_on_length(self, book):
        with pytest.raises(InvariantViolation):
            book._check_snapshot(Side.BID, 1, 5, [PriceLevel(101.0, 1.0), PriceLevel(100.0, 1.0)])

    def test_production_mode_logs(self, caplog):
        book = OrderBook("BTCUSDT", strict=False)

        book._check_snapshot(Side.BID, 2, 2, [PriceLevel(100.0, 1.0), PriceLevel(101.0, 1.0)])

        assert "invariant violated" in caplog.text

    def test_valid_snapshot_passes(self, book):
        book._check_snapshot(Side.BID, 2, 3, [PriceLevel(101.0, 1.0), PriceLevel(100.0, 1.0)])


class TestConcurrency:
    """Writer and reader threads sharing one book."""

    def test_concurrent_apply_and_snapshot(self, book):
        errors = []
        stop = threading.Event()

        def writer():
            rng = random.Random(1)
            for _ in range(20000):
                side = rng.choice((Side.ASK, Side.BID))
                price = float(rng.randint(1, 200))
                volume = 0.0 if rng.random() < 0.3 else 1.0
                book.apply_delta(side, price, volume)
            stop.set()

        def reader():
            try:
                while not stop.is_set():
                    book.snapshot(Side.ASK, 20)
                    book.snapshot(Side.BID, 20)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []

    def test_top_of_book_read_atomically(self, book):
        """Both sides move together in one batch; spread must never tear."""
        book.apply_deltas([DeltaEvent(Side.BID, 100.0, 1.0), DeltaEvent(Side.ASK, 102.0, 1.0)])
        spreads = set()
        stop = threading.Event()

        def writer():
            for bid in range(100, 5100):
                book.apply_deltas([
                    DeltaEvent(Side.BID, float(bid), 0.0),
                    DeltaEvent(Side.ASK, float(bid + 2), 0.0),
                    DeltaEvent(Side.BID, float(bid + 1), 1.0),
                    DeltaEvent(Side.ASK, float(bid + 3), 1.0),
                ])
            stop.set()

        def reader():
            while not stop.is_set():
                spreads.add(book.spread)
                bb, ba = book.top_of_book()
                spreads.add(ba - bb)

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert spreads <= {2.0}
        assert book.top_of_book() == (5100.0, 5102.0)

#!/usr/bin/env python3
"""
Micro-benchmark for depthwatch performance.

Tests:
1. Order book delta throughput
2. Snapshot latency (what every render frame pays)
3. RSI update throughput
4. Full render tick latency

Usage:
    python -m depthwatch.benchmark
"""

from __future__ import annotations

import random
import time

import numpy as np

from .datafeed.orderbook import OrderBook
from .engine.market import MarketState
from .engine.rsi import RSIEngine
from .types import DeltaEvent, SampleEvent, Side

TICK_SIZE = 0.01


def generate_book(book: OrderBook, base_price: float = 600.0, levels: int = 1000) -> None:
    """Populate `levels` prices on each side of `base_price`."""
    book.apply_deltas(
        DeltaEvent(side, base_price + sign * (i + 1) * TICK_SIZE, random.uniform(1, 100))
        for i in range(levels)
        for side, sign in ((Side.ASK, 1), (Side.BID, -1))
    )


def generate_batch(base_price: float, changes: int = 50) -> list[DeltaEvent]:
    """Generate a mock depth batch; ~20% of entries remove a level."""
    batch = []
    for _ in range(changes // 2):
        offset = random.randint(1, 500) * TICK_SIZE
        ask_qty = random.uniform(0, 100) if random.random() > 0.2 else 0.0
        bid_qty = random.uniform(0, 100) if random.random() > 0.2 else 0.0
        batch.append(DeltaEvent(Side.ASK, base_price + offset, ask_qty))
        batch.append(DeltaEvent(Side.BID, base_price - offset, bid_qty))
    return batch


def summarize(times: list[float]) -> dict[str, float]:
    """Latency stats in milliseconds."""
    arr = np.asarray(times) * 1000
    return {
        'mean': float(arr.mean()),
        'p50': float(np.percentile(arr, 50)),
        'p99': float(np.percentile(arr, 99)),
        'max': float(arr.max()),
    }


def benchmark_orderbook_updates(iterations: int = 10000) -> float:
    """Benchmark delta batch throughput. Returns batches/sec."""
    print("\n=== Order Book Delta Benchmark ===")

    book = OrderBook("BNBUSDT")
    generate_book(book)
    batches = [generate_batch(600.0) for _ in range(iterations)]

    start = time.perf_counter()
    for batch in batches:
        book.apply_deltas(batch)
    elapsed = time.perf_counter() - start

    deltas = sum(len(b) for b in batches)
    rate = iterations / elapsed
    print(f"  Batches applied: {iterations:,} ({deltas:,} deltas)")
    print(f"  Time: {elapsed*1000:.1f}ms")
    print(f"  Rate: {rate:,.0f} batches/sec, {deltas/elapsed:,.0f} deltas/sec")
    return rate


def benchmark_snapshot(iterations: int = 5000, depth: int = 20) -> dict[str, float]:
    """Benchmark snapshot latency on a 1000-level-per-side book."""
    print("\n=== Snapshot Benchmark ===")

    book = OrderBook("BNBUSDT")
    generate_book(book)

    times = []
    for _ in range(iterations):
        start = time.perf_counter()
        book.snapshot(Side.ASK, depth)
        book.snapshot(Side.BID, depth)
        times.append(time.perf_counter() - start)

    stats = summarize(times)
    print(f"  Iterations: {iterations}")
    print(f"  Mean: {stats['mean']:.4f}ms  p50: {stats['p50']:.4f}ms  p99: {stats['p99']:.4f}ms")
    return stats


def benchmark_rsi(iterations: int = 100000, periods: int = 14) -> float:
    """Benchmark RSI update throughput. Returns updates/sec."""
    print("\n=== RSI Update Benchmark ===")

    rsi = RSIEngine(periods)
    prices = list(600.0 + np.cumsum(np.random.normal(0, 0.5, iterations + periods + 1)))
    rsi.seed(prices[:periods + 1])

    start = time.perf_counter()
    for p in prices[periods + 1:]:
        rsi.update(p)
    elapsed = time.perf_counter() - start

    rate = iterations / elapsed
    print(f"  Updates: {iterations:,}")
    print(f"  Rate: {rate:,.0f} updates/sec")
    print(f"  Per update: {elapsed/iterations*1_000_000:.2f}µs")
    return rate


def benchmark_render_tick(iterations: int = 2000, depth: int = 20) -> dict[str, float]:
    """Benchmark a full MarketState.tick() (both snapshots + RSI sample)."""
    print("\n=== Render Tick Benchmark ===")

    state = MarketState("BNBUSDT", depth=depth, sample_interval_sec=0.0)
    generate_book(state.book)

    times = []
    now = 0.0
    for i in range(iterations):
        state.record_sample(SampleEvent(600.0 + random.uniform(-1, 1), i))
        now += 0.016
        start = time.perf_counter()
        state.tick(now)
        times.append(time.perf_counter() - start)

    stats = summarize(times)
    print(f"  Iterations: {iterations}")
    print(f"  Mean: {stats['mean']:.4f}ms  p99: {stats['p99']:.4f}ms")
    print(f"  Max FPS possible: {1000/stats['mean']:,.0f}")
    return stats


def main() -> None:
    """Run all benchmarks."""
    print("=" * 60)
    print("depthwatch Performance Benchmark")
    print("=" * 60)

    benchmark_orderbook_updates()
    benchmark_snapshot()
    benchmark_rsi()
    benchmark_render_tick()

    print("\n" + "=" * 60)
    print("Benchmark complete.")
    print("=" * 60)


if __name__ == "__main__":
    main()

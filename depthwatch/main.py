#!/usr/bin/env python3
"""
depthwatch - Live order book depth + RSI monitor for Binance Futures.

Usage:
    python -m depthwatch.main --symbol BTCUSDT --depth 20

    Or via the installed script:
    depthwatch BTCUSDT

Controls:
    q - Quit
    r - Reset update rate counters
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from .config import Settings
from .engine.market import MarketState
from .errors import TransportError
from .log import setup_logging

if TYPE_CHECKING:
    from .datafeed.binance_client import BinanceClient

logger = logging.getLogger(__name__)


def build_state(settings: Settings) -> MarketState:
    return MarketState(
        settings.symbol.upper(),
        depth=settings.depth,
        rsi_periods=settings.rsi_periods,
        sample_interval_sec=settings.sample_interval_sec,
        strict=settings.strict,
    )


async def run_feed(client: BinanceClient) -> None:
    """Run the ingestion activity; a dead stream leaves the last book on screen."""
    try:
        await client.run()
    except asyncio.CancelledError:
        raise
    except TransportError as e:
        logger.error("Stream disconnected: %s", e)


async def run_headless(state: MarketState, feed_task: asyncio.Task) -> None:
    """Log top of book + RSI once per second until the feed ends."""
    while not feed_task.done():
        snap = state.tick()
        rsi = (
            f"{snap.reading.value:.2f} ({snap.reading.signal.value})"
            if snap.reading is not None
            else f"seeding, {snap.samples_needed} to go"
        )
        logger.info(
            "%s bid=%.2f ask=%.2f spread=%.2f last=%s rsi=%s updates/s=%.0f",
            snap.symbol, snap.best_bid, snap.best_ask, snap.spread,
            snap.last_price, rsi, snap.updates_per_sec,
        )
        await asyncio.sleep(1.0)


async def main(settings: Settings, ui: bool = True) -> None:
    """Main entry point - runs data feed and render loop concurrently."""

    # Import here to avoid slow startup for --help
    from .datafeed.binance_client import BinanceClient

    state = build_state(settings)
    client = BinanceClient(settings, state)

    logger.info(
        "Starting depthwatch for %s (depth=%d, rsi=%d, sample=%.2fs)",
        settings.symbol, settings.depth, settings.rsi_periods, settings.sample_interval_sec,
    )

    feed_task = asyncio.create_task(run_feed(client))

    try:
        if ui:
            from .ui.dom_view import run_ui
            # Blocks until quit
            await run_ui(state, settings.render_interval_ms)
        else:
            await run_headless(state, feed_task)
    finally:
        client.stop()
        feed_task.cancel()
        try:
            await feed_task
        except asyncio.CancelledError:
            pass


def parse_args(argv: list[str] | None = None) -> tuple[Settings, bool]:
    """Parse CLI arguments into validated Settings and the UI flag."""
    parser = argparse.ArgumentParser(
        description="depthwatch - Live order book depth + RSI for Binance Futures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    depthwatch BTCUSDT
    depthwatch ETHUSDT --depth 30 --rsi-periods 14
    depthwatch BNBUSDT --no-ui --log-level DEBUG
        """
    )

    defaults = Settings()

    parser.add_argument(
        "symbol",
        nargs="?",
        default=defaults.symbol,
        help=f"Trading symbol (default: {defaults.symbol})"
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=defaults.depth,
        help=f"Price levels per side (default: {defaults.depth})"
    )
    parser.add_argument(
        "--rsi-periods",
        type=int,
        default=defaults.rsi_periods,
        help=f"RSI lookback periods (default: {defaults.rsi_periods})"
    )
    parser.add_argument(
        "--sample-interval",
        type=float,
        default=defaults.sample_interval_sec,
        help=f"Seconds between RSI samples (default: {defaults.sample_interval_sec})"
    )
    parser.add_argument(
        "--render-interval",
        type=int,
        default=defaults.render_interval_ms,
        help=f"Render tick in milliseconds (default: {defaults.render_interval_ms})"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Raise on order book invariant violations instead of logging them"
    )
    parser.add_argument(
        "--log-level",
        default=defaults.log_level,
        help=f"Logging level (default: {defaults.log_level})"
    )
    parser.add_argument(
        "--log-file",
        default=defaults.log_file,
        help=f"Log file path (default: {defaults.log_file})"
    )
    parser.add_argument(
        "--no-ui",
        action="store_true",
        help="Run headless, logging top of book to the console"
    )

    args = parser.parse_args(argv)

    settings = Settings(
        symbol=args.symbol.upper(),
        depth=args.depth,
        rsi_periods=args.rsi_periods,
        render_interval_ms=args.render_interval,
        sample_interval_sec=args.sample_interval,
        strict=args.strict,
        log_level=args.log_level.upper(),
        log_file=args.log_file or None,
    )
    try:
        settings.validate()
    except ValueError as e:
        parser.error(str(e))
    return settings, not args.no_ui


def cli() -> None:
    """CLI entry point."""
    settings, ui = parse_args()
    setup_logging(settings.log_level, settings.log_file, console=not ui)

    try:
        asyncio.run(main(settings, ui=ui))
    except KeyboardInterrupt:
        print("\nShutdown requested.")
        sys.exit(0)


if __name__ == "__main__":
    cli()

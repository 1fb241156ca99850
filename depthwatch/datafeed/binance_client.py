"""
Binance Futures WebSocket ingestion.

Handles:
1. Combined WebSocket stream for depth diffs + trades
2. Typed decoding of every frame (skip-and-continue on bad records)
3. Applying deltas to the shared order book, recording trade prices

Performance notes:
- orjson for JSON parsing (in the decoder)
- No logging per delta; decode errors are logged per frame
- All I/O is non-blocking (pure asyncio); the render tick never waits on it
"""

from __future__ import annotations

import logging

import aiohttp

from ..config import Settings
from ..engine.market import MarketState
from ..errors import DecodeError, TransportError
from .decoder import decode_message

logger = logging.getLogger(__name__)


class BinanceClient:
    """
    Async Binance Futures client feeding a MarketState.

    Usage:
        state = MarketState("BTCUSDT")
        client = BinanceClient(settings, state)
        await client.run()   # returns on stop(), raises TransportError on failure
    """

    def __init__(self, settings: Settings, state: MarketState) -> None:
        self.settings = settings
        self.symbol = settings.symbol.upper()
        self.state = state

        self._running = False
        self.messages_handled: int = 0
        self.decode_errors: int = 0

    def _build_ws_url(self) -> str:
        return self.settings.stream_url

    def handle_message(self, raw: bytes | str) -> None:
        """
        Handle one incoming WebSocket frame.

        HOT PATH - called for every message (~10-100+ per second).
        """
        self.messages_handled += 1
        try:
            msg = decode_message(raw)
        except DecodeError as e:
            self._report_errors([e])
            return

        if msg.deltas:
            self.state.apply_deltas(msg.deltas)
        for sample in msg.samples:
            self.state.record_sample(sample)
        if msg.errors:
            self._report_errors(msg.errors)

    def _report_errors(self, errors: list[DecodeError]) -> None:
        self.decode_errors += len(errors)
        self.state.record_decode_errors(len(errors))
        for e in errors:
            logger.warning("Skipping malformed record: %s", e)

    async def run(self) -> None:
        """
        Main run loop. Connects to Binance and processes messages until
        stop() is called.

        Raises TransportError when the stream errors or closes underneath us.
        """
        self._running = True
        ws_url = self._build_ws_url()
        logger.info("Connecting to %s", ws_url)

        try:
            async with aiohttp.ClientSession() as session:
                async with session.ws_connect(ws_url, heartbeat=30.0) as ws:
                    self.state.set_connected(True)
                    logger.info("Connected, streaming %s", self.symbol)

                    async for msg in ws:
                        if not self._running:
                            break

                        if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                            self.handle_message(msg.data)
                        elif msg.type == aiohttp.WSMsgType.ERROR:
                            raise TransportError(f"WebSocket error: {ws.exception()}")

                    if self._running:
                        raise TransportError(f"WebSocket closed by server (code={ws.close_code})")
        except aiohttp.ClientError as e:
            raise TransportError(f"WebSocket connection failed: {e}") from e
        finally:
            self.state.set_connected(False)
            self._running = False

    def stop(self) -> None:
        """Signal the client to stop."""
        self._running = False

"""
depthwatch - Live order book depth + RSI monitor for Binance Futures.

Architecture:
- datafeed/: WebSocket ingestion, message decoding, local order book
- engine/: RSI indicator and the shared market state handle
- ui/: top-of-book ladder + RSI panel (Textual TUI)
"""

__version__ = "0.1.0"

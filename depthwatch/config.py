"""Runtime settings shared by the CLI, the feed and the UI."""

from __future__ import annotations

import logging
from dataclasses import dataclass

# Binance Futures endpoint
WS_BASE = "wss://fstream.binance.com"


@dataclass(frozen=True)
class Settings:
    symbol: str = "BTCUSDT"
    depth: int = 20                   # Levels shown per side
    rsi_periods: int = 14
    render_interval_ms: int = 16      # ~60 FPS render tick
    sample_interval_sec: float = 1.0  # One RSI sample per interval
    ws_base: str = WS_BASE
    strict: bool = False              # Raise on book invariant violations
    log_level: str = "INFO"
    log_file: str | None = "depthwatch.log"

    def validate(self) -> "Settings":
        """Return self, or raise ValueError on an unusable setting."""
        if not self.symbol:
            raise ValueError("symbol must not be empty")
        if self.depth < 1:
            raise ValueError(f"depth must be >= 1, got {self.depth}")
        if self.rsi_periods < 1:
            raise ValueError(f"rsi_periods must be >= 1, got {self.rsi_periods}")
        if self.render_interval_ms < 1:
            raise ValueError(f"render_interval_ms must be >= 1, got {self.render_interval_ms}")
        if self.sample_interval_sec <= 0:
            raise ValueError(f"sample_interval_sec must be > 0, got {self.sample_interval_sec}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"unknown log level: {self.log_level}")
        return self

    @property
    def stream_url(self) -> str:
        """Combined stream URL: diff depth (real-time) + trades for RSI samples."""
        sym = self.symbol.lower()
        return f"{self.ws_base}/stream?streams={sym}@depth/{sym}@trade"

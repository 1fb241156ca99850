"""
Exception taxonomy.

- DecodeError: one malformed record; skipped, reported, processing continues
- TransportError: the inbound stream died; raised by the ingestion client only
- InvariantViolation: internal contract broken (a bug, not a market condition)
- IndicatorStateError: RSI used outside its seeded/unseeded contract
"""

from __future__ import annotations

from typing import Any


class DepthWatchError(Exception):
    """Base class for all depthwatch errors."""


class DecodeError(DepthWatchError, ValueError):
    """A single delta/sample record (or whole envelope) could not be parsed."""

    def __init__(self, message: str, record: Any = None) -> None:
        super().__init__(message)
        self.record = record

    def __str__(self) -> str:
        base = super().__str__()
        if self.record is None:
            return base
        return f"{base} (record={self.record!r})"


class TransportError(DepthWatchError):
    """Inbound stream interrupted or closed."""


class InvariantViolation(DepthWatchError):
    """An internal order book / snapshot contract was broken."""


class IndicatorStateError(DepthWatchError, RuntimeError):
    """Indicator updated before seeding, or seeded twice."""

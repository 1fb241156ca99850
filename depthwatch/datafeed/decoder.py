"""
Binance combined-stream decoder.

The only place that touches untyped dicts: every frame is turned into typed
DeltaEvent / SampleEvent records before it reaches the order book or the RSI.

Error policy is skip-and-continue: a malformed level or trade is recorded as a
DecodeError on the result and the rest of the frame is still decoded. Only an
envelope that is not JSON at all raises.
"""

from __future__ import annotations

import logging
import math
from typing import Any, NamedTuple

import orjson

from ..errors import DecodeError
from ..types import DeltaEvent, SampleEvent, Side

logger = logging.getLogger(__name__)


class DecodedMessage(NamedTuple):
    """Result of decoding one WebSocket frame."""
    stream: str
    deltas: list[DeltaEvent]
    samples: list[SampleEvent]
    errors: list[DecodeError]


def parse_number(raw: Any, field: str) -> float:
    """Parse a Binance decimal string into a finite float."""
    if isinstance(raw, bool):
        raise DecodeError(f"{field}: expected decimal string, got bool", raw)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise DecodeError(f"{field}: not a number", raw) from None
    if not math.isfinite(value):
        raise DecodeError(f"{field}: not finite", raw)
    return value


def decode_level(side: Side, entry: Any) -> DeltaEvent:
    """Decode one `[price, qty]` pair from a depth update."""
    if not isinstance(entry, (list, tuple)) or len(entry) < 2:
        raise DecodeError(f"{side.value} level: expected [price, qty]", entry)

    price = parse_number(entry[0], "price")
    volume = parse_number(entry[1], "volume")
    if price <= 0:
        raise DecodeError(f"{side.value} level: price must be > 0", entry)
    if volume < 0:
        raise DecodeError(f"{side.value} level: volume must be >= 0", entry)
    return DeltaEvent(side, price, volume)


def decode_depth(payload: dict) -> tuple[list[DeltaEvent], list[DecodeError]]:
    """
    Decode a depthUpdate payload: {"a": [[p, q], ...], "b": [[p, q], ...]}.

    Asks first, then bids, each in wire order.
    """
    deltas: list[DeltaEvent] = []
    errors: list[DecodeError] = []

    for key, side in (('a', Side.ASK), ('b', Side.BID)):
        entries = payload.get(key) or []
        if not isinstance(entries, list):
            errors.append(DecodeError(f"depth field {key!r} is not a list", entries))
            continue
        for entry in entries:
            try:
                deltas.append(decode_level(side, entry))
            except DecodeError as e:
                errors.append(e)

    return deltas, errors


def decode_trade(payload: dict) -> SampleEvent:
    """Decode a trade payload into a price sample ("p" price, "T" time ms)."""
    price = parse_number(payload.get('p'), "trade price")
    if price <= 0:
        raise DecodeError("trade price must be > 0", payload.get('p'))

    ts = payload.get('T', payload.get('E', 0))
    if not isinstance(ts, int) or isinstance(ts, bool):
        raise DecodeError("trade time: expected integer milliseconds", ts)
    return SampleEvent(price, ts)


def decode_message(raw: bytes | str) -> DecodedMessage:
    """
    Decode one combined-stream frame.

    Combined stream format: {stream: "<sym>@depth", data: {...}}. A bare
    payload (single-stream connection) is accepted too; its kind is taken from
    the "e" event type field.

    Raises DecodeError only when the frame itself is unusable.
    """
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON frame: {e}", raw) from None
    if not isinstance(data, dict):
        raise DecodeError("frame is not a JSON object", data)

    stream = data.get('stream', '')
    payload = data.get('data', data)
    if not isinstance(payload, dict):
        raise DecodeError("frame payload is not a JSON object", payload)

    event_type = payload.get('e', '')

    if '@depth' in stream or event_type == 'depthUpdate':
        deltas, errors = decode_depth(payload)
        return DecodedMessage(stream, deltas, [], errors)

    if '@trade' in stream or '@aggTrade' in stream or event_type in ('trade', 'aggTrade'):
        try:
            sample = decode_trade(payload)
        except DecodeError as e:
            return DecodedMessage(stream, [], [], [e])
        return DecodedMessage(stream, [], [sample], [])

    logger.debug("Ignoring frame from unhandled stream %r", stream or event_type)
    return DecodedMessage(stream, [], [], [])

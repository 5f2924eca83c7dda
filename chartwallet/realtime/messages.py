"""
Finnhub WebSocket message codec.

Outgoing:
    {"type": "subscribe", "symbol": "AAPL"}
    {"type": "unsubscribe", "symbol": "AAPL"}
    {"type": "pong"}

Incoming:
    {"type": "ping"}
    {"type": "subscribe", "symbol": "AAPL"}             (ack)
    {"type": "error", "msg": "Invalid token"}
    {"type": "trade", "data": [{"s": "AAPL", "p": 180.1, "t": 1718035200123, "v": 100}]}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from chartwallet.core.exceptions import MessageDecodeError


class MessageType(str, Enum):
    PING = "ping"
    SUBSCRIBE_ACK = "subscribe"
    ERROR = "error"
    TRADE = "trade"
    UNKNOWN = "unknown"


class RequestType(str, Enum):
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


@dataclass(frozen=True)
class Trade:
    """A single executed trade pushed by the stream."""

    symbol: str
    price: float
    timestamp: datetime
    volume: Optional[float] = None

    @classmethod
    def from_wire(cls, item: Dict[str, Any]) -> "Trade":
        try:
            millis = int(item["t"])
            volume = item.get("v")
            return cls(
                symbol=str(item["s"]),
                price=float(item["p"]),
                timestamp=datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc),
                volume=float(volume) if volume is not None else None,
            )
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as exc:
            raise MessageDecodeError("Malformed trade entry", payload=str(item), cause=exc) from exc


@dataclass
class StreamMessage:
    type: MessageType
    trades: List[Trade] = field(default_factory=list)
    symbol: Optional[str] = None
    error: Optional[str] = None
    raw_type: Optional[str] = None


def request(kind: RequestType, symbol: str) -> Dict[str, str]:
    return {"type": kind.value, "symbol": symbol}


PONG = {"type": "pong"}


def decode(raw: Union[str, bytes]) -> StreamMessage:
    """
    Decode one stream frame.

    Raises:
        MessageDecodeError: frame is not JSON, not an object, or has bad trades
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MessageDecodeError("Binary frame is not UTF-8", cause=exc) from exc

    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise MessageDecodeError("Frame is not JSON", payload=raw, cause=exc) from exc

    if not isinstance(data, dict):
        raise MessageDecodeError("Frame is not a JSON object", payload=raw)

    raw_type = data.get("type")

    if raw_type == MessageType.PING.value:
        return StreamMessage(MessageType.PING, raw_type=raw_type)

    if raw_type == MessageType.SUBSCRIBE_ACK.value:
        return StreamMessage(MessageType.SUBSCRIBE_ACK, symbol=data.get("symbol"), raw_type=raw_type)

    if raw_type == MessageType.ERROR.value:
        return StreamMessage(MessageType.ERROR, error=str(data.get("msg", "")), raw_type=raw_type)

    entries = data.get("data")
    if raw_type == MessageType.TRADE.value and isinstance(entries, list):
        trades = [Trade.from_wire(item) for item in entries if isinstance(item, dict)]
        return StreamMessage(MessageType.TRADE, trades=trades, raw_type=raw_type)

    return StreamMessage(MessageType.UNKNOWN, raw_type=raw_type)

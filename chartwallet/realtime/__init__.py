"""Real-time trade streaming."""

from chartwallet.realtime.finnhub_stream import FinnhubStreamClient
from chartwallet.realtime.messages import MessageType, StreamMessage, Trade, decode
from chartwallet.realtime.network import NetworkMonitor
from chartwallet.realtime.trade_buffer import SymbolStats, TradeBuffer
from chartwallet.realtime.websocket_client import (
    ConnectionState,
    ReconnectConfig,
    ReconnectingWebSocket,
    ReconnectState,
)

__all__ = [
    "ConnectionState",
    "FinnhubStreamClient",
    "MessageType",
    "NetworkMonitor",
    "ReconnectConfig",
    "ReconnectingWebSocket",
    "ReconnectState",
    "StreamMessage",
    "SymbolStats",
    "Trade",
    "TradeBuffer",
    "decode",
]

"""
Finnhub real-time trade stream.

Wraps ReconnectingWebSocket with the Finnhub protocol:
- subscribe/unsubscribe per symbol (only while connected)
- ping -> pong keepalive
- trade frames fed into a TradeBuffer
- subscriptions restored after reconnect, network loss and backgrounding
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, FrozenSet, List, Optional, Set, Union

from pydantic import SecretStr

from chartwallet.core.config import StreamConfig, is_usable_key
from chartwallet.core.exceptions import MessageDecodeError
from chartwallet.realtime.messages import PONG, MessageType, RequestType, Trade, decode, request
from chartwallet.realtime.network import NetworkMonitor
from chartwallet.realtime.trade_buffer import TradeBuffer
from chartwallet.realtime.websocket_client import (
    ConnectionState,
    Connector,
    ReconnectConfig,
    ReconnectingWebSocket,
)

logger = logging.getLogger(__name__)


def mask_token(token: str) -> str:
    if len(token) <= 4:
        return "****"
    return token[:2] + "*" * (len(token) - 4) + token[-2:]


class FinnhubStreamClient(ReconnectingWebSocket):
    """
    Finnhub trade stream client.

    Example:
        client = FinnhubStreamClient(config.finnhub_api_key, on_trade=print)
        await client.connect()
        await client.subscribe("AAPL")
    """

    def __init__(
        self,
        api_key: Optional[SecretStr],
        stream_config: Optional[StreamConfig] = None,
        on_trade: Optional[Callable[[List[Trade]], None]] = None,
        on_state_change: Optional[Callable[[ConnectionState], None]] = None,
        connector: Optional[Connector] = None,
        network: Optional[NetworkMonitor] = None,
    ):
        stream_config = stream_config or StreamConfig()
        super().__init__(
            ReconnectConfig.from_stream_config(stream_config),
            on_state_change=on_state_change,
            connector=connector,
        )
        self._api_key = api_key
        self.on_trade = on_trade
        # Awaited once per open, after stored subscriptions are restored
        self.on_ready: Optional[Callable[[], Awaitable[None]]] = None
        self.buffer = TradeBuffer(stream_config.chart_buffer_size, stream_config.recent_trades_size)

        self._subscriptions: Set[str] = set()
        self._resume_symbols: Set[str] = set()
        self._wants_stream = False
        self._network_available = True
        self._in_background = False

        if network is not None:
            self._network_available = network.is_available
            network.add_listener(self.handle_network_change)

    @property
    def configured(self) -> bool:
        return is_usable_key(self._api_key)

    @property
    def subscriptions(self) -> FrozenSet[str]:
        return frozenset(self._subscriptions)

    @property
    def pending_resubscribe(self) -> FrozenSet[str]:
        return frozenset(self._resume_symbols)

    @property
    def in_background(self) -> bool:
        return self._in_background

    @property
    def network_available(self) -> bool:
        return self._network_available

    def _connect_url(self) -> Optional[str]:
        if not is_usable_key(self._api_key):
            logger.error("[FinnhubStream] API key is not configured; not connecting")
            return None
        token = self._api_key.get_secret_value()
        logger.debug("[FinnhubStream] Using token %s", mask_token(token))
        return f"{self.config.url}?token={token}"

    def _can_reconnect(self) -> bool:
        return self._wants_stream and self._network_available and not self._in_background

    async def connect(self) -> bool:
        # Remembered so network/foreground events can bring the stream back
        if self.configured:
            self._wants_stream = True
        return await super().connect()

    async def _on_open(self) -> None:
        symbols = sorted(self._subscriptions | self._resume_symbols)
        self._subscriptions.clear()
        self._resume_symbols.clear()
        if symbols:
            logger.info("[FinnhubStream] Resubscribing to %d symbols", len(symbols))
        for i, symbol in enumerate(symbols):
            if not await self.subscribe(symbol):
                self._resume_symbols.update(symbols[i:])
                return

        if self.on_ready and self.is_connected:
            await self.on_ready()

    async def subscribe(self, symbol: str) -> bool:
        """
        Subscribe to trades for ``symbol``.

        No-op returning False unless the stream is connected.
        """
        symbol = symbol.strip().upper()
        if not symbol:
            return False
        if not self.is_connected:
            logger.warning("[FinnhubStream] Not connected; subscribe(%s) ignored", symbol)
            return False
        if not await self.send(request(RequestType.SUBSCRIBE, symbol)):
            return False
        self._subscriptions.add(symbol)
        logger.info("[FinnhubStream] Subscribed to %s", symbol)
        return True

    async def unsubscribe(self, symbol: str) -> bool:
        symbol = symbol.strip().upper()
        if not symbol:
            return False
        if not self.is_connected:
            logger.warning("[FinnhubStream] Not connected; unsubscribe(%s) ignored", symbol)
            return False
        if not await self.send(request(RequestType.UNSUBSCRIBE, symbol)):
            return False
        self._subscriptions.discard(symbol)
        logger.info("[FinnhubStream] Unsubscribed from %s", symbol)
        return True

    async def _handle_message(self, raw: Union[str, bytes]) -> None:
        try:
            message = decode(raw)
        except MessageDecodeError as e:
            logger.warning("[FinnhubStream] Dropped frame: %s", e)
            return

        if message.type is MessageType.PING:
            await self.send(PONG)
        elif message.type is MessageType.SUBSCRIBE_ACK:
            logger.debug("[FinnhubStream] Subscription confirmed: %s", message.symbol)
        elif message.type is MessageType.ERROR:
            logger.error("[FinnhubStream] Server error: %s", message.error)
        elif message.type is MessageType.TRADE:
            if not message.trades:
                return
            self.buffer.extend(message.trades)
            if self.on_trade:
                self.on_trade(message.trades)
        else:
            logger.debug("[FinnhubStream] Ignoring message type %r", message.raw_type)

    async def disconnect(self) -> None:
        """User-initiated disconnect: forget subscriptions and resume state."""
        await super().disconnect()
        self._subscriptions.clear()
        self._resume_symbols.clear()
        self._wants_stream = False

    async def _suspend(self) -> None:
        """Force-disconnect but remember what to restore."""
        snapshot = self._subscriptions | self._resume_symbols
        wants_stream = self._wants_stream or self.state != ConnectionState.DISCONNECTED
        await self.disconnect()
        self._resume_symbols = snapshot
        self._wants_stream = wants_stream

    async def _resume(self) -> None:
        if not self._wants_stream or self._in_background or not self._network_available:
            return
        if self.state == ConnectionState.DISCONNECTED:
            await self.reconnect()

    async def handle_network_change(self, available: bool) -> None:
        if available == self._network_available:
            return
        self._network_available = available
        if not available:
            logger.warning("[FinnhubStream] Network lost; suspending stream")
            await self._suspend()
            return
        logger.info("[FinnhubStream] Network restored")
        await self._resume()

    async def enter_background(self) -> None:
        if self._in_background:
            return
        self._in_background = True
        logger.info("[FinnhubStream] Entering background; suspending stream")
        await self._suspend()

    async def enter_foreground(self) -> None:
        if not self._in_background:
            return
        self._in_background = False
        logger.info("[FinnhubStream] Returning to foreground")
        await self._resume()

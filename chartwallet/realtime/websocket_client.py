"""
Reconnecting WebSocket Client

Features:
- Bounded exponential backoff (1s, 2s, 4s ... capped), a fixed number of attempts
- Backoff resets only after a connection survives a short grace window
- Explicit disconnect cancels every pending timer
- Injectable socket factory (defaults to websockets.connect)
- Async/await based, callbacks for state changes
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import websockets

from chartwallet.core.config import StreamConfig

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Any]]


class ConnectionState(Enum):
    """WebSocket connection states."""

    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()


@dataclass
class ReconnectConfig:
    """WebSocket client configuration."""

    url: str = ""

    # Reconnection settings
    reconnect_enabled: bool = True
    max_reconnect_attempts: int = 5
    initial_backoff: float = 1.0
    max_backoff: float = 30.0
    backoff_multiplier: float = 2.0
    grace_window: float = 3.0

    # Socket settings
    connect_timeout: float = 10.0
    close_timeout: float = 5.0

    @classmethod
    def from_stream_config(cls, stream: StreamConfig) -> "ReconnectConfig":
        return cls(
            url=stream.url,
            max_reconnect_attempts=stream.max_reconnect_attempts,
            initial_backoff=stream.initial_backoff,
            max_backoff=stream.max_backoff,
            grace_window=stream.grace_window,
            connect_timeout=stream.connect_timeout,
        )


@dataclass
class ReconnectState:
    """
    Attempt counter and current delay.

    After k recorded attempts the delay is min(initial * multiplier^k, max).
    """

    max_attempts: int = 5
    initial_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    attempts: int = 0
    delay: float = field(init=False)

    def __post_init__(self) -> None:
        self.delay = self.initial_delay

    @classmethod
    def from_config(cls, config: ReconnectConfig) -> "ReconnectState":
        return cls(
            max_attempts=config.max_reconnect_attempts,
            initial_delay=config.initial_backoff,
            max_delay=config.max_backoff,
            multiplier=config.backoff_multiplier,
        )

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def record_attempt(self) -> None:
        self.attempts += 1
        self.delay = min(self.delay * self.multiplier, self.max_delay)

    def reset(self) -> None:
        self.attempts = 0
        self.delay = self.initial_delay


class ReconnectingWebSocket:
    """
    WebSocket client with automatic reconnection.

    Subclasses provide the connection URL (``_connect_url``), react to a
    fresh connection (``_on_open``) and decode frames (``_handle_message``).
    """

    def __init__(
        self,
        config: ReconnectConfig,
        on_message: Optional[Callable[[Dict[str, Any]], None]] = None,
        on_state_change: Optional[Callable[[ConnectionState], None]] = None,
        on_disconnect: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        connector: Optional[Connector] = None,
    ):
        """
        Initialize WebSocket client.

        Args:
            config: Reconnect/socket configuration
            on_message: Callback for decoded JSON frames (base handler only)
            on_state_change: Callback on every ConnectionState transition
            on_disconnect: Callback when a live connection ends (with reason)
            on_error: Callback for connect/send/receive errors
            connector: Async socket factory, ``await connector(url)``
        """
        self.config = config
        self.on_message = on_message
        self.on_state_change = on_state_change
        self.on_disconnect = on_disconnect
        self.on_error = on_error
        self._connector = connector

        self._state = ConnectionState.DISCONNECTED
        self._ws: Any = None
        self._receive_task: Optional[asyncio.Task] = None
        self._reconnect = ReconnectState.from_config(config)
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._grace_handle: Optional[asyncio.TimerHandle] = None
        self._epoch = 0

        self._stats = {
            "messages_received": 0,
            "reconnect_count": 0,
            "last_connect_time": None,
        }

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def stats(self) -> Dict[str, Any]:
        return self._stats.copy()

    @property
    def reconnect_state(self) -> ReconnectState:
        return self._reconnect

    @property
    def has_pending_reconnect(self) -> bool:
        return self._reconnect_handle is not None or (
            self._reconnect_task is not None and not self._reconnect_task.done()
        )

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    def _connect_url(self) -> Optional[str]:
        """Return the URL to open, or None when the client cannot connect."""
        return self.config.url or None

    async def _on_open(self) -> None:
        """Called once per successful connection, after state is CONNECTED."""

    async def _handle_message(self, raw: Union[str, bytes]) -> None:
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            data = json.loads(raw)
        except (UnicodeDecodeError, ValueError):
            logger.debug("[WebSocket] Non-JSON message: %s", str(raw)[:100])
            return
        if self.on_message:
            self.on_message(data)

    def _can_reconnect(self) -> bool:
        """Gate for timer-driven reconnects (e.g. network availability)."""
        return True

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        logger.debug("[WebSocket] %s -> %s", self._state.name, state.name)
        self._state = state
        if self.on_state_change:
            self.on_state_change(state)

    def _notify_error(self, error: Exception) -> None:
        if self.on_error:
            self.on_error(error)

    def _open_socket(self, url: str) -> Awaitable[Any]:
        if self._connector is not None:
            return self._connector(url)
        return websockets.connect(url, close_timeout=self.config.close_timeout)

    async def connect(self) -> bool:
        """
        Connect to WebSocket server.

        Failures are logged and routed to the backoff path; they never raise.

        Returns:
            bool: True if connected successfully
        """
        if self._state != ConnectionState.DISCONNECTED:
            logger.debug("[WebSocket] connect() ignored while %s", self._state.name)
            return self.is_connected

        url = self._connect_url()
        if not url:
            return False

        epoch = self._epoch
        self._set_state(ConnectionState.CONNECTING)
        logger.info("[WebSocket] Connecting to %s", self.config.url)

        try:
            ws = await asyncio.wait_for(
                self._open_socket(url), timeout=self.config.connect_timeout
            )
        except asyncio.CancelledError:
            if epoch == self._epoch:
                self._set_state(ConnectionState.DISCONNECTED)
            raise
        except asyncio.TimeoutError as e:
            logger.error("[WebSocket] Connection timeout")
            self._connect_failed(e, epoch)
            return False
        except Exception as e:
            logger.error("[WebSocket] Connection failed: %s", e)
            self._connect_failed(e, epoch)
            return False

        if epoch != self._epoch or self._state != ConnectionState.CONNECTING:
            # disconnect() ran while the handshake was in flight
            await self._close_quietly(ws)
            return False

        self._ws = ws
        self._set_state(ConnectionState.CONNECTED)
        self._stats["last_connect_time"] = time.time()
        logger.info("[WebSocket] Connected successfully")

        self._receive_task = asyncio.create_task(self._receive_loop(ws))
        self._start_grace_timer()
        await self._on_open()
        return self.is_connected

    def _connect_failed(self, error: Exception, epoch: int) -> None:
        self._notify_error(error)
        if epoch != self._epoch or self._state != ConnectionState.CONNECTING:
            logger.debug("[WebSocket] Handshake failed after disconnect; no retry")
            return
        self._set_state(ConnectionState.DISCONNECTED)
        self._schedule_reconnect("connect_failed")

    async def disconnect(self) -> None:
        """Close the socket and cancel every pending timer."""
        self._epoch += 1
        self._cancel_reconnect_timer()
        self._cancel_reconnect_task()
        self._cancel_grace_timer()

        ws, self._ws = self._ws, None
        self._cancel_receive_task()
        if ws is not None:
            await self._close_quietly(ws)

        was = self._state
        self._set_state(ConnectionState.DISCONNECTED)
        if was != ConnectionState.DISCONNECTED:
            logger.info("[WebSocket] Disconnected")
            if self.on_disconnect:
                self.on_disconnect("manual_disconnect")

    async def reconnect(self) -> bool:
        """
        Reconnect now, bypassing backoff (external trigger).

        Resets the attempt counter, so an exhausted client retries again.
        """
        self._cancel_reconnect_timer()
        self._reconnect.reset()
        if self._state != ConnectionState.DISCONNECTED:
            return self.is_connected
        return await self.connect()

    async def send(self, message: Union[Dict[str, Any], str]) -> bool:
        """
        Send message to server.

        A failed send tears the connection down and starts the backoff path.

        Returns:
            bool: True if sent successfully
        """
        if not self.is_connected or self._ws is None:
            logger.warning("[WebSocket] Cannot send: not connected")
            return False

        data = message if isinstance(message, str) else json.dumps(message)
        try:
            await self._ws.send(data)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("[WebSocket] Send failed: %s", e)
            self._notify_error(e)
            await self._drop_connection("send_failed")
            return False
        return True

    async def _receive_loop(self, ws: Any) -> None:
        """Receive frames until the socket closes or fails."""
        reason = "closed_by_server"
        try:
            async for raw in ws:
                self._stats["messages_received"] += 1
                await self._handle_message(raw)
                if ws is not self._ws:
                    return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("[WebSocket] Receive error: %s", e)
            self._notify_error(e)
            reason = "receive_error"

        if ws is self._ws:
            await self._drop_connection(reason)

    async def _drop_connection(self, reason: str) -> None:
        """Tear down an unexpectedly lost connection and schedule a retry."""
        ws, self._ws = self._ws, None
        self._cancel_receive_task()
        self._cancel_grace_timer()
        if ws is not None:
            await self._close_quietly(ws)

        self._set_state(ConnectionState.DISCONNECTED)
        logger.warning("[WebSocket] Connection lost: %s", reason)
        if self.on_disconnect:
            self.on_disconnect(reason)
        self._schedule_reconnect(reason)

    async def _close_quietly(self, ws: Any) -> None:
        try:
            await ws.close()
        except Exception as e:
            logger.debug("[WebSocket] Error closing connection: %s", e)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _schedule_reconnect(self, reason: str) -> None:
        """Schedule one retry after the current delay, unless attempts are used up."""
        if not self.config.reconnect_enabled:
            return

        if self._reconnect.exhausted:
            logger.error(
                "[WebSocket] Max reconnect attempts (%d) reached; waiting for external trigger",
                self._reconnect.max_attempts,
            )
            return

        self._cancel_reconnect_timer()
        delay = self._reconnect.delay
        logger.info(
            "[WebSocket] Reconnecting in %.1fs (attempt %d/%d) after %s",
            delay,
            self._reconnect.attempts + 1,
            self._reconnect.max_attempts,
            reason,
        )
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self._reconnect_handle = None
        self._reconnect_task = asyncio.ensure_future(self._attempt_reconnect())

    async def _attempt_reconnect(self) -> None:
        if not self._can_reconnect():
            logger.warning("[WebSocket] Reconnect skipped: client is suspended")
            return

        self._reconnect.record_attempt()
        self._stats["reconnect_count"] += 1
        logger.info(
            "[WebSocket] Reconnect attempt %d/%d",
            self._reconnect.attempts,
            self._reconnect.max_attempts,
        )
        await self.connect()

    def _start_grace_timer(self) -> None:
        self._cancel_grace_timer()
        if self.config.grace_window <= 0:
            self._confirm_stable()
            return
        loop = asyncio.get_running_loop()
        self._grace_handle = loop.call_later(self.config.grace_window, self._confirm_stable)

    def _confirm_stable(self) -> None:
        self._grace_handle = None
        if not self.is_connected:
            return
        if self._reconnect.attempts:
            logger.info("[WebSocket] Connection stable; backoff reset")
        self._reconnect.reset()

    def _cancel_reconnect_timer(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _cancel_reconnect_task(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _cancel_grace_timer(self) -> None:
        if self._grace_handle is not None:
            self._grace_handle.cancel()
            self._grace_handle = None

    def _cancel_receive_task(self) -> None:
        task, self._receive_task = self._receive_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

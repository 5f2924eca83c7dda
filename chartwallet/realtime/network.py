"""
Network reachability monitor.

Listeners are notified on transitions only; repeated reports of the same
state are ignored.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[bool], Awaitable[None]]


class NetworkMonitor:
    def __init__(
        self,
        host: str = "1.1.1.1",
        port: int = 53,
        timeout: float = 3.0,
        initial: bool = True,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._available = initial
        self._listeners: List[Listener] = []

    @property
    def is_available(self) -> bool:
        return self._available

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def set_available(self, available: bool) -> bool:
        """Record a reachability report. Returns True if it was a transition."""
        if available == self._available:
            return False

        self._available = available
        logger.info("[Network] %s", "available" if available else "unavailable")
        for listener in list(self._listeners):
            try:
                await listener(available)
            except Exception:
                logger.exception("[Network] Listener failed")
        return True

    async def probe(self) -> bool:
        """Open (and close) a TCP connection to the probe host."""
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=self.timeout
            )
        except (OSError, asyncio.TimeoutError):
            return False

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def watch(self, interval: float = 5.0) -> None:
        """Probe forever, publishing transitions. Cancel the task to stop."""
        while True:
            await self.set_available(await self.probe())
            await asyncio.sleep(interval)

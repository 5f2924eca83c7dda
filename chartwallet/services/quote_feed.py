"""
QuoteFeedService - live trades with a REST polling fallback.

While the market is open and the stream is connected, prices come from the
trade stream. Otherwise tracked symbols are polled over REST on a fixed
interval.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from chartwallet.adapters.base import StockQuote
from chartwallet.adapters.finnhub_rest import FinnhubQuoteClient
from chartwallet.core.exceptions import ChartWalletError
from chartwallet.core.market_hours import MarketHours
from chartwallet.realtime.finnhub_stream import FinnhubStreamClient

logger = logging.getLogger(__name__)


@dataclass
class QuoteSnapshot:
    symbol: str
    price: float
    change: float
    change_percent: float
    high: Optional[float]
    low: Optional[float]
    source: str  # "stream" or "rest"
    updated_at: Optional[datetime] = None


class QuoteFeedService:
    """
    Keeps prices fresh for a set of tracked symbols.
    """

    def __init__(
        self,
        stream: FinnhubStreamClient,
        quotes: FinnhubQuoteClient,
        market: Optional[MarketHours] = None,
        poll_interval: float = 60.0,
    ):
        self._stream = stream
        self._quotes = quotes
        self._market = market or MarketHours()
        self._poll_interval = poll_interval

        self._symbols: Dict[str, None] = {}
        self._rest_quotes: Dict[str, StockQuote] = {}
        self._poll_task: Optional[asyncio.Task] = None
        self._running = False

        self._ready_callback: Optional[Callable[[], Awaitable[None]]] = stream.on_ready
        stream.on_ready = self._on_stream_ready

    @property
    def symbols(self) -> List[str]:
        return list(self._symbols)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stream(self) -> FinnhubStreamClient:
        return self._stream

    async def start(self, symbols: Iterable[str] = ()) -> None:
        for symbol in symbols:
            self._symbols.setdefault(symbol.strip().upper(), None)

        if self._running:
            return
        self._running = True
        logger.info("[QuoteFeed] Starting with %d symbols", len(self._symbols))

        if self._stream.is_connected:
            await self._sync_subscriptions()
        elif self._stream.configured:
            await self._stream.connect()
        else:
            logger.warning("[QuoteFeed] No stream credentials; using REST polling only")

        self._poll_task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        self._running = False
        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._stream.disconnect()
        logger.info("[QuoteFeed] Stopped")

    async def track(self, symbol: str) -> None:
        symbol = symbol.strip().upper()
        if not symbol or symbol in self._symbols:
            return
        self._symbols[symbol] = None
        if self._stream.is_connected:
            await self._stream.subscribe(symbol)

    async def untrack(self, symbol: str) -> None:
        symbol = symbol.strip().upper()
        if symbol not in self._symbols:
            return
        del self._symbols[symbol]
        self._rest_quotes.pop(symbol, None)
        if symbol in self._stream.subscriptions:
            await self._stream.unsubscribe(symbol)

    def should_poll(self, now: Optional[datetime] = None) -> bool:
        return not self._market.is_open(now) or not self._stream.is_connected

    async def poll_once(self) -> Dict[str, StockQuote]:
        """Fetch REST quotes for every tracked symbol (in a worker thread)."""
        symbols = list(self._symbols)
        if not symbols:
            return {}
        if not self._quotes.configured:
            logger.warning("[QuoteFeed] No REST credentials; skipping poll")
            return {}

        loop = asyncio.get_running_loop()
        quotes = await loop.run_in_executor(None, self._quotes.get_quotes, symbols)
        self._rest_quotes.update(quotes)
        logger.debug("[QuoteFeed] Polled %d/%d quotes", len(quotes), len(symbols))
        return quotes

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                if self.should_poll():
                    await self.poll_once()
            except asyncio.CancelledError:
                raise
            except ChartWalletError as exc:
                logger.error("[QuoteFeed] Poll failed: %s", exc)
            except Exception:
                logger.exception("[QuoteFeed] Unexpected poll error")
            await asyncio.sleep(self._poll_interval)

    async def _on_stream_ready(self) -> None:
        if self._ready_callback:
            await self._ready_callback()
        if self._running:
            await self._sync_subscriptions()

    async def _sync_subscriptions(self) -> None:
        """Subscribe tracked symbols the stream is not yet carrying."""
        for symbol in list(self._symbols):
            if not self._stream.is_connected:
                return
            if symbol in self._stream.subscriptions:
                continue
            await self._stream.subscribe(symbol)

    def snapshot(self, symbol: str) -> Optional[QuoteSnapshot]:
        """Stream view when trades have arrived, else the last REST quote."""
        symbol = symbol.strip().upper()
        stats = self._stream.buffer.stats(symbol)
        if stats is not None and stats.last_price > 0:
            trades = self._stream.buffer.trades(symbol)
            return QuoteSnapshot(
                symbol=symbol,
                price=stats.last_price,
                change=stats.change,
                change_percent=stats.change_percent,
                high=stats.day_high,
                low=stats.day_low,
                source="stream",
                updated_at=trades[-1].timestamp if trades else None,
            )

        quote = self._rest_quotes.get(symbol)
        if quote is None:
            return None
        return QuoteSnapshot(
            symbol=symbol,
            price=quote.current_price,
            change=quote.change,
            change_percent=quote.change_percent,
            high=quote.high,
            low=quote.low,
            source="rest",
            updated_at=(
                datetime.fromtimestamp(quote.timestamp, tz=timezone.utc) if quote.timestamp else None
            ),
        )

"""
Rolling trade buffers for sparkline rendering.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterable, List, Optional

from chartwallet.realtime.messages import Trade


@dataclass
class SymbolStats:
    """Running price statistics for one symbol, derived from the trade stream."""

    last_price: float = 0.0
    previous_price: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    day_high: float = 0.0
    day_low: float = 0.0
    trade_count: int = 0

    def update(self, price: float) -> None:
        # Change is measured against the previous distinct price
        if price != self.last_price:
            self.previous_price = self.last_price if self.last_price > 0 else price
            self.last_price = price
            self.change = self.last_price - self.previous_price
            if self.previous_price > 0:
                self.change_percent = self.change / self.previous_price * 100

        if self.day_high == 0 or price > self.day_high:
            self.day_high = price
        if self.day_low == 0 or price < self.day_low:
            self.day_low = price
        self.trade_count += 1


class TradeBuffer:
    """
    Per-symbol bounded buffers (oldest evicted) plus one bounded list of the
    most recent trades across all symbols.
    """

    def __init__(self, per_symbol: int = 100, recent: int = 50):
        if per_symbol <= 0 or recent <= 0:
            raise ValueError("buffer sizes must be positive")
        self.per_symbol = per_symbol
        self._buffers: Dict[str, Deque[Trade]] = {}
        self._stats: Dict[str, SymbolStats] = {}
        self._recent: Deque[Trade] = deque(maxlen=recent)

    def append(self, trade: Trade) -> None:
        buf = self._buffers.get(trade.symbol)
        if buf is None:
            buf = self._buffers[trade.symbol] = deque(maxlen=self.per_symbol)
        buf.append(trade)
        self._recent.append(trade)
        self._stats.setdefault(trade.symbol, SymbolStats()).update(trade.price)

    def extend(self, trades: Iterable[Trade]) -> None:
        for trade in trades:
            self.append(trade)

    def trades(self, symbol: str) -> List[Trade]:
        return list(self._buffers.get(symbol, ()))

    def prices(self, symbol: str) -> List[float]:
        return [t.price for t in self._buffers.get(symbol, ())]

    def recent(self) -> List[Trade]:
        return list(self._recent)

    def stats(self, symbol: str) -> Optional[SymbolStats]:
        return self._stats.get(symbol)

    def symbols(self) -> List[str]:
        return sorted(self._buffers)

    def clear(self, symbol: Optional[str] = None) -> None:
        """Drop one symbol's chart and stats, or everything."""
        if symbol is None:
            self._buffers.clear()
            self._stats.clear()
            self._recent.clear()
            return
        self._buffers.pop(symbol, None)
        self._stats.pop(symbol, None)
        self._recent = deque((t for t in self._recent if t.symbol != symbol), maxlen=self._recent.maxlen)

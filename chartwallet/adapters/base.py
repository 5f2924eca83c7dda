"""
Base adapter interfaces for quote providers.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Optional

from chartwallet.core.exceptions import AdapterError

logger = logging.getLogger(__name__)


@dataclass
class StockQuote:
    """Point-in-time quote for a symbol (REST snapshot)."""
    symbol: str
    current_price: float
    change: float = 0.0
    change_percent: float = 0.0
    high: Optional[float] = None
    low: Optional[float] = None
    open: Optional[float] = None
    previous_close: Optional[float] = None
    timestamp: Optional[int] = None  # epoch seconds, provider clock

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class QuoteProvider(ABC):
    """
    Abstract base class for REST quote providers.
    """

    @abstractmethod
    def get_quote(self, symbol: str) -> StockQuote:
        """
        Get current quote for a symbol.

        Args:
            symbol: Ticker symbol (e.g. "AAPL")

        Returns:
            StockQuote

        Raises:
            AdapterError subclasses on provider or transport failure
        """
        raise NotImplementedError

    def get_quotes(self, symbols: list[str]) -> dict[str, StockQuote]:
        """
        Get quotes for multiple symbols.

        Symbols that fail are logged and left out of the result.
        """
        quotes: dict[str, StockQuote] = {}
        for symbol in symbols:
            try:
                quotes[symbol] = self.get_quote(symbol)
            except AdapterError as exc:
                logger.warning("[%s] Quote failed for %s: %s", type(self).__name__, symbol, exc)
        return quotes

"""
Finnhub REST quote client.

Endpoint: GET https://finnhub.io/api/v1/quote?symbol=AAPL&token=...
Response: {"c": 180.1, "d": 1.2, "dp": 0.67, "h": 181.0, "l": 178.5,
           "o": 179.0, "pc": 178.9, "t": 1718035200}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import SecretStr

from chartwallet.adapters.base import QuoteProvider, StockQuote
from chartwallet.adapters.http import get_json
from chartwallet.core.config import is_usable_key
from chartwallet.core.exceptions import (
    AdapterError,
    DataUnavailableError,
    MissingCredentialError,
)
from chartwallet.core.quote_cache import QuoteCache

logger = logging.getLogger(__name__)

QUOTE_URL = "https://finnhub.io/api/v1/quote"
PROBE_SYMBOL = "AAPL"


def parse_quote(symbol: str, payload: Dict[str, Any]) -> StockQuote:
    """Map a Finnhub quote payload into a StockQuote."""
    if not isinstance(payload, dict) or "c" not in payload:
        raise DataUnavailableError(
            f"Malformed quote payload for {symbol}", details={"symbol": symbol}
        )

    # Finnhub answers unknown symbols with all-zero fields
    if not payload.get("c") and not payload.get("t"):
        raise DataUnavailableError(
            f"No quote data for {symbol}", details={"symbol": symbol}
        )

    def _opt(key: str) -> Optional[float]:
        value = payload.get(key)
        return float(value) if value is not None else None

    return StockQuote(
        symbol=symbol,
        current_price=float(payload["c"]),
        change=float(payload.get("d") or 0.0),
        change_percent=float(payload.get("dp") or 0.0),
        high=_opt("h"),
        low=_opt("l"),
        open=_opt("o"),
        previous_close=_opt("pc"),
        timestamp=int(payload["t"]) if payload.get("t") else None,
    )


class FinnhubQuoteClient(QuoteProvider):
    """
    Finnhub quote snapshots, used for polling when the stream is unavailable.
    """

    def __init__(
        self,
        api_key: Optional[SecretStr],
        cache: Optional[QuoteCache] = None,
        timeout: float = 10.0,
    ):
        self._api_key = api_key
        self._cache = cache if cache is not None else QuoteCache()
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return is_usable_key(self._api_key)

    def _token(self) -> str:
        if not self.configured:
            raise MissingCredentialError(
                "Finnhub API key is not configured", provider="finnhub"
            )
        return self._api_key.get_secret_value()

    def get_quote(self, symbol: str) -> StockQuote:
        symbol = symbol.upper()
        cached = self._cache.get(symbol)
        if cached is not None:
            return cached

        payload = get_json(
            QUOTE_URL,
            {"symbol": symbol, "token": self._token()},
            provider="finnhub",
            timeout=self._timeout,
        )
        quote = parse_quote(symbol, payload)
        self._cache.set(symbol, quote)
        logger.debug("[FinnhubQuote] %s = %.2f", symbol, quote.current_price)
        return quote

    def validate_api_key(self) -> bool:
        """
        Probe the quote endpoint with a well-known symbol.

        Returns:
            bool: True if Finnhub accepted the key and returned a quote
        """
        if not self.configured:
            logger.error("[FinnhubQuote] API key is not configured")
            return False

        self._cache.invalidate(PROBE_SYMBOL)
        try:
            self.get_quote(PROBE_SYMBOL)
        except AdapterError as exc:
            logger.error("[FinnhubQuote] API key check failed: %s", exc)
            return False

        logger.info("[FinnhubQuote] API key is valid")
        return True

    @property
    def cache_stats(self) -> dict:
        return self._cache.get_stats()

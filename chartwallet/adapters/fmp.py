"""
Financial Modeling Prep (FMP) client: stock search, most active stocks and
analyst recommendations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import SecretStr

from chartwallet.adapters.http import get_json
from chartwallet.analytics.analyst import AnalystRecommendation
from chartwallet.core.config import is_usable_key
from chartwallet.core.exceptions import MissingCredentialError

logger = logging.getLogger(__name__)

BASE_URL = "https://financialmodelingprep.com/api"
US_EXCHANGES = {"NASDAQ", "NYSE", "AMEX", "OTC", "OTCQB", "OTCQX"}


@dataclass
class SearchResult:
    symbol: str
    name: str
    currency: Optional[str] = None
    stock_exchange: Optional[str] = None
    exchange_short_name: Optional[str] = None

    @property
    def is_us_listed(self) -> bool:
        return (self.exchange_short_name or "").upper() in US_EXCHANGES


@dataclass
class ActiveStock:
    symbol: str
    name: str
    price: float
    change: float
    change_percent: float


def _to_float(value: Any) -> float:
    """FMP sometimes sends percentages as strings like "(+1.25%)"."""
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.strip().strip("()").replace("%", "").replace("+", "")
        try:
            return float(cleaned)
        except ValueError:
            return 0.0
    return 0.0


class FMPClient:
    """
    Thin FMP REST client.

    All calls raise MissingCredentialError when no usable key is configured,
    and the adapter error hierarchy on HTTP/transport failure.
    """

    def __init__(self, api_key: Optional[SecretStr], timeout: float = 10.0):
        self._api_key = api_key
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return is_usable_key(self._api_key)

    def _get(self, path: str, **params: Any) -> Any:
        if not self.configured:
            raise MissingCredentialError("FMP API key is not configured", provider="fmp")
        params["apikey"] = self._api_key.get_secret_value()
        return get_json(f"{BASE_URL}{path}", params, provider="fmp", timeout=self._timeout)

    def search(self, query: str, limit: int = 20) -> List[SearchResult]:
        """
        Search stocks by symbol or company name.

        US-listed matches are preferred; when none of the results trade on a
        US exchange, every result is returned instead.
        """
        query = query.strip()
        if not query:
            return []

        payload = self._get("/v3/search", query=query, limit=limit)
        results = [
            SearchResult(
                symbol=item.get("symbol", ""),
                name=item.get("name") or "",
                currency=item.get("currency"),
                stock_exchange=item.get("stockExchange"),
                exchange_short_name=item.get("exchangeShortName"),
            )
            for item in payload or []
            if isinstance(item, dict) and item.get("symbol")
        ]

        us_results = [r for r in results if r.is_us_listed]
        if not us_results and results:
            logger.info("[FMP] No US-listed match for %r, returning all %d results", query, len(results))
            return results

        logger.info("[FMP] Search %r: %d results", query, len(us_results))
        return us_results

    def most_active(self) -> List[ActiveStock]:
        payload = self._get("/v3/actives")
        return [
            ActiveStock(
                symbol=item["symbol"],
                name=item.get("name") or item.get("companyName") or "",
                price=_to_float(item.get("price")),
                change=_to_float(item.get("change") if "change" in item else item.get("changes")),
                change_percent=_to_float(item.get("changesPercentage")),
            )
            for item in payload or []
            if isinstance(item, dict) and item.get("symbol")
        ]

    def analyst_recommendation(self, symbol: str) -> Optional[AnalystRecommendation]:
        """Latest analyst recommendation snapshot for ``symbol`` or None."""
        symbol = symbol.upper()
        payload = self._get(f"/v3/analyst-stock-recommendations/{symbol}")
        if not payload or not isinstance(payload, list):
            logger.info("[FMP] No analyst data for %s", symbol)
            return None

        entry = dict(payload[0])
        entry.setdefault("symbol", symbol)
        return AnalystRecommendation.from_fmp(entry)

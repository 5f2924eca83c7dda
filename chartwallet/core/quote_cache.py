"""
Quote caching

TTL-based cache in front of the REST quote endpoint, so polling ticks and
CLI lookups do not burn through the provider's per-minute quota.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from chartwallet.adapters.base import StockQuote


@dataclass
class CachedQuote:
    """Cached quote with TTL"""

    quote: StockQuote
    cached_at: float = field(default_factory=time.monotonic)
    ttl: float = 5.0

    def is_expired(self, now: float) -> bool:
        return now - self.cached_at > self.ttl


class QuoteCache:
    """
    Quote cache with TTL support.

    Usage:
        cache = QuoteCache(default_ttl=5.0)

        quote = cache.get("AAPL")
        if not quote:
            quote = client.fetch("AAPL")
            cache.set("AAPL", quote)
    """

    def __init__(self, default_ttl: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self._cache: Dict[str, CachedQuote] = {}
        self.default_ttl = default_ttl
        self._clock = clock
        self._hits = 0
        self._misses = 0

    def get(self, symbol: str) -> Optional[StockQuote]:
        """Return the cached quote if present and not expired."""
        cached = self._cache.get(symbol)

        if cached and not cached.is_expired(self._clock()):
            self._hits += 1
            return cached.quote

        self._misses += 1
        if cached:
            del self._cache[symbol]
        return None

    def set(self, symbol: str, quote: StockQuote, ttl: Optional[float] = None) -> None:
        self._cache[symbol] = CachedQuote(
            quote=quote,
            cached_at=self._clock(),
            ttl=ttl if ttl is not None else self.default_ttl,
        )

    def invalidate(self, symbol: str) -> None:
        self._cache.pop(symbol, None)

    def clear(self) -> None:
        self._cache.clear()
        self._hits = 0
        self._misses = 0

    def get_stats(self) -> dict:
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0.0

        return {
            "size": len(self._cache),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate_pct": round(hit_rate, 2),
        }

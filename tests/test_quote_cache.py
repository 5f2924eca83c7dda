"""
Tests for the quote TTL cache.
"""

from chartwallet.adapters.base import StockQuote
from chartwallet.core.quote_cache import QuoteCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def make_quote(symbol="AAPL", price=100.0):
    return StockQuote(symbol=symbol, current_price=price)


class TestQuoteCache:
    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = QuoteCache(default_ttl=5.0, clock=clock)
        quote = make_quote()
        cache.set("AAPL", quote)

        clock.now += 4.9
        assert cache.get("AAPL") is quote

    def test_expired(self):
        clock = FakeClock()
        cache = QuoteCache(default_ttl=5.0, clock=clock)
        cache.set("AAPL", make_quote())

        clock.now += 5.1
        assert cache.get("AAPL") is None
        assert cache.get_stats()["size"] == 0

    def test_custom_ttl(self):
        clock = FakeClock()
        cache = QuoteCache(default_ttl=5.0, clock=clock)
        cache.set("AAPL", make_quote(), ttl=60)

        clock.now += 30
        assert cache.get("AAPL") is not None

    def test_invalidate_and_clear(self):
        cache = QuoteCache()
        cache.set("AAPL", make_quote())
        cache.set("MSFT", make_quote("MSFT"))

        cache.invalidate("AAPL")
        assert cache.get("AAPL") is None
        assert cache.get("MSFT") is not None

        cache.clear()
        assert cache.get_stats() == {"size": 0, "hits": 0, "misses": 0, "hit_rate_pct": 0.0}

    def test_stats(self):
        cache = QuoteCache()
        cache.set("AAPL", make_quote())
        cache.get("AAPL")
        cache.get("MSFT")

        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate_pct"] == 50.0

    def test_quote_to_dict(self):
        data = make_quote().to_dict()
        assert data["symbol"] == "AAPL"
        assert data["current_price"] == 100.0
        assert data["timestamp"] is None

"""Long-running services: quote feed and analyst refresh."""

from chartwallet.services.analyst_refresh import AnalystRefreshService
from chartwallet.services.quote_feed import QuoteFeedService, QuoteSnapshot

__all__ = ["AnalystRefreshService", "QuoteFeedService", "QuoteSnapshot"]

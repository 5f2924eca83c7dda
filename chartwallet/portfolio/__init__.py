"""Portfolio positions and watchlist."""

from chartwallet.portfolio.manager import MAX_WATCHLIST_ITEMS, PortfolioManager
from chartwallet.portfolio.models import PortfolioSummary, Position, WatchlistItem

__all__ = [
    "MAX_WATCHLIST_ITEMS",
    "PortfolioManager",
    "PortfolioSummary",
    "Position",
    "WatchlistItem",
]

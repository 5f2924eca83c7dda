"""ChartWallet - real-time US stock quotes, portfolio and watchlist tracking."""

__version__ = "0.1.0"

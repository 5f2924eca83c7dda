# Core library
from chartwallet.core.config import Config, load_config
from chartwallet.core.exceptions import (
    AdapterError,
    APIError,
    AuthenticationError,
    ChartWalletError,
    ConfigurationError,
    DataUnavailableError,
    RateLimitError,
    StorageError,
    StreamError,
    ValidationError,
)
from chartwallet.core.market_hours import MarketHours, MarketStatus
from chartwallet.core.resilience import RetryPolicy, with_retry
from chartwallet.core.structured_logging import JSONFormatter, configure_logging

__all__ = [
    "Config",
    "load_config",
    "AdapterError",
    "APIError",
    "AuthenticationError",
    "ChartWalletError",
    "ConfigurationError",
    "DataUnavailableError",
    "RateLimitError",
    "StorageError",
    "StreamError",
    "ValidationError",
    "MarketHours",
    "MarketStatus",
    "RetryPolicy",
    "with_retry",
    "JSONFormatter",
    "configure_logging",
]

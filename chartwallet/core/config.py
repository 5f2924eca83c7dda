"""
Configuration schema and loader for ChartWallet.
Uses Pydantic for validation.
"""

from pathlib import Path
from typing import Any, Optional
import json
import os

from pydantic import BaseModel, Field, SecretStr

# Load .env file if exists (for API keys)
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # python-dotenv not installed, skip


PLACEHOLDER_KEYS = {"", "YOUR_FINNHUB_API_KEY", "YOUR_FMP_API_KEY"}

POPULAR_STOCKS = [
    ("AAPL", "Apple Inc."),
    ("GOOGL", "Alphabet Inc."),
    ("MSFT", "Microsoft Corp."),
    ("TSLA", "Tesla Inc."),
    ("AMZN", "Amazon.com Inc."),
    ("NVDA", "NVIDIA Corp."),
    ("META", "Meta Platforms"),
]


def _secret_from_env(name: str) -> Optional[SecretStr]:
    value = os.getenv(name, "")
    return SecretStr(value) if value else None


def is_usable_key(key: Optional[SecretStr]) -> bool:
    """True when the key is set and is not a template placeholder."""
    if key is None:
        return False
    return key.get_secret_value().strip() not in PLACEHOLDER_KEYS


class StreamConfig(BaseModel):
    """Real-time stream settings."""
    url: str = Field(default="wss://ws.finnhub.io", description="Finnhub WebSocket endpoint")
    max_reconnect_attempts: int = Field(default=5, ge=0)
    initial_backoff: float = Field(default=1.0, gt=0, description="First retry delay (seconds)")
    max_backoff: float = Field(default=30.0, gt=0, description="Retry delay cap (seconds)")
    grace_window: float = Field(default=3.0, ge=0, description="Seconds a new connection must stay open before backoff resets")
    connect_timeout: float = Field(default=10.0, gt=0)
    chart_buffer_size: int = Field(default=100, gt=0, description="Trades kept per symbol")
    recent_trades_size: int = Field(default=50, gt=0, description="Trades kept across all symbols")


class PollingConfig(BaseModel):
    """REST polling fallback settings."""
    interval_seconds: float = Field(default=60.0, gt=0)
    quote_cache_ttl: float = Field(default=5.0, ge=0)
    request_timeout: float = Field(default=10.0, gt=0)


class StorageConfig(BaseModel):
    """Local key-value storage settings."""
    path: str = Field(
        default_factory=lambda: os.getenv("CHARTWALLET_STORE", "storage/chartwallet.json"),
        description="JSON key-value store path",
    )


class AnalystConfig(BaseModel):
    """Analyst rating refresh schedule."""
    update_hours: list[int] = Field(default_factory=lambda: [9, 18])
    timezone: str = Field(default="Asia/Seoul")


class Config(BaseModel):
    """
    Main configuration schema for ChartWallet.
    """
    config_version: str = Field(default="0.1.0", description="Configuration schema version")

    # API keys (SecretStr + repr=False + exclude=True)
    finnhub_api_key: Optional[SecretStr] = Field(
        default_factory=lambda: _secret_from_env("FINNHUB_API_KEY"),
        repr=False,
        exclude=True,
        description="Finnhub API token (stream + quotes)",
    )
    fmp_api_key: Optional[SecretStr] = Field(
        default_factory=lambda: _secret_from_env("FMP_API_KEY"),
        repr=False,
        exclude=True,
        description="Financial Modeling Prep API key (search + analyst data)",
    )

    stream: StreamConfig = Field(default_factory=StreamConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    analyst: AnalystConfig = Field(default_factory=AnalystConfig)

    log_level: str = Field(default_factory=lambda: os.getenv("CHARTWALLET_LOG_LEVEL", "INFO"))
    json_logs: bool = Field(default=False)

    @property
    def has_finnhub_key(self) -> bool:
        return is_usable_key(self.finnhub_api_key)

    @property
    def has_fmp_key(self) -> bool:
        return is_usable_key(self.fmp_api_key)

    def __str__(self) -> str:
        """Mask API keys completely."""
        return (
            f"Config(stream={self.stream.url}, "
            f"poll={self.polling.interval_seconds}s, "
            f"store={self.storage.path}, "
            f"api_keys=<MASKED>)"
        )

    def __repr__(self) -> str:
        return self.__str__()


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> Config:
    """
    Load configuration.

    Priority:
    1. Explicit overrides
    2. Config file (if provided)
    3. Environment / defaults
    """
    config_data: dict[str, Any] = {}

    if config_path and config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            config_data.update(json.load(f))

    if overrides:
        config_data.update(overrides)

    return Config(**config_data)

"""
Custom Exception Hierarchy for ChartWallet

Structured exceptions shared by the stream client, REST adapters,
local storage and portfolio management.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ChartWalletError(Exception):
    """
    Base exception for all ChartWallet errors.

    All custom exceptions should inherit from this class.
    """

    error_code: str = "CHARTWALLET_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        """
        Initialize ChartWallet error.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional context/details
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.error_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.details:
            parts.append(f" Details: {self.details}")
        if self.cause:
            parts.append(f" Caused by: {self.cause}")
        return "".join(parts)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ChartWalletError):
    """Base class for configuration-related errors."""

    error_code = "CONFIG_ERROR"


class MissingCredentialError(ConfigurationError):
    """An API credential required for the call is not configured."""

    error_code = "CONFIG_MISSING_CREDENTIAL"

    def __init__(self, message: str, *, provider: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if provider:
            self.details["provider"] = provider


# =============================================================================
# Adapter Errors
# =============================================================================


class AdapterError(ChartWalletError):
    """Base class for REST provider errors."""

    error_code = "ADAPTER_ERROR"


class ConnectionError(AdapterError):
    """Failed to reach the external service."""

    error_code = "ADAPTER_CONNECTION"


class AuthenticationError(AdapterError):
    """The provider rejected the API key (401/403)."""

    error_code = "ADAPTER_AUTH"


class RateLimitError(AdapterError):
    """Provider rate limit exceeded (429)."""

    error_code = "ADAPTER_RATE_LIMIT"

    def __init__(
        self,
        message: str,
        *,
        retry_after: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        if retry_after:
            self.details["retry_after_seconds"] = retry_after


class APIError(AdapterError):
    """External API returned an error."""

    error_code = "ADAPTER_API_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.response_body = response_body
        if status_code:
            self.details["status_code"] = status_code


class DataUnavailableError(AdapterError):
    """Requested data is not available (unknown symbol, empty payload)."""

    error_code = "ADAPTER_DATA_UNAVAILABLE"


# =============================================================================
# Stream Errors
# =============================================================================


class StreamError(ChartWalletError):
    """Base class for real-time stream errors."""

    error_code = "STREAM_ERROR"


class MessageDecodeError(StreamError):
    """A stream payload could not be decoded."""

    error_code = "STREAM_DECODE"

    def __init__(self, message: str, *, payload: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if payload is not None:
            self.details["payload"] = payload[:200]


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(ChartWalletError):
    """Base class for validation errors."""

    error_code = "VALIDATION_ERROR"


class InvalidSymbolError(ValidationError):
    """Invalid ticker symbol."""

    error_code = "VALIDATION_INVALID_SYMBOL"


class InvalidQuantityError(ValidationError):
    """Invalid holding quantity."""

    error_code = "VALIDATION_INVALID_QUANTITY"


class InvalidPriceError(ValidationError):
    """Invalid price value."""

    error_code = "VALIDATION_INVALID_PRICE"


class WatchlistFullError(ValidationError):
    """Watchlist already holds the maximum number of items."""

    error_code = "VALIDATION_WATCHLIST_FULL"


class PositionNotFoundError(ValidationError):
    """No portfolio position with the given id."""

    error_code = "VALIDATION_POSITION_NOT_FOUND"


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(ChartWalletError):
    """Base class for local storage errors."""

    error_code = "STORAGE_ERROR"


class StorageWriteError(StorageError):
    """Persisting a value to the key-value store failed."""

    error_code = "STORAGE_WRITE"


# =============================================================================
# Helper Functions
# =============================================================================


def wrap_exception(
    exception: Exception,
    wrapper_class: type = ChartWalletError,
    message: Optional[str] = None,
) -> ChartWalletError:
    """
    Wrap a standard exception in a ChartWallet exception.

    Args:
        exception: The original exception
        wrapper_class: ChartWallet exception class to use
        message: Optional custom message

    Returns:
        Wrapped ChartWalletError
    """
    if isinstance(exception, ChartWalletError):
        return exception

    return wrapper_class(
        message=message or str(exception),
        cause=exception,
    )

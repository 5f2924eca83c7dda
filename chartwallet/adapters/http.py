"""
Shared HTTP helper for REST adapters: status mapping and transport retry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from chartwallet.core.exceptions import (
    APIError,
    AuthenticationError,
    ConnectionError,
    RateLimitError,
)
from chartwallet.core.resilience import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

# Only transport failures are retried; 4xx answers will not change on retry.
TRANSPORT_RETRY = RetryPolicy(
    max_retries=2,
    base_delay=1.0,
    max_delay=4.0,
    retryable_exceptions=(ConnectionError,),
)


def _retry_after(response: requests.Response) -> Optional[int]:
    value = response.headers.get("Retry-After") if response.headers else None
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def raise_for_status(response: requests.Response, provider: str) -> None:
    """Translate an HTTP error status into the adapter exception hierarchy."""
    status = response.status_code
    if 200 <= status < 300:
        return
    if status in (401, 403):
        raise AuthenticationError(
            f"{provider} rejected the API key",
            details={"provider": provider, "status_code": status},
        )
    if status == 429:
        raise RateLimitError(
            f"{provider} rate limit exceeded",
            retry_after=_retry_after(response),
            details={"provider": provider},
        )
    raise APIError(
        f"{provider} returned HTTP {status}",
        status_code=status,
        response_body=(response.text or "")[:500],
        details={"provider": provider},
    )


@with_retry(TRANSPORT_RETRY)
def get_json(
    url: str,
    params: Dict[str, Any],
    *,
    provider: str,
    timeout: float = 10.0,
) -> Any:
    """
    GET ``url`` and decode the JSON body.

    Raises:
        ConnectionError: transport failure (retried)
        AuthenticationError / RateLimitError / APIError: HTTP error status
    """
    try:
        response = requests.get(url, params=params, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        raise ConnectionError(
            f"{provider} request failed", details={"url": url}, cause=exc
        ) from exc

    raise_for_status(response, provider)

    try:
        return response.json()
    except ValueError as exc:
        raise APIError(
            f"{provider} returned a non-JSON body",
            status_code=response.status_code,
            response_body=(response.text or "")[:500],
            cause=exc,
        ) from exc

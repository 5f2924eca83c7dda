"""
Retry policy shared by REST adapters.
"""

from __future__ import annotations

import functools
import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """
    Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay between retries (seconds)
        max_delay: Maximum delay between retries (seconds)
        jitter: Scale each delay by a random factor in [0.5, 1.5)
        retryable_exceptions: Exception types that should trigger retry
        non_retryable_exceptions: Exception types that must propagate immediately
    """

    max_retries: int = 2
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = False
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)
    non_retryable_exceptions: Tuple[Type[Exception], ...] = ()

    def get_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based): base * 2^attempt, capped."""
        delay = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random()
        return delay

    def should_retry(self, exception: Exception) -> bool:
        if isinstance(exception, self.non_retryable_exceptions):
            return False
        return isinstance(exception, self.retryable_exceptions)


def with_retry(
    policy: Optional[RetryPolicy] = None,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    sleep: Optional[Callable[[float], None]] = None,
):
    """
    Decorator adding retry behavior to a blocking function.

    Example:
        @with_retry(RetryPolicy(max_retries=3))
        def fetch_data():
            return requests.get(url, timeout=10)
    """
    policy = policy or RetryPolicy()

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(policy.max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not policy.should_retry(e) or attempt == policy.max_retries:
                        raise

                    delay = policy.get_delay(attempt)
                    logger.warning(
                        "[Retry] %s attempt %d failed: %s. Retrying in %.1fs",
                        func.__name__,
                        attempt + 1,
                        e,
                        delay,
                    )
                    if on_retry:
                        on_retry(attempt + 1, e)
                    (sleep or time.sleep)(delay)

        return wrapper

    return decorator

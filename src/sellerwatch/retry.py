"""Retry decorator with exponential backoff for transient network errors."""

import functools
import logging
import time

import requests

logger = logging.getLogger(__name__)


def _is_retryable(exc: Exception) -> bool:
    """Determine if an exception is transient and worth retrying."""
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(exc, requests.HTTPError):
        response = getattr(exc, "response", None)
        if response is None:
            return False
        return response.status_code >= 500 or response.status_code == 429
    return False


def retry_on_transient(max_retries: int = 3, base_delay: float = 1.0):
    """Decorator that retries a function on transient network errors.

    Uses exponential backoff: base_delay * 2^attempt (1s, 2s, 4s by default).
    Only retries on ConnectionError, Timeout, and 5xx/429 HTTPError.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    last_exc = exc
                    if attempt < max_retries and _is_retryable(exc):
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Transient error in %s (attempt %d/%d), retrying in %.1fs: %s",
                            func.__name__,
                            attempt + 1,
                            max_retries + 1,
                            delay,
                            exc,
                        )
                        time.sleep(delay)
                    else:
                        raise
            raise last_exc  # pragma: no cover

        return wrapper

    return decorator

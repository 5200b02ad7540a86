"""Map httpx failures to chat API exceptions."""

import httpx
from loguru import logger

from messaging.exceptions import TransportFailure

from .exceptions import (
    APIError,
    AuthenticationError,
    ChatNotFoundError,
    RateLimitError,
)
from .rate_limit import RequestRateLimiter

DEFAULT_RATE_LIMIT_COOLDOWN = 60.0


def _retry_after(response: httpx.Response) -> float:
    try:
        return float(response.headers.get("retry-after", DEFAULT_RATE_LIMIT_COOLDOWN))
    except ValueError:
        return DEFAULT_RATE_LIMIT_COOLDOWN


def map_error(e: Exception, limiter: RequestRateLimiter | None = None) -> Exception:
    """Map an httpx exception to a TransportFailure subclass.

    Args:
        e: The exception raised by httpx
        limiter: Limiter to block reactively on 429

    Returns:
        Appropriate TransportFailure instance, or ``e`` if it is not an httpx error
    """
    if isinstance(e, httpx.HTTPStatusError):
        response = e.response
        status = response.status_code
        message = f"HTTP {status}: {response.reason_phrase}"
        if status == 401:
            return AuthenticationError(message, status_code=status, raw_error=str(e))
        if status == 404:
            return ChatNotFoundError(message, status_code=status, raw_error=str(e))
        if status == 429:
            if limiter is not None:
                limiter.set_blocked(_retry_after(response))
            return RateLimitError(message, status_code=status, raw_error=str(e))
        return APIError(message, status_code=status, raw_error=str(e))

    if isinstance(e, httpx.TimeoutException):
        logger.warning(f"CHAT_API: request timed out: {e!r}")
        return TransportFailure("Request timed out", raw_error=str(e))
    if isinstance(e, httpx.HTTPError):
        return TransportFailure(str(e) or type(e).__name__, raw_error=str(e))

    return e

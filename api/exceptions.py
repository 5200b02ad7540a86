"""Chat API exceptions."""

from messaging.exceptions import TransportFailure


class ChatApiError(TransportFailure):
    """Base error for chat store requests."""


class AuthenticationError(ChatApiError):
    """401: missing or rejected access token."""


class ChatNotFoundError(ChatApiError):
    """404: unknown chat id."""


class RateLimitError(ChatApiError):
    """429: too many requests."""


class APIError(ChatApiError):
    """Any other non-success status."""

"""Chat store API client layer."""

from .client import ChatApiClient, ClientConfig
from .dependencies import ClientFactory, get_settings
from .exceptions import (
    APIError,
    AuthenticationError,
    ChatApiError,
    ChatNotFoundError,
    RateLimitError,
)
from .models import CompleteChatData, HistoryMessagePayload, StreamMessageRequest

__all__ = [
    "APIError",
    "AuthenticationError",
    "ChatApiClient",
    "ChatApiError",
    "ChatNotFoundError",
    "ClientConfig",
    "ClientFactory",
    "CompleteChatData",
    "HistoryMessagePayload",
    "RateLimitError",
    "StreamMessageRequest",
    "get_settings",
]

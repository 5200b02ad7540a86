"""API models exports."""

from .chat import CompleteChatData, HistoryMessagePayload, StreamMessageRequest

__all__ = [
    "CompleteChatData",
    "HistoryMessagePayload",
    "StreamMessageRequest",
]

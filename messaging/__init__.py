"""Conversation tree core: tree model, navigation, streaming and reconciliation."""

from .coordinator import ChatBackend, ChatCoordinator
from .exceptions import (
    ChatTreeError,
    ExchangeInProgressError,
    InvalidTreeError,
    MalformedFrame,
    TransportFailure,
)
from .live_buffer import LiveMessageBuffer
from .models import HistoryMessage, LiveMessage, Role
from .reconciler import ReconciledMessages, persisted_duplicate_ids, reconcile_messages
from .session import ChatSession
from .stream_channel import StreamChannel
from .stream_parser import SSEStreamParser, StreamEvent, StreamEventType

__all__ = [
    "ChatBackend",
    "ChatCoordinator",
    "ChatSession",
    "ChatTreeError",
    "ExchangeInProgressError",
    "HistoryMessage",
    "InvalidTreeError",
    "LiveMessage",
    "LiveMessageBuffer",
    "MalformedFrame",
    "ReconciledMessages",
    "Role",
    "SSEStreamParser",
    "StreamChannel",
    "StreamEvent",
    "StreamEventType",
    "TransportFailure",
    "persisted_duplicate_ids",
    "reconcile_messages",
]

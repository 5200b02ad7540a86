"""Exception types for the conversation tree core.

Absent nodes are never errors here: lookups return None/[]/False.
Stream failures are delivered as ``error`` events rather than raised.
"""


class ChatTreeError(Exception):
    """Base class for all chat tree errors."""


class InvalidTreeError(ChatTreeError):
    """A snapshot violates the tree invariants (duplicate ids, cycles)."""


class MalformedFrame(ChatTreeError):
    """A single stream line could not be decoded. Skipped by the parser."""

    def __init__(self, message: str, line: str = ""):
        super().__init__(message)
        self.line = line


class TransportFailure(ChatTreeError):
    """Read or connection failure on the stream or REST transport."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        raw_error: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.raw_error = raw_error


class ExchangeInProgressError(ChatTreeError):
    """A send/stream/reload cycle is already running for this chat."""

    def __init__(self, chat_id: str):
        super().__init__(f"Exchange already in progress for chat {chat_id}")
        self.chat_id = chat_id

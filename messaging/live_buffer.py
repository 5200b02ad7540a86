"""Live (not yet persisted) messages for one chat session.

The map is copy-on-write: every update builds a new mapping and swaps the
reference, so a consumer holding the previous ``messages`` object keeps a
consistent snapshot and can detect changes by identity.
"""

from collections.abc import Iterable, Mapping
from dataclasses import replace
from types import MappingProxyType
from typing import Any
from uuid import uuid4

from loguru import logger

from .models import LiveMessage, Role
from .stream_parser import StreamEvent, StreamEventType

_ID_KEYS = ("message_uuid", "message_id", "id")
_CHUNK_KEYS = ("content", "chunk", "text")
_FINAL_KEYS = ("content", "final_content", "text")


def _first(data: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


def _as_mapping(data: Any) -> Mapping[str, Any]:
    return data if isinstance(data, Mapping) else {}


class LiveMessageBuffer:
    """Accumulates stream events into LiveMessage entries keyed by id."""

    def __init__(self):
        self._messages: Mapping[str, LiveMessage] = MappingProxyType({})
        self._current_stream_id: str | None = None
        self._current_assistant_id: str | None = None
        self.is_streaming = False
        self.last_error: str | None = None

    @property
    def messages(self) -> Mapping[str, LiveMessage]:
        """Read-only snapshot; replaced (never mutated) on every update."""
        return self._messages

    @property
    def current_message(self) -> LiveMessage | None:
        if not self._current_stream_id:
            return None
        return self._messages.get(self._current_stream_id)

    def __len__(self) -> int:
        return len(self._messages)

    def get(self, message_id: str) -> LiveMessage | None:
        return self._messages.get(message_id)

    def _put(self, message: LiveMessage) -> None:
        updated = dict(self._messages)
        updated[message.id] = message
        self._messages = MappingProxyType(updated)

    def begin_exchange(self) -> None:
        """Reset per-exchange tracking before a new send."""
        self.is_streaming = True
        self.last_error = None
        self._current_stream_id = None
        self._current_assistant_id = None

    def add_user_message(self, content: str) -> LiveMessage:
        """Show the user's message immediately under a client-generated id."""
        message = LiveMessage(
            id=f"user-{uuid4().hex}",
            role=Role.user,
            content=content,
            is_complete=True,
        )
        self._put(message)
        return message

    def apply(self, event: StreamEvent) -> None:
        match event.type:
            case StreamEventType.CHUNK:
                self.apply_chunk(_as_mapping(event.data))
            case StreamEventType.FINAL:
                self.apply_final(_as_mapping(event.data))
            case StreamEventType.ERROR:
                self.apply_error(_as_mapping(event.data))
            case StreamEventType.DONE:
                self.apply_done()

    def apply_chunk(self, data: Mapping[str, Any]) -> LiveMessage:
        """Append a content delta to its message, creating it on first sight."""
        message_id = _first(data, _ID_KEYS)
        delta = _first(data, _CHUNK_KEYS) or ""
        try:
            role = Role(data.get("role") or Role.assistant)
        except ValueError:
            role = Role.assistant

        if not message_id:
            if not self._current_assistant_id:
                self._current_assistant_id = f"assistant-stream-{uuid4().hex}"
            message_id = self._current_assistant_id
        elif role == Role.assistant:
            self._current_assistant_id = message_id

        existing = self._messages.get(message_id)
        if existing is None:
            message = LiveMessage(id=message_id, role=role, content=delta)
            self._current_stream_id = message_id
        else:
            message = replace(existing, content=existing.content + delta)
        self._put(message)
        return message

    def apply_final(self, data: Mapping[str, Any]) -> LiveMessage | None:
        """Replace content with the authoritative final text and mark complete."""
        message_id = (
            _first(data, _ID_KEYS)
            or self._current_assistant_id
            or self._current_stream_id
        )
        final_content = _first(data, _FINAL_KEYS)
        message = None

        if message_id:
            existing = self._messages.get(message_id)
            if existing is not None:
                message = replace(
                    existing,
                    content=final_content or existing.content,
                    is_complete=True,
                )
            elif final_content:
                message = LiveMessage(
                    id=message_id,
                    role=Role.assistant,
                    content=final_content,
                    is_complete=True,
                )
            if message is not None:
                self._put(message)

        self.is_streaming = False
        self._current_stream_id = None
        return message

    def apply_done(self) -> None:
        """Handle ``[DONE]``: complete the current assistant message."""
        self.is_streaming = False
        message_id = self._current_assistant_id or self._current_stream_id
        existing = self._messages.get(message_id) if message_id else None
        if existing is not None and not existing.is_complete:
            self._put(replace(existing, is_complete=True))
        self._current_stream_id = None
        self._current_assistant_id = None

    def apply_error(self, data: Mapping[str, Any]) -> None:
        self.last_error = data.get("message") or "Stream processing failed"
        logger.error(f"LIVE_BUFFER: streaming error: {self.last_error}")
        self.is_streaming = False
        self._current_stream_id = None

    def completed_assistant_ids(self) -> list[str]:
        return [
            m.id
            for m in self._messages.values()
            if m.role == Role.assistant and m.is_complete
        ]

    def discard(self, message_ids: Iterable[str]) -> None:
        """Drop entries confirmed by a persisted snapshot."""
        drop = set(message_ids)
        if not drop & self._messages.keys():
            return
        self._messages = MappingProxyType(
            {k: v for k, v in self._messages.items() if k not in drop}
        )
        if self._current_stream_id in drop:
            self._current_stream_id = None
            self.is_streaming = False

    def clear_all(self) -> None:
        self._messages = MappingProxyType({})
        self._current_stream_id = None
        self._current_assistant_id = None
        self.is_streaming = False

"""Line-oriented parser for the chat streaming protocol.

Wire format (UTF-8, LF or CRLF separated, blocks split by a blank line):

    event: <tag>
    data: <json-or-literal>

``data: [DONE]`` terminates the stream. One malformed data line is
logged and skipped; it never aborts the stream.
"""

import codecs
import json
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from loguru import logger

from .exceptions import MalformedFrame

DONE_SENTINEL = "[DONE]"
EVENT_PREFIX = "event: "
DATA_PREFIX = "data: "


class StreamEventType(StrEnum):
    CHUNK = "chunk"
    FINAL = "final"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class StreamEvent:
    type: StreamEventType
    data: Any = None

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(StreamEventType.ERROR, {"message": message})

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(StreamEventType.DONE, None)


def _to_event_type(value: Any) -> StreamEventType | None:
    try:
        return StreamEventType(value)
    except ValueError:
        logger.debug(f"STREAM: unknown event type {value!r}, treating as chunk")
        return None


class SSEStreamParser:
    """
    Incremental parser for one stream. Each exchange owns its own instance,
    so two concurrent channels never share decoder or buffer state.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._current_event = StreamEventType.CHUNK.value
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def feed(self, data: bytes | str) -> list[StreamEvent]:
        """
        Consume a chunk from the transport and return the complete events
        it produced. The trailing partial line is kept for the next call.
        """
        if self._done:
            return []
        if isinstance(data, bytes):
            data = self._decoder.decode(data)
        self._buffer += data

        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._process_lines(lines)

    def flush(self) -> list[StreamEvent]:
        """Finish decoding at end-of-stream. An unterminated line is dropped."""
        if self._done:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer.strip():
            logger.warning(f"STREAM: ended with incomplete data: {self._buffer!r}")
        self._buffer = ""
        return []

    def _process_lines(self, lines: list[str]) -> list[StreamEvent]:
        events = []
        for line in lines:
            event = self._process_line(line.strip())
            if event is None:
                continue
            events.append(event)
            if self._done:
                self._buffer = ""
                break
        return events

    def _process_line(self, line: str) -> StreamEvent | None:
        if not line:
            self._current_event = StreamEventType.CHUNK.value
            return None

        if line.startswith(EVENT_PREFIX):
            self._current_event = line[len(EVENT_PREFIX) :].strip()
            return None

        if not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX) :].strip()
        if payload == DONE_SENTINEL:
            # Only the literal sentinel ends the stream; a payload typed "done" does not
            self._done = True
            return StreamEvent.done()
        if not payload:
            return None

        try:
            parsed = self._decode_payload(payload)
        except MalformedFrame as e:
            logger.warning(f"STREAM: skipping malformed frame: {e} ({e.line!r})")
            return None

        event = StreamEvent(self._resolve_type(parsed), self._extract_data(parsed))
        self._current_event = StreamEventType.CHUNK.value
        return event

    @staticmethod
    def _decode_payload(payload: str) -> Any:
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedFrame(str(e), line=payload) from e

    def _resolve_type(self, parsed: Any) -> StreamEventType:
        """Payload ``event`` > current tag (final/error only) > payload ``type`` > chunk."""
        fields = parsed if isinstance(parsed, dict) else {}

        if fields.get("event"):
            return _to_event_type(fields["event"]) or StreamEventType.CHUNK
        if self._current_event in (StreamEventType.FINAL, StreamEventType.ERROR):
            return StreamEventType(self._current_event)
        if fields.get("type"):
            return _to_event_type(fields["type"]) or StreamEventType.CHUNK
        return StreamEventType.CHUNK

    @staticmethod
    def _extract_data(parsed: Any) -> Any:
        if isinstance(parsed, dict) and parsed.get("data"):
            return parsed["data"]
        return parsed

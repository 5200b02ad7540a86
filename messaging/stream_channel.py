"""One streamed exchange: open, parse, tear down.

A channel owns its own parser, so a second send never touches the
buffer of a channel that is still draining. Teardown runs exactly once
whichever exit path is taken (``[DONE]``, read error, source exhausted,
cancellation or an explicit ``aclose``).
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from typing import Protocol

from loguru import logger

from .stream_parser import SSEStreamParser, StreamEvent


class ByteStream(Protocol):
    """The part of ``httpx.Response`` a channel relies on."""

    def aiter_bytes(self) -> AsyncIterator[bytes]: ...

    async def aclose(self) -> None: ...


StreamOpener = Callable[[], Awaitable[ByteStream]]


class StreamChannel:
    """Drives an SSEStreamParser over a byte stream opened on demand."""

    def __init__(self, opener: StreamOpener, *, label: str = ""):
        self._opener = opener
        self._label = label
        self._parser = SSEStreamParser()
        self._stream: ByteStream | None = None
        self._connected = False
        self._connecting = False
        self._closed = False
        self._started = False
        self._ended = False
        self.error: str | None = None

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def connecting(self) -> bool:
        return self._connecting

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cancelled(self) -> bool:
        """Closed before the stream ended on its own ([DONE], source end or failure)."""
        return self._closed and not self._ended

    async def events(self) -> AsyncIterator[StreamEvent]:
        """
        Yield protocol events until the stream ends.

        Open and read failures are reported as a single ``error`` event;
        nothing is raised to the consumer. May only be iterated once.
        """
        if self._started or self._closed:
            return
        self._started = True
        self._connecting = True
        try:
            try:
                self._stream = await self._opener()
            except Exception as e:
                yield self._fail(e)
                return

            self._connecting = False
            self._connected = True
            logger.debug(f"STREAM_CHANNEL: connected {self._label}")

            try:
                async for raw in self._stream.aiter_bytes():
                    if self._closed:
                        return
                    events = self._parser.feed(raw)
                    for index, event in enumerate(events):
                        # [DONE] is always the last event of its batch
                        if self._parser.done and index == len(events) - 1:
                            self._ended = True
                        yield event
                    if self._ended:
                        return
                self._parser.flush()
                self._ended = True
            except Exception as e:
                if not self._closed:
                    yield self._fail(e)
        finally:
            await self.aclose()

    async def dispatch(self, handler: Callable[[StreamEvent], None]) -> None:
        """Feed every event to ``handler``; the handler never runs after teardown."""
        async with aclosing(self.events()) as events:
            async for event in events:
                if self._closed:
                    break
                handler(event)

    async def aclose(self) -> None:
        """Release the reader and reset connection flags. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._connected = False
        self._connecting = False
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                await stream.aclose()
            except Exception as e:
                logger.debug(f"STREAM_CHANNEL: error while closing reader: {e}")
        logger.debug(f"STREAM_CHANNEL: closed {self._label}")

    def _fail(self, e: Exception) -> StreamEvent:
        self._ended = True
        self.error = str(e) or type(e).__name__
        logger.error(f"STREAM_CHANNEL: transport failure {self._label}: {self.error}")
        return StreamEvent.error(self.error)

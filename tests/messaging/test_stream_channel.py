"""Tests for messaging/stream_channel.py."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from messaging.stream_channel import StreamChannel
from messaging.stream_parser import StreamEventType


class FakeStream:
    """Minimal stand-in for httpx.Response streaming."""

    def __init__(self, chunks, fail_after=None):
        self._chunks = chunks
        self._fail_after = fail_after
        self.aclose = AsyncMock()

    async def aiter_bytes(self):
        for i, chunk in enumerate(self._chunks):
            if self._fail_after is not None and i == self._fail_after:
                raise ConnectionError("connection reset")
            await asyncio.sleep(0)
            yield chunk


def _opener(stream):
    return AsyncMock(return_value=stream)


async def _collect(channel):
    return [event async for event in channel.events()]


@pytest.mark.asyncio
async def test_yields_events_until_done_and_closes():
    stream = FakeStream(
        [
            b'data: {"content": "a"}\n\n',
            b'data: {"content": "b"}\n\ndata: [DONE]\n\n',
            b'data: {"content": "never"}\n\n',
        ]
    )
    channel = StreamChannel(_opener(stream))

    events = await _collect(channel)

    assert [e.type for e in events] == [
        StreamEventType.CHUNK,
        StreamEventType.CHUNK,
        StreamEventType.DONE,
    ]
    assert channel.closed
    assert not channel.connected
    stream.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_source_exhausted_without_done_closes_once():
    stream = FakeStream([b'data: {"content": "a"}\n\n', b'data: {"content": "tail'])
    channel = StreamChannel(_opener(stream))

    events = await _collect(channel)

    assert len(events) == 1
    assert channel.error is None
    stream.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_open_failure_yields_single_error():
    opener = AsyncMock(side_effect=ConnectionError("refused"))
    channel = StreamChannel(opener)

    events = await _collect(channel)

    assert len(events) == 1
    assert events[0].type == StreamEventType.ERROR
    assert events[0].data == {"message": "refused"}
    assert channel.error == "refused"
    assert channel.closed
    assert not channel.connecting


@pytest.mark.asyncio
async def test_read_failure_yields_error_after_received_events():
    stream = FakeStream([b'data: {"content": "a"}\n\n', b"unused"], fail_after=1)
    channel = StreamChannel(_opener(stream))

    events = await _collect(channel)

    assert [e.type for e in events] == [StreamEventType.CHUNK, StreamEventType.ERROR]
    assert channel.error == "connection reset"
    stream.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_events_can_only_be_iterated_once():
    stream = FakeStream([b"data: [DONE]\n\n"])
    channel = StreamChannel(_opener(stream))

    assert len(await _collect(channel)) == 1
    assert await _collect(channel) == []


@pytest.mark.asyncio
async def test_aclose_is_idempotent():
    stream = FakeStream([])
    channel = StreamChannel(_opener(stream))
    await _collect(channel)

    await channel.aclose()
    await channel.aclose()

    stream.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_closed_before_start_yields_nothing():
    opener = AsyncMock()
    channel = StreamChannel(opener)
    await channel.aclose()

    assert await _collect(channel) == []
    opener.assert_not_awaited()


@pytest.mark.asyncio
async def test_dispatch_stops_after_close():
    stream = FakeStream(
        [
            b'data: {"content": "a"}\n\n',
            b'data: {"content": "b"}\n\n',
            b'data: {"content": "c"}\n\n',
        ]
    )
    channel = StreamChannel(_opener(stream))
    seen = []

    def handler(event):
        seen.append(event)
        asyncio.get_running_loop().create_task(channel.aclose())

    await channel.dispatch(handler)

    assert len(seen) == 1
    assert channel.closed
    stream.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_consumer_break_tears_down():
    stream = FakeStream([b'data: {"content": "a"}\n\n', b'data: {"content": "b"}\n\n'])
    channel = StreamChannel(_opener(stream))

    events = channel.events()
    first = await events.__anext__()
    await events.aclose()

    assert first.type == StreamEventType.CHUNK
    assert channel.closed
    stream.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_separate_channels_do_not_share_parser_state():
    first = StreamChannel(_opener(FakeStream([b'data: {"content": "half'])))
    second = StreamChannel(_opener(FakeStream([b'data: {"content": "whole"}\n\n'])))

    assert await _collect(first) == []
    events = await _collect(second)

    assert events[0].data == {"content": "whole"}


@pytest.mark.asyncio
async def test_done_is_not_cancelled():
    channel = StreamChannel(_opener(FakeStream([b'data: {"content": "a"}\n\ndata: [DONE]\n\n'])))
    await _collect(channel)
    assert channel.closed
    assert not channel.cancelled


@pytest.mark.asyncio
async def test_source_end_and_failure_are_not_cancelled():
    exhausted = StreamChannel(_opener(FakeStream([b'data: {"content": "a"}\n\n'])))
    failed = StreamChannel(AsyncMock(side_effect=ConnectionError("refused")))
    await _collect(exhausted)
    await _collect(failed)
    assert not exhausted.cancelled
    assert not failed.cancelled


@pytest.mark.asyncio
async def test_close_mid_stream_marks_cancelled():
    stream = FakeStream(
        [b'data: {"content": "a"}\n\n', b'data: {"content": "b"}\n\n', b"data: [DONE]\n\n"]
    )
    channel = StreamChannel(_opener(stream))

    events = channel.events()
    await events.__anext__()
    await channel.aclose()
    rest = [event async for event in events]

    assert rest == []
    assert channel.cancelled


@pytest.mark.asyncio
async def test_payload_typed_done_does_not_end_stream():
    stream = FakeStream(
        [b'data: {"event": "done"}\n\n', b'data: {"content": "after"}\n\n', b"data: [DONE]\n\n"]
    )
    channel = StreamChannel(_opener(stream))

    events = await _collect(channel)

    assert [e.type for e in events] == [
        StreamEventType.DONE,
        StreamEventType.CHUNK,
        StreamEventType.DONE,
    ]
    assert not channel.cancelled

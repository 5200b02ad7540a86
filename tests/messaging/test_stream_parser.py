"""Tests for messaging/stream_parser.py."""

import json

import pytest

from messaging.stream_parser import SSEStreamParser, StreamEvent, StreamEventType


def _frame(payload, event=None):
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(payload, ensure_ascii=False)}")
    return "\n".join(lines) + "\n\n"


@pytest.fixture
def parser():
    return SSEStreamParser()


class TestBasicFrames:
    def test_data_line_without_tag_is_chunk(self, parser):
        events = parser.feed(_frame({"content": "hi"}))
        assert events == [StreamEvent(StreamEventType.CHUNK, {"content": "hi"})]

    def test_event_tag_applies_to_next_data(self, parser):
        events = parser.feed(_frame({"content": "all"}, event="final"))
        assert len(events) == 1
        assert events[0].type == StreamEventType.FINAL

    def test_tag_resets_after_blank_line(self, parser):
        parser.feed("event: final\n\n")
        events = parser.feed('data: {"content": "x"}\n\n')
        assert events[0].type == StreamEventType.CHUNK

    def test_payload_event_wins_over_tag(self, parser):
        events = parser.feed(_frame({"event": "chunk", "content": "x"}, event="final"))
        assert events[0].type == StreamEventType.CHUNK

    def test_payload_type_used_without_tag(self, parser):
        events = parser.feed(_frame({"type": "error", "message": "boom"}))
        assert events[0].type == StreamEventType.ERROR

    def test_tag_wins_over_payload_type(self, parser):
        events = parser.feed(_frame({"type": "chunk", "content": "x"}, event="final"))
        assert events[0].type == StreamEventType.FINAL

    def test_unknown_type_maps_to_chunk(self, parser):
        events = parser.feed(_frame({"type": "heartbeat"}))
        assert events[0].type == StreamEventType.CHUNK

    def test_nested_data_field_is_unwrapped(self, parser):
        events = parser.feed(_frame({"data": {"content": "inner"}}))
        assert events[0].data == {"content": "inner"}

    def test_non_object_payload(self, parser):
        events = parser.feed('data: "plain"\n\n')
        assert events[0] == StreamEvent(StreamEventType.CHUNK, "plain")

    def test_crlf_line_endings(self, parser):
        events = parser.feed('event: final\r\ndata: {"content": "x"}\r\n\r\n')
        assert events[0].type == StreamEventType.FINAL

    def test_unrelated_lines_ignored(self, parser):
        assert parser.feed(": keep-alive\nid: 7\nretry: 100\n\n") == []


class TestDone:
    def test_done_sentinel(self, parser):
        events = parser.feed("data: [DONE]\n\n")
        assert events == [StreamEvent.done()]
        assert parser.done

    def test_nothing_after_done(self, parser):
        events = parser.feed('data: [DONE]\n\ndata: {"content": "late"}\n\n')
        assert [e.type for e in events] == [StreamEventType.DONE]
        assert parser.feed('data: {"content": "later"}\n\n') == []
        assert parser.flush() == []


class TestMalformedFrames:
    def test_bad_json_skipped_good_kept(self, parser):
        events = parser.feed('data: {bad}\n\ndata: {"ok":1}\n\n')
        assert events == [StreamEvent(StreamEventType.CHUNK, {"ok": 1})]

    def test_bad_json_does_not_mark_done(self, parser):
        parser.feed("data: {oops\n")
        assert not parser.done


class TestIncrementalFeed:
    def test_line_split_across_feeds(self, parser):
        assert parser.feed('data: {"cont') == []
        events = parser.feed('ent": "ab"}\n\n')
        assert events[0].data == {"content": "ab"}

    def test_multibyte_char_split_across_feeds(self, parser):
        raw = _frame({"content": "こんにちは"}).encode("utf-8")
        split = raw.index("こ".encode("utf-8")) + 1
        assert parser.feed(raw[:split]) == []
        events = parser.feed(raw[split:])
        assert events[0].data == {"content": "こんにちは"}

    def test_events_in_order(self, parser):
        stream = (
            _frame({"message_uuid": "a1", "content": "こ"})
            + _frame({"message_uuid": "a1", "content": "ん"})
            + _frame({"message_uuid": "a1", "content": "こんにちは"}, event="final")
            + "data: [DONE]\n\n"
        )
        events = []
        for i in range(0, len(stream), 7):
            events.extend(parser.feed(stream[i : i + 7]))
        assert [e.type for e in events] == [
            StreamEventType.CHUNK,
            StreamEventType.CHUNK,
            StreamEventType.FINAL,
            StreamEventType.DONE,
        ]

    def test_flush_discards_incomplete_line(self, parser):
        parser.feed('data: {"content": "partial"}')
        assert parser.flush() == []
        assert parser.feed("\n") == []

    def test_independent_instances(self):
        first, second = SSEStreamParser(), SSEStreamParser()
        first.feed('data: {"content": "a')
        assert second.feed('data: {"content": "b"}\n') == [
            StreamEvent(StreamEventType.CHUNK, {"content": "b"})
        ]


class TestPayloadTypedDone:
    def test_reported_but_does_not_terminate(self, parser):
        events = parser.feed('data: {"event": "done"}\n\ndata: {"content": "x"}\n\n')
        assert [e.type for e in events] == [StreamEventType.DONE, StreamEventType.CHUNK]
        assert not parser.done

    def test_sentinel_still_terminates(self, parser):
        parser.feed('data: {"type": "done"}\n\n')
        parser.feed("data: [DONE]\n\n")
        assert parser.done

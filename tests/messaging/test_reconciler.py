"""Tests for messaging/reconciler.py."""

from types import MappingProxyType

from messaging.models import HistoryMessage, LiveMessage, Role
from messaging.reconciler import persisted_duplicate_ids, reconcile_messages


def _live(*messages):
    return MappingProxyType({m.id: m for m in messages})


class TestReconcile:
    def test_user_message_deduplicated_by_content(self):
        persisted = [HistoryMessage("u1", Role.user, "Hi")]
        live = _live(LiveMessage("user-abc", Role.user, "Hi", is_complete=True))

        result = reconcile_messages(persisted, live)

        assert result.live_only == ()
        assert [m.id for m in result.display()] == ["u1"]

    def test_content_match_ignores_surrounding_whitespace(self):
        persisted = [HistoryMessage("u1", Role.user, "  Hi\n")]
        live = _live(LiveMessage("user-abc", Role.user, "Hi"))
        assert persisted_duplicate_ids(persisted, live) == ["user-abc"]

    def test_user_message_deduplicated_by_id(self):
        persisted = [HistoryMessage("u1", Role.user, "Hi")]
        live = _live(LiveMessage("u1", Role.user, "edited"))
        assert persisted_duplicate_ids(persisted, live) == ["u1"]

    def test_assistant_live_message_kept(self):
        persisted = [
            HistoryMessage("u1", Role.user, "Hi"),
            HistoryMessage("a1", Role.assistant, "Hello"),
        ]
        live = _live(LiveMessage("a1", Role.assistant, "Hello"))

        result = reconcile_messages(persisted, live)

        assert [m.id for m in result.live_only] == ["a1"]

    def test_assistant_content_does_not_match_user_text(self):
        persisted = [HistoryMessage("a1", Role.assistant, "Hi")]
        live = _live(LiveMessage("user-x", Role.user, "Hi"))
        assert persisted_duplicate_ids(persisted, live) == []

    def test_display_order(self):
        persisted = [
            HistoryMessage("s1", Role.system, "sys"),
            HistoryMessage("u1", Role.user, "Hi"),
        ]
        live = _live(
            LiveMessage("user-x", Role.user, "Another question"),
            LiveMessage("a9", Role.assistant, "Thinking"),
        )

        display = reconcile_messages(persisted, live).display()

        assert [m.id for m in display] == ["s1", "u1", "user-x", "a9"]

    def test_empty_inputs(self):
        result = reconcile_messages([], _live())
        assert result.display() == []

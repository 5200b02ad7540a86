"""Merge persisted history with live messages for display."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .models import HistoryMessage, LiveMessage, Role


@dataclass(frozen=True)
class ReconciledMessages:
    persisted: tuple[HistoryMessage, ...]
    live_only: tuple[LiveMessage, ...]

    def display(self) -> list[HistoryMessage | LiveMessage]:
        """Persisted order first, then live-only messages in arrival order."""
        return [*self.persisted, *self.live_only]


def _is_persisted_duplicate(
    message: LiveMessage,
    persisted_ids: set[str],
    persisted_user_contents: set[str],
) -> bool:
    # Assistant live messages are the in-progress side of unsaved content.
    if message.role != Role.user:
        return False
    return (
        message.id in persisted_ids
        or message.content.strip() in persisted_user_contents
    )


def persisted_duplicate_ids(
    persisted: Sequence[HistoryMessage],
    live: Mapping[str, LiveMessage],
) -> list[str]:
    """
    Ids of live user messages already present in the persisted list.

    A live user message matches by id, or by trimmed content when the
    client-generated id differs from the one the backend assigned. Two
    distinct turns with identical text are merged; that is accepted.
    """
    persisted_ids = {m.id for m in persisted}
    persisted_user_contents = {
        m.content.strip() for m in persisted if m.role == Role.user
    }
    return [
        message.id
        for message in live.values()
        if _is_persisted_duplicate(message, persisted_ids, persisted_user_contents)
    ]


def reconcile_messages(
    persisted: Sequence[HistoryMessage],
    live: Mapping[str, LiveMessage],
) -> ReconciledMessages:
    """Split live messages into those already persisted and those still live-only."""
    duplicates = set(persisted_duplicate_ids(persisted, live))
    return ReconciledMessages(
        persisted=tuple(persisted),
        live_only=tuple(m for m in live.values() if m.id not in duplicates),
    )

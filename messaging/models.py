"""Message value types shared by the tree, stream and reconciliation layers."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class Role(StrEnum):
    system = "system"
    user = "user"
    assistant = "assistant"


@dataclass(frozen=True)
class HistoryMessage:
    """A persisted message as returned by the chat store."""

    id: str
    role: Role
    content: str


@dataclass(frozen=True)
class LiveMessage:
    """
    Transient, in-flight message owned by the streaming subsystem.

    Instances are immutable: accumulating content means replacing the
    entry (see LiveMessageBuffer), so consumers holding an older map
    never observe a half-applied update.
    """

    id: str
    role: Role
    content: str
    is_complete: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_user(self) -> bool:
        return self.role == Role.user

"""Per-chat session state.

Each chat owns its own navigation state machine, live buffer and stream
channel; nothing here is shared across chats.
"""

from dataclasses import dataclass, field

from .live_buffer import LiveMessageBuffer
from .models import HistoryMessage, LiveMessage
from .reconciler import ReconciledMessages, reconcile_messages
from .stream_channel import StreamChannel
from .trees.data import ChatSnapshot, ConversationTree
from .trees.navigation import NavigationStateMachine
from .trees.views import branch_thread, visible_messages


@dataclass
class ChatSession:
    chat_id: str
    snapshot: ChatSnapshot | None = None
    navigation: NavigationStateMachine = field(default_factory=NavigationStateMachine)
    live: LiveMessageBuffer = field(default_factory=LiveMessageBuffer)
    channel: StreamChannel | None = None

    @property
    def tree(self) -> ConversationTree | None:
        return self.snapshot.tree if self.snapshot else None

    @property
    def messages(self) -> tuple[HistoryMessage, ...]:
        return self.snapshot.messages if self.snapshot else ()

    @property
    def title(self) -> str:
        return self.snapshot.title if self.snapshot else "New Chat"

    @property
    def is_branching(self) -> bool:
        return self.navigation.is_branching(self.tree)

    def reconciled(self) -> ReconciledMessages:
        return reconcile_messages(self.messages, self.live.messages)

    def display_messages(self) -> list[HistoryMessage | LiveMessage]:
        """Persisted history followed by live messages not yet persisted."""
        return self.reconciled().display()

    def conversation_thread(self) -> list[HistoryMessage]:
        """Messages on the selected branch, honouring system-message visibility."""
        thread = branch_thread(self.tree, self.messages, self.navigation.selected_id)
        return visible_messages(thread, self.navigation.show_system_messages)

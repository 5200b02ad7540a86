"""Repository for chat session data access.

Maps chat ids to their sessions and node ids to the chat that owns them.
The node mapping is rebuilt wholesale whenever a snapshot is replaced.
"""

from loguru import logger

from ..session import ChatSession
from .data import ChatSnapshot


class SessionRepository:
    """Storage and lookup of chat sessions and node-to-chat mappings."""

    def __init__(self):
        self._sessions: dict[str, ChatSession] = {}  # chat_id -> session
        self._node_to_chat: dict[str, str] = {}  # node_id -> chat_id

    def get_session(self, chat_id: str) -> ChatSession | None:
        return self._sessions.get(chat_id)

    def get_or_create(self, chat_id: str) -> ChatSession:
        session = self._sessions.get(chat_id)
        if session is None:
            session = ChatSession(chat_id=chat_id)
            self._sessions[chat_id] = session
            logger.debug(f"SESSION_REPO: created session chat_id={chat_id}")
        return session

    def replace_snapshot(self, snapshot: ChatSnapshot) -> ChatSession:
        """Install a freshly fetched snapshot, superseding the old one entirely."""
        session = self.get_or_create(snapshot.chat_id)
        if session.tree is not None:
            self.unregister_nodes([n.id for n in session.tree])
        session.snapshot = snapshot
        for node in snapshot.tree:
            self._node_to_chat[node.id] = snapshot.chat_id
        logger.debug(
            f"SESSION_REPO: replace_snapshot chat_id={snapshot.chat_id} "
            f"nodes={len(snapshot.tree)}"
        )
        return session

    def get_session_for_node(self, node_id: str) -> ChatSession | None:
        chat_id = self._node_to_chat.get(node_id)
        return self._sessions.get(chat_id) if chat_id else None

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_to_chat

    def unregister_nodes(self, node_ids: list[str]) -> None:
        for nid in node_ids:
            self._node_to_chat.pop(nid, None)

    def remove_session(self, chat_id: str) -> ChatSession | None:
        """Remove a session and all its node mappings. Returns the removed session."""
        session = self._sessions.pop(chat_id, None)
        if not session:
            return None
        if session.tree is not None:
            self.unregister_nodes([n.id for n in session.tree])
        logger.debug(f"SESSION_REPO: remove_session chat_id={chat_id}")
        return session

    def all_sessions(self) -> list[ChatSession]:
        return list(self._sessions.values())

    def session_ids(self) -> list[str]:
        return list(self._sessions.keys())

    def session_count(self) -> int:
        return len(self._sessions)

"""Chat exchange coordinator.

Sequences one exchange per chat:
    preserve selection -> stream into the live buffer -> wait for the
    backend to persist -> reload the snapshot -> restore or auto-select.

Restoration always runs after the new snapshot has replaced the old one.
"""

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import aclosing
from typing import Protocol

from loguru import logger

from config.layout import LayoutSettings

from .exceptions import ExchangeInProgressError
from .reconciler import persisted_duplicate_ids
from .session import ChatSession
from .stream_channel import StreamChannel
from .trees.data import ChatSnapshot
from .trees.layout import TreeLayout, compute_layout
from .trees.repository import SessionRepository

DEFAULT_RELOAD_DELAY = 1.0


class ChatBackend(Protocol):
    """Snapshot fetch and send-and-stream collaborator (see api.client)."""

    async def get_complete_chat(self, chat_id: str) -> ChatSnapshot: ...

    def open_stream(
        self,
        chat_id: str,
        content: str,
        *,
        parent_id: str | None = None,
        model_id: str | None = None,
    ) -> StreamChannel: ...


class ChatCoordinator:
    """
    Facade over sessions, navigation and streaming for any number of chats.

    Each chat has its own session; cycles for the same chat are serialised
    and an overlapping send is rejected rather than queued.
    """

    def __init__(
        self,
        backend: ChatBackend,
        *,
        reload_delay: float = DEFAULT_RELOAD_DELAY,
        update_callback: Callable[[ChatSession], Awaitable[None]] | None = None,
        layout_settings: LayoutSettings | None = None,
    ):
        self._backend = backend
        self._layout_settings = layout_settings or LayoutSettings()
        self._repository = SessionRepository()
        self._reload_delay = reload_delay
        self._update_callback = update_callback
        self._locks: dict[str, asyncio.Lock] = {}

        logger.info("ChatCoordinator initialized")

    @property
    def repository(self) -> SessionRepository:
        return self._repository

    def get_session(self, chat_id: str) -> ChatSession | None:
        return self._repository.get_session(chat_id)

    @property
    def layout_settings(self) -> LayoutSettings:
        return self._layout_settings

    def layout(self, chat_id: str) -> TreeLayout:
        """Positions for the chat's current snapshot, with the selected path active."""
        session = self._repository.get_session(chat_id)
        if session is None:
            return compute_layout(None, self._layout_settings)
        return compute_layout(
            session.tree, self._layout_settings, session.navigation.path
        )

    def set_update_callback(
        self, update_callback: Callable[[ChatSession], Awaitable[None]] | None
    ) -> None:
        """Set callback invoked after every live-buffer or snapshot change."""
        self._update_callback = update_callback

    def is_busy(self, chat_id: str) -> bool:
        lock = self._locks.get(chat_id)
        return lock.locked() if lock else False

    async def load_chat(self, chat_id: str) -> ChatSession:
        """Fetch a fresh snapshot and select the appropriate node."""
        with logger.contextualize(chat_id=chat_id):
            session = await self._reload(chat_id)
            logger.info(f"Loaded chat {chat_id} ({len(session.tree or ())} nodes)")
            return session

    def select_node(self, chat_id: str, node_id: str) -> ChatSession | None:
        session = self._repository.get_session(chat_id)
        if session:
            session.navigation.select(node_id, session.tree)
        return session

    def clear_selection(self, chat_id: str) -> None:
        session = self._repository.get_session(chat_id)
        if session:
            session.navigation.clear()

    async def send_message(
        self,
        chat_id: str,
        content: str,
        model_id: str | None = None,
    ) -> bool:
        """
        Send a message and stream the reply.

        In branching mode the selected node becomes the parent; otherwise
        the backend continues from the latest leaf.

        Returns:
            True if the exchange completed and the chat was reloaded,
            False if the stream ended with an error or was cancelled

        Raises:
            ValueError: empty message or chat id
            ExchangeInProgressError: a cycle is already running for this chat
        """
        text = content.strip()
        if not text or not chat_id:
            raise ValueError("Message and chat id are required")

        lock = self._locks.setdefault(chat_id, asyncio.Lock())
        if lock.locked():
            raise ExchangeInProgressError(chat_id)

        async with lock:
            with logger.contextualize(chat_id=chat_id):
                session = self._repository.get_or_create(chat_id)
                if not await self._stream_exchange(session, text, model_id):
                    return False

                await asyncio.sleep(self._reload_delay)
                await self._reload(chat_id)
                return True

    async def _stream_exchange(
        self, session: ChatSession, text: str, model_id: str | None
    ) -> bool:
        tree = session.tree
        navigation = session.navigation
        parent_id = navigation.selected_id if navigation.is_branching(tree) else None
        navigation.preserve_for_streaming(tree)

        await self._close_channel(session)
        session.live.begin_exchange()
        session.live.add_user_message(text)
        await self._notify(session)

        channel = self._backend.open_stream(
            session.chat_id, text, parent_id=parent_id, model_id=model_id
        )
        session.channel = channel
        logger.info(
            f"Streaming message (parent={parent_id or 'latest'}, model={model_id})"
        )

        try:
            async with aclosing(channel.events()) as events:
                async for event in events:
                    session.live.apply(event)
                    await self._notify(session)
        finally:
            if session.channel is channel:
                session.channel = None

        if channel.cancelled:
            logger.info("Exchange cancelled before the stream ended")
            return False
        if session.live.last_error:
            logger.warning(f"Exchange failed: {session.live.last_error}")
            return False
        return True

    async def _reload(self, chat_id: str) -> ChatSession:
        snapshot = await self._backend.get_complete_chat(chat_id)
        session = self._repository.replace_snapshot(snapshot)

        navigation = session.navigation
        navigation.clear()
        if not navigation.restore_preserved(session.tree, prefer_new_branch=True):
            navigation.auto_select_latest(session.tree)

        confirmed = persisted_duplicate_ids(session.messages, session.live.messages)
        persisted_ids = {m.id for m in session.messages}
        confirmed.extend(
            message_id
            for message_id in session.live.completed_assistant_ids()
            if message_id in session.tree or message_id in persisted_ids
        )
        session.live.discard(confirmed)
        await self._notify(session)
        return session

    async def cancel(self, chat_id: str) -> bool:
        """Abort the active stream for a chat. Returns True if one was open."""
        session = self._repository.get_session(chat_id)
        if not session or session.channel is None:
            return False
        await self._close_channel(session)
        session.live.is_streaming = False
        logger.info(f"Cancelled stream for chat {chat_id}")
        return True

    async def close(self) -> None:
        """Tear down every open channel."""
        for session in self._repository.all_sessions():
            await self._close_channel(session)

    async def _close_channel(self, session: ChatSession) -> None:
        channel, session.channel = session.channel, None
        if channel is not None:
            await channel.aclose()

    async def _notify(self, session: ChatSession) -> None:
        if self._update_callback:
            await self._update_callback(session)

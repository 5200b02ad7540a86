"""Selection and branching state for one chat session.

Every operation that depends on the tree takes the snapshot as an
argument. The state machine never reads "the current tree" on its own,
so a restore can only run against the snapshot the caller hands it.
"""

from dataclasses import dataclass
from enum import StrEnum

from loguru import logger

from ..models import Role
from .data import ConversationTree, TreeNode


class NavigationState(StrEnum):
    IDLE = "idle"
    SELECTED = "selected"
    PRESERVED = "preserved"


@dataclass(frozen=True)
class SelectionState:
    selected_id: str | None
    path: tuple[TreeNode, ...]
    preserved_id: str | None


class NavigationStateMachine:
    """
    Tracks the selected node, its root path, and a preserved selection
    that survives the reload following a streamed send.

    Lifecycle:
        IDLE -> SELECTED (select / auto_select_latest)
        SELECTED -> PRESERVED (preserve_for_streaming in branching mode)
        PRESERVED -> SELECTED / IDLE (clear + restore_preserved after reload)
    """

    def __init__(self):
        self._selected_id: str | None = None
        self._path: tuple[TreeNode, ...] = ()
        self._preserved_id: str | None = None
        self.show_system_messages = True

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def path(self) -> tuple[TreeNode, ...]:
        return self._path

    @property
    def preserved_id(self) -> str | None:
        return self._preserved_id

    @property
    def state(self) -> NavigationState:
        if self._preserved_id is not None:
            return NavigationState.PRESERVED
        if self._selected_id is not None:
            return NavigationState.SELECTED
        return NavigationState.IDLE

    def snapshot(self) -> SelectionState:
        return SelectionState(
            selected_id=self._selected_id,
            path=self._path,
            preserved_id=self._preserved_id,
        )

    def select(self, node_id: str, tree: ConversationTree | None) -> None:
        """
        Select a node and recompute its path.

        An id missing from ``tree`` is still recorded; the path is empty.
        """
        self._selected_id = node_id
        self._path = tuple(tree.path_to(node_id)) if tree else ()
        logger.debug(f"NAV: select node_id={node_id} path_len={len(self._path)}")

    def clear(self) -> None:
        """Reset selection and path. The preserved id is left untouched."""
        self._selected_id = None
        self._path = ()

    def clear_preserved(self) -> None:
        self._preserved_id = None

    def selected_node(self, tree: ConversationTree | None) -> TreeNode | None:
        if not self._selected_id or not tree:
            return None
        return tree.find_by_id(self._selected_id)

    def is_branching(self, tree: ConversationTree | None) -> bool:
        """True when the selected node exists and is not the latest leaf."""
        selected = self.selected_node(tree)
        if not selected or not tree:
            return False
        latest = tree.latest_leaf()
        return selected.id != (latest.id if latest else None)

    def preserve_for_streaming(self, tree: ConversationTree | None) -> None:
        """Capture the selection before a streamed send, in branching mode only."""
        if self.is_branching(tree) and self._selected_id:
            self._preserved_id = self._selected_id
            logger.debug(f"NAV: preserving selection {self._preserved_id}")
        else:
            self._preserved_id = None
            logger.debug("NAV: not preserving selection (continuation mode)")

    def restore_preserved(
        self, tree: ConversationTree | None, prefer_new_branch: bool = False
    ) -> bool:
        """
        Re-apply the preserved selection against a freshly loaded tree.

        With ``prefer_new_branch`` the newest assistant descendant of the
        preserved node wins, since that is the reply the user just created.

        Returns:
            False if nothing was preserved or the preserved node is gone,
            True once a selection has been made.
        """
        preserved_id = self._preserved_id
        if not preserved_id:
            return False

        if not tree or preserved_id not in tree:
            logger.debug(f"NAV: preserved node no longer exists: {preserved_id}")
            self._preserved_id = None
            return False

        if prefer_new_branch:
            replies = [
                node
                for node in tree.descendants(preserved_id)
                if node.role == Role.assistant
            ]
            if replies:
                newest = max(replies, key=lambda node: node.id)
                if newest.id != preserved_id:
                    logger.debug(f"NAV: selecting new branch {newest.id}")
                    self.select(newest.id, tree)
                    self._preserved_id = None
                    return True

        logger.debug(f"NAV: restoring preserved selection {preserved_id}")
        self.select(preserved_id, tree)
        self._preserved_id = None
        return True

    def auto_select_latest(self, tree: ConversationTree | None) -> None:
        """Select the latest leaf when it is an assistant reply."""
        if not tree:
            return
        latest = tree.latest_leaf()
        if latest and latest.role == Role.assistant:
            self.select(latest.id, tree)

    def toggle_system_messages(self) -> bool:
        self.show_system_messages = not self.show_system_messages
        return self.show_system_messages

    def should_show_node(self, node_id: str, tree: ConversationTree | None) -> bool:
        if self.show_system_messages:
            return True
        node = tree.find_by_id(node_id) if tree else None
        return node.role != Role.system if node else True

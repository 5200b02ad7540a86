"""Read-only views over a snapshot: filtered trees and branch threads."""

from collections import OrderedDict
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from ..models import HistoryMessage, Role
from .data import ConversationTree, TreeNode

FILTER_CACHE_SIZE = 50


@dataclass(frozen=True)
class TreeFilterOptions:
    show_system_messages: bool = True
    roles: frozenset[Role] | None = None
    content: str | None = None

    def excludes(self, node: TreeNode) -> bool:
        """Node is dropped together with its subtree."""
        if self.roles is not None and node.role not in self.roles:
            return True
        return not self.show_system_messages and node.role == Role.system

    def matches_content(self, node: TreeNode) -> bool:
        return not self.content or self.content.lower() in node.content.lower()


def _content_matches(root: TreeNode, options: TreeFilterOptions) -> dict[int, bool]:
    """Per node: does it, or any non-excluded descendant, match the content filter."""
    result: dict[int, bool] = {}
    stack: list[tuple[TreeNode, bool]] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if options.excludes(node):
            result[id(node)] = False
            continue
        if not expanded:
            stack.append((node, True))
            stack.extend((child, False) for child in node.children)
            continue
        result[id(node)] = options.matches_content(node) or any(
            result[id(child)] for child in node.children
        )
    return result


def filter_tree(tree: ConversationTree, options: TreeFilterOptions) -> TreeNode | None:
    """
    Return a pruned copy of the tree, or None when the root itself is dropped.

    Excluded roles and hidden system messages remove their whole subtree.
    A content filter keeps a node if it or one of its descendants matches.
    """
    keep = _content_matches(tree.root, options)
    if not keep[id(tree.root)]:
        return None

    built: dict[int, TreeNode] = {}
    stack: list[tuple[TreeNode, bool]] = [(tree.root, False)]
    while stack:
        node, expanded = stack.pop()
        kept_children = [c for c in node.children if keep[id(c)]]
        if not expanded:
            stack.append((node, True))
            stack.extend((child, False) for child in kept_children)
            continue
        built[id(node)] = TreeNode(
            id=node.id,
            role=node.role,
            content=node.content,
            children=tuple(built[id(c)] for c in kept_children),
        )
    return built[id(tree.root)]


class TreeFilterCache:
    """Memoises filter_tree results per (tree structure, options)."""

    def __init__(self, max_size: int = FILTER_CACHE_SIZE):
        self.max_size = max_size
        self._entries: OrderedDict[tuple, TreeNode | None] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, tree: ConversationTree, options: TreeFilterOptions) -> TreeNode | None:
        key = (tree.fingerprint(), options)
        if key in self._entries:
            self.hits += 1
            return self._entries[key]

        self.misses += 1
        result = filter_tree(tree, options)
        self._entries[key] = result
        if len(self._entries) > self.max_size:
            # FIFO: drop the oldest entries, leaving headroom for new ones
            evict = min(len(self._entries) - 1, len(self._entries) - self.max_size + 10)
            for _ in range(evict):
                self._entries.popitem(last=False)
            logger.debug(f"TREE_FILTER: evicted {evict} cache entries")
        return result

    def clear(self) -> None:
        self._entries.clear()


def branch_thread(
    tree: ConversationTree | None,
    messages: Sequence[HistoryMessage],
    selected_id: str | None,
) -> list[HistoryMessage]:
    """
    The conversation along the root-to-selected path.

    Falls back to the latest leaf when nothing (or a stale id) is selected.
    Nodes missing from ``messages`` are rendered from the tree node itself.
    """
    if tree is None:
        return list(messages)

    path = tree.path_to(selected_id)
    if not path:
        latest = tree.latest_leaf()
        path = tree.path_to(latest.id) if latest else []

    by_id = {m.id: m for m in messages}
    return [
        by_id.get(node.id) or HistoryMessage(id=node.id, role=node.role, content=node.content)
        for node in path
    ]


def visible_messages(
    messages: Sequence[HistoryMessage], show_system_messages: bool
) -> list[HistoryMessage]:
    if show_system_messages:
        return list(messages)
    return [m for m in messages if m.role != Role.system]

"""Conversation tree data structures.

A snapshot is built once from the chat store response and never mutated;
a reload replaces it wholesale. All walks use explicit stacks so deep
conversations cannot exhaust the interpreter's recursion limit.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import InvalidTreeError
from ..models import HistoryMessage, Role


@dataclass(frozen=True, eq=False)
class TreeNode:
    """A single message in the conversation tree."""

    id: str
    role: Role
    content: str
    children: tuple["TreeNode", ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def __repr__(self) -> str:
        return (
            f"TreeNode(id={self.id!r}, role={self.role.value!r}, "
            f"children={len(self.children)})"
        )


def node_from_dict(data: Mapping[str, Any]) -> TreeNode:
    """
    Build a TreeNode graph from the wire representation.

    Accepts ``uuid`` or ``id`` as the identifier. Children are built
    before their parent (post-order) because nodes are immutable.

    Raises:
        InvalidTreeError: on missing ids, unknown roles, or a dict that
            appears twice in the graph (shared subtree or cycle).
    """
    built: dict[int, TreeNode] = {}
    seen: set[int] = set()
    stack: list[tuple[Mapping[str, Any], bool]] = [(data, False)]

    while stack:
        raw, expanded = stack.pop()
        children = raw.get("children") or []
        if not expanded:
            if id(raw) in seen:
                raise InvalidTreeError("Tree structure contains a cycle or shared node")
            seen.add(id(raw))
            stack.append((raw, True))
            for child in reversed(children):
                stack.append((child, False))
            continue

        node_id = raw.get("uuid", raw.get("id"))
        if not node_id:
            raise InvalidTreeError("Tree node is missing an id")
        try:
            role = Role(raw.get("role"))
        except ValueError as e:
            raise InvalidTreeError(
                f"Tree node {node_id} has unknown role {raw.get('role')!r}"
            ) from e

        built[id(raw)] = TreeNode(
            id=str(node_id),
            role=role,
            content=raw.get("content") or "",
            children=tuple(built.pop(id(child)) for child in children),
        )

    return built[id(data)]


class ConversationTree:
    """
    Validated, immutable snapshot of a conversation tree.

    Enforces a single root, unique ids and the absence of shared or
    cyclic nodes on construction. Lookups never raise for absent ids.
    """

    def __init__(self, root: TreeNode):
        self._root = root
        self._nodes: dict[str, TreeNode] = {}
        self._parents: dict[str, str | None] = {root.id: None}
        self._order: list[TreeNode] = []

        visited: set[int] = set()
        stack = [root]
        while stack:
            node = stack.pop()
            if id(node) in visited:
                raise InvalidTreeError(
                    f"Node {node.id} is reachable more than once (cycle or shared node)"
                )
            visited.add(id(node))
            if node.id in self._nodes:
                raise InvalidTreeError(f"Duplicate node id {node.id}")
            self._nodes[node.id] = node
            self._order.append(node)
            for child in reversed(node.children):
                self._parents[child.id] = node.id
                stack.append(child)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConversationTree":
        """Deserialize from the chat store's tree_structure payload."""
        return cls(node_from_dict(data))

    @property
    def root(self) -> TreeNode:
        return self._root

    @property
    def root_id(self) -> str:
        return self._root.id

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[TreeNode]:
        return iter(self._order)

    def all_nodes(self) -> list[TreeNode]:
        """All nodes in pre-order."""
        return list(self._order)

    def find_by_id(self, node_id: str | None) -> TreeNode | None:
        """Get a node by id, or None if it is not in this snapshot."""
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def path_to(self, node_id: str | None) -> list[TreeNode]:
        """Root-to-node chain (inclusive). Empty if the node is absent."""
        if node_id not in self._nodes:
            return []
        path = []
        current: str | None = node_id
        while current is not None:
            path.append(self._nodes[current])
            current = self._parents[current]
        path.reverse()
        return path

    def get_parent(self, node_id: str) -> TreeNode | None:
        parent_id = self._parents.get(node_id)
        return self._nodes[parent_id] if parent_id is not None else None

    def get_children(self, node_id: str) -> list[TreeNode]:
        node = self._nodes.get(node_id)
        return list(node.children) if node else []

    def is_leaf(self, node_id: str) -> bool:
        node = self._nodes.get(node_id)
        return node.is_leaf if node else False

    def descendants(self, node_id: str) -> list[TreeNode]:
        """All nodes below ``node_id`` in pre-order, excluding the node itself."""
        node = self._nodes.get(node_id)
        if not node:
            return []
        result = []
        stack = list(reversed(node.children))
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(current.children))
        return result

    def leaves(self) -> list[TreeNode]:
        """All leaf nodes in pre-order."""
        return [node for node in self._order if node.is_leaf]

    def latest_leaf(self) -> TreeNode | None:
        """
        The most recent leaf, using the lexicographically greatest id as a
        proxy for creation time. Only valid while the id generator emits
        ids that sort in creation order.
        """
        leaves = self.leaves()
        if not leaves:
            return None
        return max(leaves, key=lambda node: node.id)

    def fingerprint(self) -> tuple[tuple[str, str, int], ...]:
        """Structural key (id, role, child count per node) used by view caches."""
        return tuple((n.id, n.role.value, len(n.children)) for n in self._order)


@dataclass(frozen=True)
class ChatSnapshot:
    """Authoritative chat state returned by a single fetch."""

    chat_id: str
    tree: ConversationTree
    messages: tuple[HistoryMessage, ...] = ()
    title: str = "New Chat"
    system_prompt: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

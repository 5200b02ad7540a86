"""Render coordinates for a conversation tree.

Positions are derived data: recomputed from scratch for every snapshot,
never stored back into the tree.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from loguru import logger

from config.layout import LayoutSettings

from ..models import Role
from .data import ConversationTree, TreeNode


@dataclass
class RenderNode:
    node: TreeNode
    x: float
    y: float
    level: int

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def role(self) -> Role:
        return self.node.role

    @property
    def content(self) -> str:
        return self.node.content


@dataclass(frozen=True)
class Connection:
    from_id: str
    to_id: str
    path: str
    is_active: bool


@dataclass(frozen=True)
class TreeLayout:
    width: float
    height: float
    nodes: tuple[RenderNode, ...]
    connections: tuple[Connection, ...] = ()

    def get(self, node_id: str) -> RenderNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


def _place_nodes(tree: ConversationTree, cfg: LayoutSettings) -> list[RenderNode]:
    """Top-down pass: children spread symmetrically around the parent's x."""
    level_height = cfg.node_height + cfg.vertical_spacing
    placed: list[RenderNode] = []
    # (node, level, x)
    stack: list[tuple[TreeNode, int, float]] = [(tree.root, 0, cfg.root_x)]

    while stack:
        node, level, x = stack.pop()
        placed.append(
            RenderNode(node=node, x=x, y=cfg.base_offset + level * level_height, level=level)
        )
        count = len(node.children)
        for index in reversed(range(count)):
            offset = (index - (count - 1) / 2) * cfg.horizontal_spacing
            stack.append((node.children[index], level + 1, x + offset))

    return placed


def resolve_overlaps(nodes: Iterable[RenderNode], min_distance: float) -> None:
    """
    Push nodes right until neighbours on a level are ``min_distance`` apart.

    A shift applies to every node after the offending one on that level,
    so separation cascades instead of being fixed pairwise.
    """
    levels: dict[int, list[RenderNode]] = defaultdict(list)
    for node in nodes:
        levels[node.level].append(node)

    for level_nodes in levels.values():
        level_nodes.sort(key=lambda n: n.x)
        for i in range(1, len(level_nodes)):
            gap = level_nodes[i].x - level_nodes[i - 1].x
            if gap < min_distance:
                shift = min_distance - gap
                for later in level_nodes[i:]:
                    later.x += shift


def _connections(
    tree: ConversationTree,
    by_id: dict[str, RenderNode],
    cfg: LayoutSettings,
    active_ids: set[str],
) -> list[Connection]:
    result = []
    for parent in tree:
        start = by_id[parent.id]
        for child in parent.children:
            end = by_id[child.id]
            path = (
                f"M {start.x + cfg.node_width / 2} {start.y + cfg.node_height} "
                f"L {end.x + cfg.node_width / 2} {end.y}"
            )
            result.append(
                Connection(
                    from_id=parent.id,
                    to_id=child.id,
                    path=path,
                    is_active=parent.id in active_ids and child.id in active_ids,
                )
            )
    return result


def compute_layout(
    tree: ConversationTree | None,
    settings: LayoutSettings | None = None,
    current_path: Iterable[TreeNode] = (),
) -> TreeLayout:
    """
    Lay out every node of ``tree``.

    Args:
        tree: Snapshot to lay out; None yields an empty layout
        settings: Node geometry and spacing
        current_path: Selected root path; its edges are marked active

    Returns:
        TreeLayout with positioned nodes (pre-order) and edges
    """
    cfg = settings or LayoutSettings()
    if tree is None:
        return TreeLayout(width=cfg.node_width, height=cfg.node_height, nodes=())

    nodes = _place_nodes(tree, cfg)
    resolve_overlaps(nodes, cfg.min_separation)

    by_id = {n.id: n for n in nodes}
    active_ids = {n.id for n in current_path}
    connections = _connections(tree, by_id, cfg, active_ids)

    width = max(n.x for n in nodes) + cfg.node_width
    height = max(n.y for n in nodes) + cfg.node_height
    logger.debug(f"TREE_LAYOUT: {len(nodes)} nodes, {width}x{height}")
    return TreeLayout(
        width=width,
        height=height,
        nodes=tuple(nodes),
        connections=tuple(connections),
    )

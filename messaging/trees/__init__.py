"""Conversation tree data structures, navigation, layout and views."""

from .data import ChatSnapshot, ConversationTree, TreeNode, node_from_dict
from .layout import Connection, RenderNode, TreeLayout, compute_layout
from .navigation import NavigationState, NavigationStateMachine, SelectionState
from .views import TreeFilterCache, TreeFilterOptions, branch_thread, filter_tree

__all__ = [
    "ChatSnapshot",
    "Connection",
    "ConversationTree",
    "NavigationState",
    "NavigationStateMachine",
    "RenderNode",
    "SelectionState",
    "TreeFilterCache",
    "TreeFilterOptions",
    "TreeLayout",
    "TreeNode",
    "branch_thread",
    "compute_layout",
    "filter_tree",
    "node_from_dict",
]

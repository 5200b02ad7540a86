import pytest

from messaging.models import HistoryMessage
from messaging.trees.data import ConversationTree


def node_dict(node_id, role, content="", children=()):
    return {"uuid": node_id, "role": role, "content": content, "children": list(children)}


@pytest.fixture
def tree_dict():
    """
    m01 system
    └ m02 user "Hi"
      └ m03 assistant "Hello"
        ├ m04 user "Tell me a joke"
        │ └ m05 assistant "Why did..."
        └ m06 user "Tell me a fact"
          └ m07 assistant "Octopuses..."
    """
    return node_dict(
        "m01",
        "system",
        "You are helpful",
        [
            node_dict(
                "m02",
                "user",
                "Hi",
                [
                    node_dict(
                        "m03",
                        "assistant",
                        "Hello",
                        [
                            node_dict(
                                "m04",
                                "user",
                                "Tell me a joke",
                                [node_dict("m05", "assistant", "Why did...")],
                            ),
                            node_dict(
                                "m06",
                                "user",
                                "Tell me a fact",
                                [node_dict("m07", "assistant", "Octopuses...")],
                            ),
                        ],
                    )
                ],
            )
        ],
    )


@pytest.fixture
def tree(tree_dict):
    return ConversationTree.from_dict(tree_dict)


@pytest.fixture
def history(tree):
    return tuple(HistoryMessage(id=n.id, role=n.role, content=n.content) for n in tree)


@pytest.fixture
def make_node():
    return node_dict

"""
_recorder.py
============
Interface implementations that record what they are told into ``Node``
trees.  They are how nemoto consumes an instructee, and they double as
reference implementations of the protocols in ``_interfaces.py``.

Both branch and node annotations land in ``Node.annotation`` of the node
below the branch.
"""

from typing import Any, Optional

from nemoto._node import Node


class NodeRecorder:
    """Records into one ``Node``; satisfies both ``RNode`` and ``UNode``."""

    def __init__(self, node: Node, branch: Optional["BranchRecorder"] = None):
        self.node = node
        self._branch = branch

    def parent_branch(self) -> Optional["BranchRecorder"]:
        return self._branch

    def set_label(self, label: Optional[str]) -> None:
        self.node.name = label

    def set_annotation(self, annotation: Any) -> None:
        self.node.annotation = annotation

    def reset_children(self) -> None:
        for child in self.node.children:
            child.parent = None
        self.node.children = []

    def create_child(self) -> "NodeRecorder":
        child = self.node.add_child(Node())
        recorder = NodeRecorder(child)
        recorder._branch = BranchRecorder(parent=self, child=recorder)
        return recorder


class BranchRecorder:
    """The branch above a recorded child; satisfies ``RBranch`` and ``UBranch``."""

    def __init__(self, parent: NodeRecorder, child: NodeRecorder):
        self._parent = parent
        self._child = child

    def set_length(self, length: float) -> None:
        self._child.node.length = float(length)

    def set_annotation(self, annotation: Any) -> None:
        self._child.node.annotation = annotation

    def more_recent_node(self) -> NodeRecorder:
        return self._child

    def less_recent_node(self) -> NodeRecorder:
        return self._parent

    # Unrooted naming: "closer" to the base branch.
    closer_node = less_recent_node
    farther_node = more_recent_node


class BaseBranchRecorder:
    """The base branch of an unrooted recording."""

    def __init__(self):
        self.left = NodeRecorder(Node())
        self.right = NodeRecorder(Node())
        self.length = 0.0
        self.annotation = None

    def left_node(self) -> NodeRecorder:
        return self.left

    def right_node(self) -> NodeRecorder:
        return self.right

    def set_length(self, length: float) -> None:
        self.length = float(length)

    def set_annotation(self, annotation: Any) -> None:
        self.annotation = annotation


class RootedNodeRecorder:
    """
    ``RootedTreeInterface`` that builds a ``Node`` tree.

    Examples
    --------
    >>> recorder = RootedNodeRecorder()
    >>> manipulator.instruct(recorder)
    >>> recorder.root.leaf_names
    ['A', 'B', 'C', 'D']
    """

    def __init__(self):
        self.root: Optional[Node] = None

    def create_root(self) -> NodeRecorder:
        self.root = Node()
        return NodeRecorder(self.root)


class UnrootedNodeRecorder:
    """``UnrootedTreeInterface`` that records the base branch and both sides."""

    def __init__(self):
        self.base: Optional[BaseBranchRecorder] = None

    def create_base(self) -> BaseBranchRecorder:
        self.base = BaseBranchRecorder()
        return self.base

    def as_node(self) -> Node:
        """Root the recording on the midpoint of its base branch."""
        if self.base is None:
            raise ValueError("Nothing has been recorded yet.")
        half = self.base.length / 2.0
        left, right = self.base.left.node, self.base.right.node
        left.length = right.length = half
        left.annotation = right.annotation = self.base.annotation
        return Node(children=[left, right])

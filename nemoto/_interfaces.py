"""
_interfaces.py
==============
Visitor protocols for streaming trees in and out of nemoto.

An external tree library does not have to convert to ``Node``: it can
implement one of the *instructable* protocols below and let nemoto (or any
other producer) drive construction call by call.

Rooted protocol
---------------
    RootedTreeInterface.create_root() -> RNode
    RNode:   parent_branch(), set_label(), set_annotation(),
             reset_children(), create_child() -> RNode
    RBranch: set_length(), set_annotation(),
             more_recent_node(), less_recent_node()

Unrooted protocol
-----------------
    UnrootedTreeInterface.create_base() -> BaseBranch
    BaseBranch: left_node(), right_node(), set_length(), set_annotation()
    UNode:   parent_branch(), set_label(), set_annotation(),
             reset_children(), create_child() -> UNode
    UBranch: closer_node(), farther_node(), set_length(), set_annotation()

Anything with an ``instruct(interface)`` method is an *instructee*: it
pushes its own structure into the interface it is given.
``TreeManipulator`` is one, and accepts others in its
``from_rooted_instructee`` / ``from_unrooted_instructee`` constructors.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from nemoto._node import Node


# ============================================================================ #
# Rooted protocol
# ============================================================================ #


@runtime_checkable
class RBranch(Protocol):
    def set_length(self, length: float) -> None: ...

    def set_annotation(self, annotation: Any) -> None: ...

    def more_recent_node(self) -> "RNode": ...

    def less_recent_node(self) -> "RNode": ...


@runtime_checkable
class RNode(Protocol):
    def parent_branch(self) -> Optional[RBranch]: ...

    def set_label(self, label: Optional[str]) -> None: ...

    def set_annotation(self, annotation: Any) -> None: ...

    def reset_children(self) -> None: ...

    def create_child(self) -> "RNode": ...


@runtime_checkable
class RootedTreeInterface(Protocol):
    def create_root(self) -> RNode: ...


# ============================================================================ #
# Unrooted protocol
# ============================================================================ #


@runtime_checkable
class UBranch(Protocol):
    def closer_node(self) -> "UNode": ...

    def farther_node(self) -> "UNode": ...

    def set_length(self, length: float) -> None: ...

    def set_annotation(self, annotation: Any) -> None: ...


@runtime_checkable
class UNode(Protocol):
    def parent_branch(self) -> Optional[UBranch]: ...

    def set_label(self, label: Optional[str]) -> None: ...

    def set_annotation(self, annotation: Any) -> None: ...

    def reset_children(self) -> None: ...

    def create_child(self) -> "UNode": ...


@runtime_checkable
class BaseBranch(Protocol):
    def left_node(self) -> UNode: ...

    def right_node(self) -> UNode: ...

    def set_length(self, length: float) -> None: ...

    def set_annotation(self, annotation: Any) -> None: ...


@runtime_checkable
class UnrootedTreeInterface(Protocol):
    def create_base(self) -> BaseBranch: ...


# ============================================================================ #
# Instructees
# ============================================================================ #


class RootedInstructee(Protocol):
    def instruct(self, interface: RootedTreeInterface) -> None: ...


class UnrootedInstructee(Protocol):
    def instruct(self, interface: UnrootedTreeInterface) -> None: ...


# ============================================================================ #
# Driving an interface from a Node tree
# ============================================================================ #


def instruct_rooted(root: Node, interface: RootedTreeInterface) -> None:
    """
    Replay the tree below *root* into a rooted interface.

    ``Node.annotation`` is passed to the branch above each non-root node
    (and to the node itself for the root, which has no branch).
    """
    target = interface.create_root()
    target.set_label(root.name)
    if root.annotation is not None:
        target.set_annotation(root.annotation)
    _emit_children(root, target)


def instruct_unrooted(root: Node, interface: UnrootedTreeInterface) -> None:
    """
    Replay the tree below *root* into an unrooted interface.

    The two children of a bifurcating root become the ends of the base
    branch, whose length is the sum of theirs.  A root with any other
    number of children is first midpoint-rooted.
    """
    if root.n_children != 2:
        from nemoto._manipulator import TreeManipulator

        root = TreeManipulator(root).midpoint_rooted()

    left, right = root.children
    base = interface.create_base()
    base.set_length(left.length + right.length)
    annotation = left.annotation if left.annotation is not None else right.annotation
    if annotation is not None:
        base.set_annotation(annotation)

    for side, target in ((left, base.left_node()), (right, base.right_node())):
        target.set_label(side.name)
        _emit_children(side, target)


def _emit_children(node: Node, target) -> None:
    stack = [(node, target)]
    while stack:
        source, sink = stack.pop()
        sink.reset_children()
        for child in source.children:
            child_sink = sink.create_child()
            child_sink.set_label(child.name)
            branch = child_sink.parent_branch()
            branch.set_length(child.length)
            if child.annotation is not None:
                branch.set_annotation(child.annotation)
            if child.children:
                stack.append((child, child_sink))

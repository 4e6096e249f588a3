"""
_node.py
========
The rooted tree view: a plain parent/child node tree with branch lengths,
leaf names and a generic annotation slot.

This is the type the engine consumes (to build an unrooted graph) and
produces (every rooting, graft or render operation returns a fresh root
``Node``).  It holds no derived state; all traversals are iterative so deep
caterpillar trees do not hit the recursion limit.
"""

from typing import Any, Iterator, List, Optional


class Node:
    """
    A node of a rooted phylogenetic tree.

    Attributes
    ----------
    name       : str | None   Taxon name (leaves); optional label otherwise.
    length     : float        Branch length to the parent (0.0 for the root).
    children   : list[Node]   Ordered children; empty for leaves.
    annotation : Any          Generic per-node payload (support value, …).
    parent     : Node | None  Back reference maintained by ``add_child``.
    height     : float | None Filled by ``assign_heights``.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        length: float = 0.0,
        children: Optional[List["Node"]] = None,
        annotation: Any = None,
    ) -> None:
        self.name = name
        self.length = float(length)
        self.annotation = annotation
        self.parent: Optional[Node] = None
        self.height: Optional[float] = None
        self.children: List[Node] = []
        for child in children or ():
            self.add_child(child)

    def __repr__(self) -> str:
        if self.is_leaf():
            return f"Node({self.name!r}, length={self.length:g})"
        return (
            f"Node(<{len(self.children)} children, {self.n_leaves} leaves>, "
            f"length={self.length:g})"
        )

    # ================================================================== #
    # Structure                                                            #
    # ================================================================== #

    def is_leaf(self) -> bool:
        return not self.children

    def is_root(self) -> bool:
        return self.parent is None

    def add_child(self, child: "Node") -> "Node":
        """Append *child* (setting its parent) and return it."""
        child.parent = self
        self.children.append(child)
        return child

    @property
    def n_children(self) -> int:
        return len(self.children)

    # ================================================================== #
    # Traversal                                                            #
    # ================================================================== #

    def iter_preorder(self) -> Iterator["Node"]:
        """Yield nodes parent-before-children, children in order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def iter_postorder(self) -> Iterator["Node"]:
        """Yield nodes children-before-parent, children in order."""
        stack = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded or not node.children:
                yield node
                continue
            stack.append((node, True))
            for child in reversed(node.children):
                stack.append((child, False))

    def leaves(self) -> List["Node"]:
        return [n for n in self.iter_preorder() if n.is_leaf()]

    @property
    def leaf_names(self) -> List[str]:
        """Leaf names in left-to-right order."""
        return [n.name for n in self.leaves()]

    @property
    def n_leaves(self) -> int:
        return sum(1 for n in self.iter_preorder() if n.is_leaf())

    def total_length(self) -> float:
        """Sum of the branch lengths below this node (own length excluded)."""
        return float(sum(n.length for n in self.iter_preorder() if n is not self))

    # ================================================================== #
    # Derived copies                                                       #
    # ================================================================== #

    def copy(self) -> "Node":
        """
        Return a deep copy of the subtree rooted here.

        Names, lengths and annotations are copied by reference (annotations
        are treated as opaque); the node objects themselves are new.
        """
        root = Node(self.name, self.length, annotation=self.annotation)
        stack = [(self, root)]
        while stack:
            original, clone = stack.pop()
            for child in original.children:
                child_clone = clone.add_child(
                    Node(child.name, child.length, annotation=child.annotation)
                )
                stack.append((child, child_clone))
        return root

    def assign_heights(self) -> "Node":
        """
        Convert branch lengths into node heights, in place.

        The root's height is the longest root-to-tip path; every other node
        sits at its parent's height minus its own branch length, so the
        deepest tip has height 0.

        Returns
        -------
        Node   ``self``, for chaining.
        """
        depth = {id(self): 0.0}
        deepest = 0.0
        for node in self.iter_preorder():
            d = depth[id(node)]
            if d > deepest:
                deepest = d
            for child in node.children:
                depth[id(child)] = d + child.length
        for node in self.iter_preorder():
            node.height = deepest - depth[id(node)]
        return self

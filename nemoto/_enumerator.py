"""
_enumerator.py
==============
Lazy enumeration of every rooting of a tree.
"""

from typing import List, Sequence

from nemoto._node import Node


class RootIterator:
    """
    Iterator over the rootings of a graph, one per edge, rendered on demand.

    Each rooting splits its edge to balance the longest paths on both
    sides.  Supports the iterator protocol as well as explicit
    ``has_next()`` / ``next_tree()`` calls; ``reset()`` rewinds it.

    Parameters
    ----------
    graph : UnrootedGraph
    edges : sequence of int
        Edges to root on, in order.
    heights : bool
        Fill ``Node.height`` on each rendered tree.

    Examples
    --------
    >>> it = manipulator.every_root_iterator()
    >>> len(it)
    5
    >>> while it.has_next():
    ...     tree = it.next_tree()
    """

    def __init__(self, graph, edges: Sequence[int], heights: bool = False) -> None:
        self._graph = graph
        self._edges: List[int] = list(edges)
        self._heights = heights
        self._position = 0

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> "RootIterator":
        return self

    def __next__(self) -> Node:
        if self._position >= len(self._edges):
            raise StopIteration
        edge = self._edges[self._position]
        self._position += 1
        root = self._graph.render_balanced(edge)
        if self._heights:
            root.assign_heights()
        return root

    def has_next(self) -> bool:
        return self._position < len(self._edges)

    def next_tree(self) -> Node:
        """
        Return the next rooting.

        Raises
        ------
        StopIteration   when every rooting has been returned.
        """
        return next(self)

    def reset(self) -> None:
        """Rewind to the first rooting."""
        self._position = 0

"""
_branch.py
==========
Per-edge handles returned by ``TreeManipulator.branch_access()``.
"""

from typing import Any, Tuple

from nemoto._builder import ConstructionPolicy, GraphBuilder
from nemoto._logging import log_graph_built
from nemoto._node import Node


class BranchAccess:
    """
    A handle on one edge of a manipulator's graph.

    Parameters
    ----------
    manipulator : TreeManipulator
    edge : int
        Edge index; checked on construction.

    Raises
    ------
    UnknownEdgeError   if *edge* is not an edge of the manipulator's graph.
    """

    def __init__(self, manipulator, edge: int) -> None:
        manipulator.graph.check_edge(edge)
        self._manipulator = manipulator
        self.edge = int(edge)

    def __repr__(self) -> str:
        return f"BranchAccess(edge={self.edge}, length={self.length:g})"

    @property
    def length(self) -> float:
        return self._manipulator.graph.length(self.edge)

    @property
    def annotation(self) -> Any:
        return self._manipulator.graph.edge_annotations[self.edge]

    def label_split(self) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        """
        Leaf names on either side of this branch.

        Returns
        -------
        (end-0 names, end-1 names), each a sorted tuple.
        """
        return self._manipulator.graph.label_split(self.edge)

    def set_annotation(self, annotation: Any) -> None:
        """Replace the branch annotation; later renderings carry the new value."""
        self._manipulator.graph.edge_annotations[self.edge] = annotation

    def rooted_here(self, heights: bool = False) -> Node:
        """Root the tree on this branch, balancing the longest paths."""
        return self._manipulator.rooted_at(self.edge, heights=heights)

    def attach_subtree(self, subtree: Node, policy=ConstructionPolicy.MIMIC):
        """
        Graft *subtree* onto the midpoint of this branch.

        The branch is split in two equal halves by a new node, and *subtree*
        hangs from that node on a branch of ``subtree.length``.  Both halves
        keep this branch's annotation.

        Parameters
        ----------
        subtree : Node
            Rooted subtree to attach; it is not modified.
        policy : ConstructionPolicy or str, default MIMIC
            Construction policy applied to the subtree's polytomies.

        Returns
        -------
        TreeManipulator
            A new manipulator over a new graph.  This manipulator, its graph
            and its caches are unchanged.
        """
        source = self._manipulator
        builder = GraphBuilder(policy)
        graph = builder.attach(source.graph, self.edge, subtree)
        input_unrooted = True if self.edge == 0 else source.input_unrooted
        grafted = type(source)._from_graph(graph, source, input_unrooted)
        log_graph_built(
            builder.policy.value,
            graph.n_leaves,
            graph.n_nodes,
            graph.n_edges,
            grafted.input_unrooted,
        )
        return grafted

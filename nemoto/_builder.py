"""
_builder.py
===========
Conversion of a rooted tree view into the unrooted graph arena.

One iterative "expand-or-absorb" algorithm serves all three construction
policies:

  MIMIC    Each branching point becomes one graph node whose degree is its
           child count + 1; no structural change.
  EXPAND   A branching point with more than two children becomes a
           right-leaning ladder of binary graph nodes joined by zero-length
           connector edges, so every internal node has degree 3:

               (A, B, C, D)  →  (A, (B, (C, D):0.0):0.0)

  REDUCE   A non-leaf child whose branch length is at or below
           ``MIN_BRANCH_LENGTH`` is absorbed: its own (recursively reduced)
           children are spliced into the parent's edge list, turning a
           chain of near-zero bifurcations into one true polytomy.

Unary nodes (a single child) are never materialized: the chain is
collapsed and the branch lengths summed, keeping the degree invariants of
the graph.

Base cases
----------
* Root with two children: a single base edge joins the two child subtrees
  (length = sum of both child lengths).
* Root with three or more children: the root itself becomes a graph node
  and its first incident edge is the base edge.

In both cases the base edge is edge 0 of the finished graph.
"""

import enum
import logging
from typing import Any, List, Optional, Tuple

import numpy as np

from nemoto._exceptions import TooFewLeavesError, TreeUsageError
from nemoto._graph import UnrootedGraph
from nemoto._node import Node


logger = logging.getLogger(__name__)

# Branches at or below this length are absorbed under REDUCE.
MIN_BRANCH_LENGTH = 1e-8


class ConstructionPolicy(enum.Enum):
    """How rooted branching points are translated into graph nodes."""

    MIMIC = "mimic"
    EXPAND = "expand"
    REDUCE = "reduce"


DEFAULT_POLICY = ConstructionPolicy.MIMIC

# (rooted node, branch length to its graph parent, branch annotation)
_Entry = Tuple[Node, float, Any]


class GraphBuilder:
    """
    Accumulates graph nodes and edges in plain lists, then packs them into
    an ``UnrootedGraph``.

    A builder is single-use: call exactly one of ``build``,
    ``build_from_sides`` or ``attach``.

    Attributes (statistics, valid after building)
    ---------------------------------------------
    n_expanded   : int   Polytomies rewritten as ladders (EXPAND).
    n_connectors : int   Zero-length connector edges added (EXPAND).
    n_absorbed   : int   Near-zero branches absorbed (REDUCE).
    n_unary      : int   Unary nodes collapsed.
    """

    def __init__(self, policy=DEFAULT_POLICY) -> None:
        self.policy = ConstructionPolicy(policy)
        self.n_expanded = 0
        self.n_connectors = 0
        self.n_absorbed = 0
        self.n_unary = 0

        self._labels: List[Optional[str]] = []
        self._sources: List[Optional[Node]] = []
        self._adjacency: List[List[int]] = []
        self._ends: List[List[int]] = []
        self._lengths: List[float] = []
        self._annotations: List[Any] = []

        # Pending work: (graph node, child entries, has a parent edge)
        self._tasks: List[Tuple[int, List[_Entry], bool]] = []

    # ================================================================== #
    # Entry points                                                         #
    # ================================================================== #

    def build(self, root: Node) -> Tuple[UnrootedGraph, float, bool]:
        """
        Build the graph for the rooted tree below *root*.

        Returns
        -------
        (graph, first_child_length, input_unrooted)
            ``first_child_length`` is the share of the base edge that
            belongs to its end-0 side in the input rooting;
            ``input_unrooted`` is True when the root had > 2 children.

        Raises
        ------
        TooFewLeavesError   if the tree has fewer than 3 leaves.
        """
        root, _ = self._skip_unary(root, 0.0)
        n_leaves = root.n_leaves
        if n_leaves < 3:
            raise TooFewLeavesError(n_leaves)

        children = [self._skip_unary(c, c.length) + (c.annotation,) for c in root.children]

        if len(children) == 2:
            (left, left_length, left_ann), (right, right_length, right_ann) = children
            annotation = left_ann if left_ann is not None else right_ann
            self._build_base_edge(
                left, right, left_length + right_length, annotation
            )
            graph = self._finish()
            return graph, left_length, False

        # Edge 0 joins the former root to its first child; its end-0 share
        # is zero so the default rooting sits on the former root.
        base = self._add_node(root)
        self._tasks.append((base, self._child_entries(root), False))
        self._run()
        graph = self._finish()
        return graph, 0.0, True

    def build_from_sides(
        self, left: Node, right: Node, length: float, annotation: Any = None
    ) -> UnrootedGraph:
        """
        Build a graph whose base edge (of *length*) joins the rooted sides
        *left* and *right*.  Used for input streamed through the unrooted
        visitor protocol.
        """
        left, left_extra = self._skip_unary(left, 0.0)
        right, right_extra = self._skip_unary(right, 0.0)
        n_leaves = left.n_leaves + right.n_leaves
        if n_leaves < 3:
            raise TooFewLeavesError(n_leaves)
        self._build_base_edge(left, right, length + left_extra + right_extra, annotation)
        return self._finish()

    def attach(self, graph: UnrootedGraph, edge: int, subtree: Node) -> UnrootedGraph:
        """
        Return a copy of *graph* in which *edge* is split at its midpoint by
        a new node carrying *subtree* as a third branch.

        The new branch has the subtree root's ``length``.  Both halves of
        the split edge keep its annotation; edge index *edge* remains the
        half attached to the original end 0, so the base edge keeps its
        index.  *graph* is not modified.
        """
        graph.check_edge(edge)
        if not isinstance(subtree, Node):
            raise TreeUsageError(
                f"Subtree must be a Node, got {type(subtree).__name__}."
            )
        self._load(graph)

        a, b = self._ends[edge]
        half = self._lengths[edge] / 2.0
        annotation = self._annotations[edge]

        joint = len(self._labels)
        self._labels.append(None)
        self._sources.append(None)
        self._adjacency.append([edge])

        # Re-point the far half of the split edge at the new joint node.
        self._ends[edge] = [a, joint]
        self._lengths[edge] = half
        far_half = len(self._ends)
        self._ends.append([joint, b])
        self._lengths.append(half)
        self._annotations.append(annotation)
        self._adjacency[joint].append(far_half)
        slot = self._adjacency[b].index(edge)
        self._adjacency[b][slot] = far_half

        node, length = self._skip_unary(subtree, subtree.length)
        self._attach_child(joint, (node, length, subtree.annotation))
        self._run()
        return self._finish()

    # ================================================================== #
    # Construction                                                         #
    # ================================================================== #

    def _build_base_edge(self, left: Node, right: Node, length: float, annotation: Any) -> None:
        first = self._add_node(left)
        second = self._add_node(right)
        self._add_edge(first, second, length, annotation)
        # End 1 first so the stack unwinds the end-0 side first.
        if not right.is_leaf():
            self._tasks.append((second, self._child_entries(right), True))
        if not left.is_leaf():
            self._tasks.append((first, self._child_entries(left), True))
        self._run()

    def _run(self) -> None:
        """Drain the task stack, attaching child entries to graph nodes."""
        expand = self.policy is ConstructionPolicy.EXPAND
        while self._tasks:
            g, entries, has_parent = self._tasks.pop()
            capacity = 2 if has_parent else 3
            if expand and len(entries) > capacity:
                keep = capacity - 1
                if not self._is_connector(g):
                    self.n_expanded += 1
                for entry in entries[:keep]:
                    self._attach_child(g, entry)
                connector = self._add_node(None)
                self._add_edge(g, connector, 0.0, None)
                self.n_connectors += 1
                self._tasks.append((connector, entries[keep:], True))
            else:
                for entry in entries:
                    self._attach_child(g, entry)

    def _attach_child(self, g: int, entry: _Entry) -> None:
        node, length, annotation = entry
        child = self._add_node(node)
        self._add_edge(g, child, length, annotation)
        if not node.is_leaf():
            self._tasks.append((child, self._child_entries(node), True))

    def _child_entries(self, node: Node) -> List[_Entry]:
        """
        Return the children of *node* as graph entries, applying REDUCE
        absorption and collapsing unary chains.
        """
        reduce = self.policy is ConstructionPolicy.REDUCE
        entries: List[_Entry] = []
        # Explicit stack of child iterators keeps absorption non-recursive.
        stack = [iter(node.children)]
        while stack:
            child = next(stack[-1], None)
            if child is None:
                stack.pop()
                continue
            target, length = self._skip_unary(child, child.length)
            if reduce and not target.is_leaf() and length <= MIN_BRANCH_LENGTH:
                self.n_absorbed += 1
                stack.append(iter(target.children))
                continue
            entries.append((target, length, child.annotation))
        return entries

    def _skip_unary(self, node: Node, length: float) -> Tuple[Node, float]:
        while len(node.children) == 1:
            node = node.children[0]
            length += node.length
            self.n_unary += 1
        return node, length

    # ================================================================== #
    # Arena bookkeeping                                                    #
    # ================================================================== #

    def _add_node(self, source: Optional[Node]) -> int:
        index = len(self._labels)
        self._labels.append(source.name if source is not None else None)
        self._sources.append(source)
        self._adjacency.append([])
        return index

    def _add_edge(self, a: int, b: int, length: float, annotation: Any) -> int:
        index = len(self._ends)
        self._ends.append([a, b])
        self._lengths.append(float(length))
        self._annotations.append(annotation)
        self._adjacency[a].append(index)
        self._adjacency[b].append(index)
        return index

    def _is_connector(self, g: int) -> bool:
        return self._sources[g] is None

    def _load(self, graph: UnrootedGraph) -> None:
        """Seed the builder with a copy of an existing graph's arena."""
        self._labels = list(graph.labels)
        self._sources = list(graph.sources)
        self._adjacency = [list(graph.incident(v)) for v in range(graph.n_nodes)]
        self._ends = graph.edge_ends.tolist()
        self._lengths = graph.edge_length.tolist()
        self._annotations = list(graph.edge_annotations)

    def _finish(self) -> UnrootedGraph:
        n_nodes = len(self._labels)
        degrees = np.fromiter(
            (len(a) for a in self._adjacency), dtype=np.int64, count=n_nodes
        )
        adj_offsets = np.zeros(n_nodes + 1, dtype=np.int64)
        np.cumsum(degrees, out=adj_offsets[1:])
        adj_edges = np.fromiter(
            (e for a in self._adjacency for e in a),
            dtype=np.int32,
            count=int(adj_offsets[-1]),
        )
        graph = UnrootedGraph(
            labels=self._labels,
            sources=self._sources,
            adj_offsets=adj_offsets,
            adj_edges=adj_edges,
            edge_ends=np.asarray(self._ends, dtype=np.int32).reshape(-1, 2),
            edge_length=np.asarray(self._lengths, dtype=np.float64),
            edge_annotations=self._annotations,
        )
        return graph

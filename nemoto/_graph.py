"""
_graph.py
=========
The unrooted graph: an arena of integer-indexed nodes and edges holding one
tree's topology, branch lengths and annotations, plus a per-edge cache of
directed longest-path lengths.

Storage (all built once by ``GraphBuilder``)
-------------------------------------------
Node data
    labels            list[str | None]      Leaf names (internal labels kept).
    sources           list[Node | None]     Rooted-view node each graph node
                                            was built from (None for ladder
                                            connectors and graft joints).
    adj_offsets       int64[n_nodes + 1]    CSR offsets into adj_edges.
    adj_edges         int32[2 * n_edges]    Incident edges per node.  Slot 0
                                            of a non-base node is the edge
                                            towards its construction parent.
Edge data
    edge_ends         int32[n_edges, 2]     End-node indices; column 0 is
                                            "end 0" (first), column 1 "end 1".
    edge_length       float64[n_edges]
    edge_annotations  list[Any]

Edge 0 is the base edge chosen at construction.

Path cache
----------
    max_path          float64[n_edges, 2]
    max_path_known    bool[n_edges, 2]

``max_path[e, x]`` is the longest path starting at ``edge_ends[e, x]`` that
does not cross ``e`` (the "max path via end x").  A cell is either unknown
or holds its final value; reading an unknown cell through
``cached_max_path`` is an invariant violation.  Cells are filled lazily one
at a time (``max_path_via``) or all at once by the O(n) kernel
(``fill_path_cache``).  Lengths are never mutated after construction, so the
cache never needs invalidating except by an explicit ``clear_path_cache``.

Topology is never mutated either: grafting builds a new graph.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from nemoto._backend import import_kernels, resolve_backend, select_kernel
from nemoto._context import get_backend_override
from nemoto._exceptions import GraphInvariantError, OutgroupError, UnknownEdgeError
from nemoto._logging import log_kernel_run
from nemoto._node import Node


logger = logging.getLogger(__name__)

_max_path_kernel, _side_counts_kernel = import_kernels()


class UnrootedGraph:
    """
    Immutable unrooted tree topology with a lazily filled path cache.

    Parameters
    ----------
    labels, sources, adj_offsets, adj_edges, edge_ends, edge_length,
    edge_annotations
        Arena arrays as described in the module docstring.
    """

    def __init__(
        self,
        labels: List[Optional[str]],
        sources: List[Optional[Node]],
        adj_offsets: np.ndarray,
        adj_edges: np.ndarray,
        edge_ends: np.ndarray,
        edge_length: np.ndarray,
        edge_annotations: List[Any],
    ) -> None:
        self.labels = labels
        self.sources = sources
        self.adj_offsets = adj_offsets
        self.adj_edges = adj_edges
        self.edge_ends = edge_ends
        self.edge_length = edge_length
        self.edge_annotations = edge_annotations

        self.n_nodes = len(labels)
        self.n_edges = int(edge_ends.shape[0])

        # Python-side views for traversals (avoid numpy scalar overhead).
        self._ends: List[Tuple[int, int]] = [tuple(p) for p in edge_ends.tolist()]
        offsets = adj_offsets.tolist()
        flat = adj_edges.tolist()
        self._incident: List[Tuple[int, ...]] = [
            tuple(flat[offsets[v]:offsets[v + 1]]) for v in range(self.n_nodes)
        ]
        self._lengths: List[float] = edge_length.tolist()

        self.max_path = np.zeros((self.n_edges, 2), dtype=np.float64)
        self.max_path_known = np.zeros((self.n_edges, 2), dtype=bool)

        self._leaf_index: Optional[Dict[str, int]] = None
        self._split_sizes: Optional[np.ndarray] = None

    def __repr__(self) -> str:
        return (
            f"UnrootedGraph(n_leaves={self.n_leaves}, n_nodes={self.n_nodes}, "
            f"n_edges={self.n_edges})"
        )

    # ================================================================== #
    # Structure                                                            #
    # ================================================================== #

    def incident(self, v: int) -> Tuple[int, ...]:
        """Edges incident to node *v*, in slot order."""
        return self._incident[v]

    def degree(self, v: int) -> int:
        return len(self._incident[v])

    def is_leaf(self, v: int) -> bool:
        return len(self._incident[v]) == 1

    @property
    def n_leaves(self) -> int:
        return sum(1 for adj in self._incident if len(adj) == 1)

    @property
    def leaf_names(self) -> List[str]:
        return [self.labels[v] for v in range(self.n_nodes) if self.is_leaf(v)]

    def ends(self, e: int) -> Tuple[int, int]:
        return self._ends[e]

    def length(self, e: int) -> float:
        return self._lengths[e]

    def check_edge(self, e: int) -> None:
        """Raise ``UnknownEdgeError`` unless *e* is an edge of this graph."""
        if not isinstance(e, (int, np.integer)) or not 0 <= e < self.n_edges:
            raise UnknownEdgeError(e, self.n_edges)

    def end_index(self, e: int, v: int) -> int:
        """
        Return 0 or 1 according to which end of edge *e* node *v* is.

        Raises
        ------
        GraphInvariantError   if *v* is not an end of *e*.
        """
        a, b = self._ends[e]
        if v == a:
            return 0
        if v == b:
            return 1
        raise GraphInvariantError(f"Node {v} is not an end of edge {e} ({a}, {b}).")

    def other_end(self, e: int, v: int) -> int:
        """The end of edge *e* that is not *v*."""
        a, b = self._ends[e]
        if v == a:
            return b
        if v == b:
            return a
        raise GraphInvariantError(f"Node {v} is not an end of edge {e} ({a}, {b}).")

    def leaf_index(self) -> Dict[str, int]:
        """
        Map each leaf name to its node index.

        Raises
        ------
        ValueError   if two leaves share a name.
        """
        if self._leaf_index is None:
            index: Dict[str, int] = {}
            for v in range(self.n_nodes):
                if not self.is_leaf(v):
                    continue
                name = self.labels[v]
                if name in index:
                    raise ValueError(f"Duplicate leaf name '{name}'.")
                index[name] = v
            self._leaf_index = index
        return self._leaf_index

    def related_node(self, source: Node) -> Optional[int]:
        """Graph node built from the rooted-view node *source* (by identity)."""
        for v, s in enumerate(self.sources):
            if s is source:
                return v
        return None

    # ================================================================== #
    # Traversal                                                            #
    # ================================================================== #

    def all_edges(self) -> List[int]:
        """
        Every edge exactly once, in deterministic depth-first order: the base
        edge, then everything reached through its end 0, then through end 1.
        """
        order = [0]
        a, b = self._ends[0]
        for v in (a, b):
            order.extend(e for e, _ in self.iter_side(0, v))
        return order

    def iter_side(self, e: int, v: int) -> Iterator[Tuple[int, int]]:
        """
        Yield ``(edge, far_node)`` for every edge on the side of *e* at its
        end *v*, in pre-order (adjacency order at each node).  *e* itself is
        not yielded.
        """
        self.end_index(e, v)
        stack = [(v, e)]
        while stack:
            node, via = stack.pop()
            children = []
            for c in self._incident[node]:
                if c == via:
                    continue
                children.append((self.other_end(c, node), c))
            for far, c in reversed(children):
                stack.append((far, c))
            # Yield after scheduling so order is parent-first.
            if node != v or via != e:
                yield via, node

    def side_leaves(self, e: int, v: int) -> List[str]:
        """Names of the leaves on the side of *e* at end *v*."""
        if self.is_leaf(v):
            return [self.labels[v]]
        return [self.labels[w] for _, w in self.iter_side(e, v) if self.is_leaf(w)]

    def label_split(self, e: int) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        """The bipartition of leaf names induced by edge *e*, each side sorted."""
        self.check_edge(e)
        a, b = self._ends[e]
        return (
            tuple(sorted(self.side_leaves(e, a))),
            tuple(sorted(self.side_leaves(e, b))),
        )

    # ================================================================== #
    # Path cache                                                           #
    # ================================================================== #

    def clear_path_cache(self) -> None:
        """Invalidate every cached max-path cell."""
        self.max_path_known[:] = False

    def cached_max_path(self, e: int, x: int) -> float:
        """
        Read a cache cell that must already be known.

        Raises
        ------
        GraphInvariantError   if the cell has not been computed.
        """
        if not self.max_path_known[e, x]:
            raise GraphInvariantError(
                f"Max-path cache for edge {e} end {x} read before it was computed."
            )
        return float(self.max_path[e, x])

    def max_path_via(self, e: int, x: int) -> float:
        """
        Longest path from end *x* of edge *e* that does not cross *e*,
        computing (and caching) only the cells it depends on.
        """
        known = self.max_path_known
        if known[e, x]:
            return float(self.max_path[e, x])

        cache = self.max_path
        stack = [(e, x)]
        while stack:
            e1, x1 = stack[-1]
            if known[e1, x1]:
                stack.pop()
                continue
            v = self._ends[e1][x1]
            pending = []
            best = 0.0
            for c in self._incident[v]:
                if c == e1:
                    continue
                w = self.other_end(c, v)
                y = self.end_index(c, w)
                if known[c, y]:
                    cand = self._lengths[c] + cache[c, y]
                    if cand > best:
                        best = cand
                else:
                    pending.append((c, y))
            if pending:
                stack.extend(pending)
                continue
            cache[e1, x1] = best
            known[e1, x1] = True
            stack.pop()
        return float(cache[e, x])

    def fill_path_cache(self, backend: str = "best") -> int:
        """
        Compute every unknown cache cell in one O(n) pass.

        Parameters
        ----------
        backend : str
            'best', 'python' or 'cpu'; a ``use_backend`` override wins.

        Returns
        -------
        int   Number of cells written.
        """
        resolved = resolve_backend(get_backend_override() or backend)
        kernel = select_kernel(_max_path_kernel, resolved)
        written = int(
            kernel(
                self.adj_offsets,
                self.adj_edges,
                self.edge_ends,
                self.edge_length,
                self.max_path,
                self.max_path_known,
            )
        )
        log_kernel_run("max_path", resolved, written)
        return written

    def assert_path_cache(self) -> None:
        """Raise ``GraphInvariantError`` unless every cache cell is known."""
        if not self.max_path_known.all():
            n_missing = int((~self.max_path_known).sum())
            raise GraphInvariantError(
                f"Max-path cache incomplete: {n_missing} cells unknown."
            )

    def path_difference(self, e: int) -> float:
        """Absolute difference of the max paths via both ends of *e*."""
        return abs(self.max_path_via(e, 0) - self.max_path_via(e, 1))

    def balanced_split(self, e: int) -> float:
        """
        Length of the end-0 part of edge *e* when it is split so that the
        longest paths on both sides are as equal as possible.

        The signed path difference is clamped to ``[-L, L]``, so the result
        always lies in ``[0, L]``.
        """
        length = self._lengths[e]
        diff = self.max_path_via(e, 0) - self.max_path_via(e, 1)
        if diff > length:
            diff = length
        elif diff < -length:
            diff = -length
        return (length - diff) / 2.0

    def midpoint_edge(self, backend: str = "best") -> int:
        """
        The edge with the smallest absolute path difference; ties go to the
        edge met first in ``all_edges`` order.
        """
        self.fill_path_cache(backend)
        self.assert_path_cache()
        order = np.asarray(self.all_edges(), dtype=np.int64)
        diffs = np.abs(self.max_path[order, 0] - self.max_path[order, 1])
        return int(order[int(np.argmin(diffs))])

    # ================================================================== #
    # Outgroups                                                            #
    # ================================================================== #

    def side_counts(
        self, names: Sequence[str], backend: str = "best"
    ) -> Tuple[np.ndarray, int]:
        """
        Count outgroup leaves on both sides of every edge.

        Parameters
        ----------
        names : collection of str
            Outgroup names; names that are not leaves are ignored.

        Returns
        -------
        (counts, n_matched)
            ``counts[e, x]`` is the number of matched outgroup leaves on the
            end-x side of edge e.
        """
        index = self.leaf_index()
        weights = np.zeros(self.n_nodes, dtype=np.int64)
        n_matched = 0
        for name in names:
            v = index.get(name)
            if v is not None:
                weights[v] = 1
                n_matched += 1
        return self._run_side_counts(weights, backend), n_matched

    def split_sizes(self, backend: str = "best") -> np.ndarray:
        """Leaf count on both sides of every edge (cached)."""
        if self._split_sizes is None:
            weights = np.fromiter(
                (1 if len(adj) == 1 else 0 for adj in self._incident),
                dtype=np.int64,
                count=self.n_nodes,
            )
            self._split_sizes = self._run_side_counts(weights, backend)
        return self._split_sizes

    def _run_side_counts(self, weights: np.ndarray, backend: str) -> np.ndarray:
        resolved = resolve_backend(get_backend_override() or backend)
        kernel = select_kernel(_side_counts_kernel, resolved)
        counts = kernel(self.adj_offsets, self.adj_edges, self.edge_ends, weights)
        log_kernel_run("side_counts", resolved, 2 * self.n_edges)
        return counts

    def _check_outgroup(self, names, n_matched: int) -> None:
        if n_matched == 0:
            raise OutgroupError(names, "no name matches a leaf of the tree")
        if n_matched == self.n_leaves:
            raise OutgroupError(names, "the outgroup contains every leaf of the tree")

    def _hit_branches(self, counts: np.ndarray, e: int, v: int) -> List[int]:
        """Edges leaving *v* (other than *e*) whose far side holds outgroup leaves."""
        hits = []
        for c in self._incident[v]:
            if c == e:
                continue
            far = self.other_end(c, v)
            if counts[c, self.end_index(c, far)] > 0:
                hits.append(c)
        return hits

    def mrca_edge(self, names, backend: str = "best") -> Tuple[int, int]:
        """
        Find the edge above the most recent common ancestor of an outgroup.

        Starting from the base edge, walks into the only side that holds
        outgroup leaves and keeps descending while exactly one branch does.
        If both sides of the current base hold outgroup leaves the search is
        re-based on neighbouring edges.

        Returns
        -------
        (edge, end)
            The edge to root on and the end index of its outgroup side.

        Raises
        ------
        OutgroupError         if no name matches, or every leaf matches.
        GraphInvariantError   if no base edge separates the outgroup
                              (impossible in a valid graph).
        """
        counts, n_matched = self.side_counts(names, backend)
        self._check_outgroup(names, n_matched)

        visited = {0}
        queue = [0]
        head = 0
        while head < len(queue):
            base = queue[head]
            head += 1
            c0, c1 = counts[base, 0], counts[base, 1]
            if c0 > 0 and c1 > 0:
                for v in self._ends[base]:
                    for c in self._incident[v]:
                        if c not in visited:
                            visited.add(c)
                            queue.append(c)
                continue
            x = 0 if c0 > 0 else 1
            return self._descend(counts, base, x)

        raise GraphInvariantError("No edge separates the outgroup from the rest.")

    def _descend(self, counts: np.ndarray, e: int, x: int) -> Tuple[int, int]:
        v = self._ends[e][x]
        while not self.is_leaf(v):
            hits = self._hit_branches(counts, e, v)
            if len(hits) != 1:
                break
            e = hits[0]
            v = self.other_end(e, v)
        return e, self.end_index(e, v)

    def all_mrca_edges(self, names, backend: str = "best") -> List[Tuple[int, int]]:
        """
        Every minimal edge side that contains the whole outgroup, in
        ``all_edges`` order.

        A side qualifies when it holds every matched outgroup leaf and its
        node is a leaf or has at least two outgoing branches with outgroup
        leaves.  More than one result means the outgroup is not monophyletic
        under any rooting.

        Returns
        -------
        list[(edge, end)]
        """
        counts, n_matched = self.side_counts(names, backend)
        self._check_outgroup(names, n_matched)

        result = []
        for e in self.all_edges():
            for x in (0, 1):
                if counts[e, x] != n_matched:
                    continue
                v = self._ends[e][x]
                if self.is_leaf(v) or len(self._hit_branches(counts, e, v)) >= 2:
                    result.append((e, x))
        return result

    def forms_exact_clade(self, names, backend: str = "best") -> bool:
        """
        True if some edge separates exactly the named leaves (names that are
        not leaves are ignored) from all others.
        """
        counts, n_matched = self.side_counts(names, backend)
        if n_matched == 0 or n_matched == self.n_leaves:
            return False
        sizes = self.split_sizes(backend)
        exact = (counts == n_matched) & (sizes == n_matched)
        return bool(exact.any())

    # ================================================================== #
    # Rendering                                                            #
    # ================================================================== #

    def render(self, e: int, first_length: float) -> Node:
        """
        Root the tree on edge *e*.

        The new root has two children: the end-0 side, whose branch is
        *first_length*, and the end-1 side, whose branch is the remainder of
        the edge length.  Both root branches carry the edge's annotation.
        *first_length* is clamped to ``[0, L]``.
        """
        a, b = self._ends[e]
        length = self._lengths[e]
        if first_length > length:
            first_length = length
        elif first_length < 0.0:
            first_length = 0.0
        annotation = self.edge_annotations[e]
        root = Node()
        first = root.add_child(Node(length=first_length, annotation=annotation))
        second = root.add_child(
            Node(length=length - first_length, annotation=annotation)
        )
        self._render_side(e, a, first)
        self._render_side(e, b, second)
        return root

    def render_balanced(self, e: int) -> Node:
        """Root on edge *e* at the point that best balances the longest paths."""
        return self.render(e, self.balanced_split(e))

    def render_unrooted(self) -> Node:
        """
        Render with an internal node as the root (three or more children).
        Uses end 0 of the base edge, or end 1 if end 0 is a leaf.
        """
        a, b = self._ends[0]
        v = b if self.is_leaf(a) else a
        return self._render_around(v)

    def render_at_node(self, v: int) -> Node:
        """Render with graph node *v* as the root (all its edges as children)."""
        return self._render_around(v)

    def _render_around(self, v: int) -> Node:
        root = Node(self.labels[v])
        for c in self._incident[v]:
            w = self.other_end(c, v)
            child = root.add_child(
                Node(length=self._lengths[c], annotation=self.edge_annotations[c])
            )
            self._render_side(c, w, child)
        return root

    def _render_side(self, e: int, v: int, target: Node) -> None:
        """Fill *target* with the subtree on the side of *e* at end *v*."""
        target.name = self.labels[v]
        stack = [(v, e, target)]
        while stack:
            node, via, out = stack.pop()
            for c in self._incident[node]:
                if c == via:
                    continue
                w = self.other_end(c, node)
                child = out.add_child(
                    Node(
                        self.labels[w],
                        self._lengths[c],
                        annotation=self.edge_annotations[c],
                    )
                )
                stack.append((w, c, child))

"""
_kernels.py
===========
Whole-graph kernels over the unrooted graph arena, compiled with Numba.

This module contains ONLY numba-accelerated code and does not import other
project modules, to avoid import-time complications.  Each kernel is a plain
``@njit(cache=True)`` function; the 'python' backend runs the very same code
uninterpreted through the dispatcher's ``py_func`` attribute, so both
backends share one implementation.

Arena layout (see ``_graph.py``)
--------------------------------
adj_offsets : int64[n_nodes + 1]   CSR offsets into adj_edges.
adj_edges   : int32[2 * n_edges]   Incident edge indices per node.
edge_ends   : int32[n_edges, 2]    End-node indices of each edge.
edge_length : float64[n_edges]

Exported Functions
------------------
_max_path_njit : njit function
    Fill every unknown directed max-path cell in O(n).

_side_counts_njit : njit function
    Count weighted nodes on both sides of every edge in O(n).

Notes
-----
Both kernels hang the graph from end 0 of edge 0, compute per-node values
in one post-order sweep (reverse of a stack pre-order) and derive the
opposite direction in one pre-order sweep.
"""

import numpy as np
from numba import njit


# ======================================================================== #
# Max-path kernel                                                           #
# ======================================================================== #


@njit(cache=True)
def _max_path_njit(adj_offsets, adj_edges, edge_ends, edge_length,
                   max_path, known):
    """
    Fill the directed max-path cache.

    Cell ``max_path[e, x]`` is the longest path starting at node
    ``edge_ends[e, x]`` that never crosses edge ``e``.  The empty path
    counts, so every cell is at least 0.0 (leaf cells are exactly 0.0).

    Cells already flagged in *known* are left untouched, so a cell is
    written at most once between invalidations.

    Parameters
    ----------
    adj_offsets, adj_edges, edge_ends, edge_length : arena arrays
    max_path : float64[n_edges, 2]   Cache values (modified in place).
    known    : bool[n_edges, 2]      Cache validity mask (modified in place).

    Returns
    -------
    int   Number of cells written.
    """
    n_nodes = adj_offsets.shape[0] - 1
    root = edge_ends[0, 0]

    # ── Pre-order with parent edges ─────────────────────────────────────
    order = np.empty(n_nodes, np.int32)
    parent_edge = np.empty(n_nodes, np.int32)
    parent_edge[:] = -1
    stack = np.empty(n_nodes, np.int32)
    top = 0
    stack[0] = root
    pos = 0
    while top >= 0:
        v = stack[top]
        top -= 1
        order[pos] = v
        pos += 1
        for k in range(adj_offsets[v], adj_offsets[v + 1]):
            e = adj_edges[k]
            if e == parent_edge[v]:
                continue
            w = edge_ends[e, 1] if edge_ends[e, 0] == v else edge_ends[e, 0]
            parent_edge[w] = e
            top += 1
            stack[top] = w

    # ── Post-order: longest path down into each subtree ─────────────────
    down = np.zeros(n_nodes, np.float64)
    for i in range(n_nodes - 1, -1, -1):
        v = order[i]
        best = 0.0
        for k in range(adj_offsets[v], adj_offsets[v + 1]):
            e = adj_edges[k]
            if e == parent_edge[v]:
                continue
            w = edge_ends[e, 1] if edge_ends[e, 0] == v else edge_ends[e, 0]
            cand = edge_length[e] + down[w]
            if cand > best:
                best = cand
        down[v] = best

    # ── Pre-order: longest path leaving each node through its parent ────
    # up[w] is the max path from the parent of w that avoids w's edge.
    up = np.zeros(n_nodes, np.float64)
    written = 0
    for i in range(n_nodes):
        u = order[i]
        pe = parent_edge[u]

        # Top two outgoing contributions at u.
        best1 = 0.0
        best1_edge = -1
        best2 = 0.0
        if pe >= 0:
            cand = edge_length[pe] + up[u]
            if cand > best1:
                best2 = best1
                best1 = cand
                best1_edge = pe
            elif cand > best2:
                best2 = cand
        for k in range(adj_offsets[u], adj_offsets[u + 1]):
            e = adj_edges[k]
            if e == pe:
                continue
            w = edge_ends[e, 1] if edge_ends[e, 0] == u else edge_ends[e, 0]
            cand = edge_length[e] + down[w]
            if cand > best1:
                best2 = best1
                best1 = cand
                best1_edge = e
            elif cand > best2:
                best2 = cand

        for k in range(adj_offsets[u], adj_offsets[u + 1]):
            e = adj_edges[k]
            if e == pe:
                continue
            if edge_ends[e, 0] == u:
                w = edge_ends[e, 1]
                xu = 0
            else:
                w = edge_ends[e, 0]
                xu = 1
            xw = 1 - xu
            via_u = best2 if best1_edge == e else best1
            up[w] = via_u
            if not known[e, xu]:
                max_path[e, xu] = via_u
                known[e, xu] = True
                written += 1
            if not known[e, xw]:
                max_path[e, xw] = down[w]
                known[e, xw] = True
                written += 1

    return written


# ======================================================================== #
# Side-count kernel                                                         #
# ======================================================================== #


@njit(cache=True)
def _side_counts_njit(adj_offsets, adj_edges, edge_ends, weights):
    """
    Sum node weights on both sides of every edge.

    ``counts[e, x]`` is the total weight of the nodes reachable from
    ``edge_ends[e, x]`` without crossing ``e``.  With a 0/1 leaf mask this
    gives split sizes; with an outgroup mask it gives outgroup counts.

    Parameters
    ----------
    adj_offsets, adj_edges, edge_ends : arena arrays
    weights : int64[n_nodes]

    Returns
    -------
    int64[n_edges, 2]
    """
    n_nodes = adj_offsets.shape[0] - 1
    n_edges = edge_ends.shape[0]
    root = edge_ends[0, 0]

    order = np.empty(n_nodes, np.int32)
    parent_edge = np.empty(n_nodes, np.int32)
    parent_edge[:] = -1
    stack = np.empty(n_nodes, np.int32)
    top = 0
    stack[0] = root
    pos = 0
    while top >= 0:
        v = stack[top]
        top -= 1
        order[pos] = v
        pos += 1
        for k in range(adj_offsets[v], adj_offsets[v + 1]):
            e = adj_edges[k]
            if e == parent_edge[v]:
                continue
            w = edge_ends[e, 1] if edge_ends[e, 0] == v else edge_ends[e, 0]
            parent_edge[w] = e
            top += 1
            stack[top] = w

    below = np.empty(n_nodes, np.int64)
    for v in range(n_nodes):
        below[v] = weights[v]
    for i in range(n_nodes - 1, 0, -1):
        v = order[i]
        pe = parent_edge[v]
        p = edge_ends[pe, 1] if edge_ends[pe, 0] == v else edge_ends[pe, 0]
        below[p] += below[v]

    total = below[root]
    counts = np.zeros((n_edges, 2), np.int64)
    for i in range(1, n_nodes):
        v = order[i]
        pe = parent_edge[v]
        xv = 0 if edge_ends[pe, 0] == v else 1
        counts[pe, xv] = below[v]
        counts[pe, 1 - xv] = total - below[v]
    return counts

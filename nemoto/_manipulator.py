"""
_manipulator.py
===============
Re-rooting facade for a single phylogenetic tree.

Public API
----------
  TreeManipulator(tree, policy=DEFAULT_POLICY, backend='best')
      Constructor.  Accepts a ``Node`` or a NEWICK string, builds the
      unrooted graph once and answers every rooting query from it.

  .midpoint_rooted()        Root at the midpoint of the longest path.
  .rooted_by(outgroup)      Root above the MRCA of an outgroup.
  .all_rooted_by(outgroup)  Every rooting compatible with an outgroup.
  .every_root()             One rooting per edge.
  .branch_access()          Per-edge handles (label splits, grafting).

Every query returns a *fresh* ``Node`` tree; the manipulator itself and
the input tree are never modified.

Logging
-------
The module uses Python's standard logging framework:

  logging.getLogger('nemoto._manipulator')
      INFO level:    System capabilities (numba version, LLVM), backend
                     availability, graph dimensions after construction.
      WARNING level: Polytomy expansion / reduction summaries, collapsed
                     single-child nodes, outgroup names that match no leaf,
                     outgroups that are not monophyletic.

  logging.getLogger('nemoto._graph')
      DEBUG level:   Kernel runs and the backend they used.

Users can control logging in the standard way, or with the ``quiet()``
context manager:

    import logging
    logging.getLogger('nemoto').setLevel(logging.WARNING)

Graph layout
------------
See ``_graph.py``.  The rooting recorded at construction is kept as
(edge 0, ``first_child_length``) plus the ``input_unrooted`` flag, so
``as_input_rooting()`` reproduces the input tree's topology.
"""

import logging
from typing import Iterable, List, Optional, Union

from nemoto._backend import check_numba_available, get_available_backends
from nemoto._branch import BranchAccess
from nemoto._builder import DEFAULT_POLICY, ConstructionPolicy, GraphBuilder
from nemoto._enumerator import RootIterator
from nemoto._exceptions import TreeUsageError, UnknownNodeError
from nemoto._graph import UnrootedGraph
from nemoto._interfaces import (
    RootedInstructee,
    RootedTreeInterface,
    UnrootedInstructee,
    UnrootedTreeInterface,
    instruct_rooted,
    instruct_unrooted,
)
from nemoto._logging import (
    log_ambiguous_outgroup,
    log_backend_availability,
    log_graph_built,
    log_optimization_status,
    log_policy_adjustments,
    log_unmatched_outgroup,
)
from nemoto._newick import parse_newick
from nemoto._node import Node
from nemoto._recorder import RootedNodeRecorder, UnrootedNodeRecorder
from nemoto._utils import validate_leaf_names


logger = logging.getLogger(__name__)

_NUMBA_AVAILABLE = check_numba_available()
_BACKENDS_AVAILABLE = get_available_backends()

# Log system info and backend availability on module import
log_optimization_status(_NUMBA_AVAILABLE)
log_backend_availability(_BACKENDS_AVAILABLE)


def _finish(root: Node, heights: bool) -> Node:
    if heights:
        root.assign_heights()
    return root


class TreeManipulator:
    """
    Builds the unrooted graph of one tree and derives rootings from it.

    Parameters
    ----------
    tree : Node or str
        The input tree, as a rooted ``Node`` view or a NEWICK string.  A
        root with three or more children marks the input as unrooted.
    policy : ConstructionPolicy or str, default MIMIC
        How polytomies are represented in the graph ('mimic', 'expand',
        'reduce').
    backend : str, default 'best'
        Kernel backend ('python', 'cpu' or 'best') for whole-graph passes.

    Attributes (read-only after construction)
    -----------------------------------------
    graph              : UnrootedGraph
    policy             : ConstructionPolicy
    backend            : str
    first_child_length : float   End-0 share of the base edge in the input.
    input_unrooted     : bool

    Raises
    ------
    TooFewLeavesError   if the tree has fewer than 3 leaves.

    Examples
    --------
    >>> m = TreeManipulator('((A:1,B:2):0.5,(C:1,D:1):0.5);')
    >>> m.n_edges
    5
    >>> m.rooted_by(['C', 'D']).leaf_names
    ['A', 'B', 'C', 'D']
    """

    def __init__(
        self,
        tree: Union[Node, str],
        policy=DEFAULT_POLICY,
        backend: str = "best",
    ) -> None:
        if isinstance(tree, str):
            tree = parse_newick(tree)
        self.policy = ConstructionPolicy(policy)
        self.backend = backend

        builder = GraphBuilder(self.policy)
        graph, first_length, input_unrooted = builder.build(tree)
        self._adopt(graph, first_length, input_unrooted)
        self._log_construction(builder)

    @classmethod
    def from_rooted_instructee(
        cls, instructee: RootedInstructee, policy=DEFAULT_POLICY, backend: str = "best"
    ) -> "TreeManipulator":
        """Build from anything that can stream itself into a rooted interface."""
        recorder = RootedNodeRecorder()
        instructee.instruct(recorder)
        if recorder.root is None:
            raise TreeUsageError("Instructee did not create a root.")
        return cls(recorder.root, policy=policy, backend=backend)

    @classmethod
    def from_unrooted_instructee(
        cls, instructee: UnrootedInstructee, policy=DEFAULT_POLICY, backend: str = "best"
    ) -> "TreeManipulator":
        """
        Build from anything that can stream itself into an unrooted
        interface.  The streamed base branch becomes edge 0 and the input is
        marked unrooted.
        """
        recorder = UnrootedNodeRecorder()
        instructee.instruct(recorder)
        base = recorder.base
        if base is None:
            raise TreeUsageError("Instructee did not create a base branch.")

        self = cls.__new__(cls)
        self.policy = ConstructionPolicy(policy)
        self.backend = backend
        builder = GraphBuilder(self.policy)
        graph = builder.build_from_sides(
            base.left.node, base.right.node, base.length, base.annotation
        )
        self._adopt(graph, graph.length(0) / 2.0, True)
        self._log_construction(builder)
        return self

    @classmethod
    def _from_graph(
        cls, graph: UnrootedGraph, template: "TreeManipulator", input_unrooted: bool
    ) -> "TreeManipulator":
        self = cls.__new__(cls)
        self.policy = template.policy
        self.backend = template.backend
        first = min(template.first_child_length, graph.length(0))
        self._adopt(graph, first, input_unrooted)
        return self

    def _adopt(self, graph: UnrootedGraph, first_length: float, input_unrooted: bool) -> None:
        self.graph = graph
        self.first_child_length = float(first_length)
        self.input_unrooted = bool(input_unrooted)

    def _log_construction(self, builder: GraphBuilder) -> None:
        log_graph_built(
            self.policy.value,
            self.graph.n_leaves,
            self.graph.n_nodes,
            self.graph.n_edges,
            self.input_unrooted,
        )
        log_policy_adjustments(
            builder.n_expanded, builder.n_connectors, builder.n_absorbed, builder.n_unary
        )

    def __repr__(self) -> str:
        return (
            f"TreeManipulator(n_leaves={self.n_leaves}, n_edges={self.n_edges}, "
            f"policy={self.policy.value!r})"
        )

    # ================================================================== #
    # Properties                                                           #
    # ================================================================== #

    @property
    def n_leaves(self) -> int:
        return self.graph.n_leaves

    @property
    def n_edges(self) -> int:
        return self.graph.n_edges

    @property
    def leaf_names(self) -> List[str]:
        return self.graph.leaf_names

    @property
    def total_length(self) -> float:
        """Sum of all branch lengths (invariant under re-rooting)."""
        return float(self.graph.edge_length.sum())

    # ================================================================== #
    # Rootings                                                             #
    # ================================================================== #

    def midpoint_rooted(self, heights: bool = False) -> Node:
        """
        Root at the midpoint of the longest leaf-to-leaf path.

        The root is placed on the edge with the smallest absolute difference
        between the longest paths through its two ends, at the point that
        balances them.

        Parameters
        ----------
        heights : bool
            Also fill ``Node.height`` on the result.
        """
        edge = self.graph.midpoint_edge(self.backend)
        return _finish(self.graph.render_balanced(edge), heights)

    def default_root(self, heights: bool = False) -> Node:
        """Root on the base edge at the input tree's root position."""
        return _finish(self.graph.render(0, self.first_child_length), heights)

    def unrooted(self, heights: bool = False) -> Node:
        """Render with an internal node of the base edge as a multifurcating root."""
        return _finish(self.graph.render_unrooted(), heights)

    def as_input_rooting(self, heights: bool = False) -> Node:
        """The input's own rooting: unrooted if it was, else the default root."""
        if self.input_unrooted:
            return self.unrooted(heights)
        return self.default_root(heights)

    def rooted_at(
        self, edge: int, first_length: Optional[float] = None, heights: bool = False
    ) -> Node:
        """
        Root on *edge*.

        Parameters
        ----------
        edge : int
            Edge index (see ``all_edges``).
        first_length : float, optional
            Branch length given to the end-0 side; clamped to the edge
            length.  By default the edge is split to balance the longest
            paths on both sides.

        Raises
        ------
        UnknownEdgeError   if *edge* is not an edge of the graph.
        """
        self.graph.check_edge(edge)
        if first_length is None:
            return _finish(self.graph.render_balanced(edge), heights)
        return _finish(self.graph.render(edge, first_length), heights)

    def rooted_above(self, node: Node, heights: bool = False) -> Node:
        """
        Root on the branch above *node*, a node of the input tree.

        The branch is split to balance the longest paths on both sides.

        Raises
        ------
        UnknownNodeError   if *node* was not part of the input tree, or was
                           dissolved during construction (the root of a
                           bifurcating input, absorbed or single-child nodes).
        """
        v = self.graph.related_node(node)
        if v is None:
            raise UnknownNodeError(node)
        edge = self.graph.incident(v)[0]
        return _finish(self.graph.render_balanced(edge), heights)

    def rooted_by(
        self,
        outgroup: Iterable[str],
        ingroup_length: Optional[float] = None,
        heights: bool = True,
    ) -> Node:
        """
        Root above the most recent common ancestor of *outgroup*.

        Parameters
        ----------
        outgroup : str or iterable of str
            Leaf names; names not in the tree are ignored (with a warning).
        ingroup_length : float, optional
            Length of the branch leading to the ingroup clade (capped at the
            edge length); the ingroup becomes the first child.  By default
            the edge is split to balance the longest paths.
        heights : bool, default True
            Also fill ``Node.height`` on the result.

        Raises
        ------
        OutgroupError   if no name matches a leaf, or all leaves match.

        Notes
        -----
        When the outgroup is not monophyletic in any rooting, one valid
        rooting is returned and a warning is logged; use
        ``all_rooted_by`` to get every candidate.
        """
        names = self._outgroup_names(outgroup)
        edge, x = self.graph.mrca_edge(names, self.backend)
        self._warn_if_ambiguous(names, edge, x)
        if ingroup_length is None:
            root = self.graph.render_balanced(edge)
        else:
            root = self._render_with_ingroup(edge, x, ingroup_length)
        return _finish(root, heights)

    def all_rooted_by(self, outgroup: Iterable[str], heights: bool = False) -> List[Node]:
        """
        Every rooting that places *outgroup* in a minimal clade, one per
        candidate edge, in traversal order.  A single result means the
        outgroup defines a unique clade.
        """
        names = self._outgroup_names(outgroup)
        return [
            _finish(self.graph.render_balanced(edge), heights)
            for edge, _ in self.graph.all_mrca_edges(names, self.backend)
        ]

    def forms_exact_clade(self, names: Iterable[str]) -> bool:
        """
        True if some branch separates exactly the named leaves from the rest.
        Names that are not leaves are ignored.
        """
        return self.graph.forms_exact_clade(validate_leaf_names(names), self.backend)

    def every_root(self, heights: bool = False) -> List[Node]:
        """One rooting per edge, in ``all_edges`` order."""
        return list(self.every_root_iterator(heights))

    def every_root_iterator(self, heights: bool = False) -> RootIterator:
        """Lazily rendered rootings, one per edge."""
        return RootIterator(self.graph, self.all_edges(), heights=heights)

    def all_edges(self) -> List[int]:
        """Every edge index exactly once, starting with the base edge."""
        return self.graph.all_edges()

    def branch_access(self) -> List[BranchAccess]:
        """One handle per edge, in ``all_edges`` order."""
        return [BranchAccess(self, e) for e in self.all_edges()]

    def recalculate_path_lengths(self) -> None:
        """Discard and recompute every cached max-path length."""
        self.graph.clear_path_cache()
        self.graph.fill_path_cache(self.backend)
        self.graph.assert_path_cache()

    # ================================================================== #
    # Visitor protocols                                                    #
    # ================================================================== #

    def instruct(self, interface) -> None:
        """
        Stream the tree into *interface*.

        A ``RootedTreeInterface`` receives the default rooting; an
        ``UnrootedTreeInterface`` receives the base edge as its base branch.
        """
        if isinstance(interface, RootedTreeInterface):
            instruct_rooted(self.default_root(), interface)
        elif isinstance(interface, UnrootedTreeInterface):
            instruct_unrooted(self.graph.render(0, 0.0), interface)
        else:
            raise TypeError(
                f"{type(interface).__name__} implements neither "
                "create_root() nor create_base()."
            )

    def instruct_rooted_by(
        self, interface: RootedTreeInterface, outgroup: Iterable[str]
    ) -> None:
        """Stream the MRCA rooting of *outgroup* into a rooted interface."""
        instruct_rooted(self.rooted_by(outgroup, heights=False), interface)

    # ================================================================== #
    # Helpers                                                              #
    # ================================================================== #

    def _outgroup_names(self, outgroup: Iterable[str]):
        names = validate_leaf_names(outgroup)
        index = self.graph.leaf_index()
        matched = [n for n in names if n in index]
        if matched:
            log_unmatched_outgroup(names.difference(matched), len(matched))
        return names

    def _warn_if_ambiguous(self, names, edge: int, x: int) -> None:
        _, n_matched = self.graph.side_counts(names, self.backend)
        clade = int(self.graph.split_sizes(self.backend)[edge, x])
        if clade != n_matched:
            log_ambiguous_outgroup(n_matched, clade)

    def _render_with_ingroup(self, edge: int, x: int, ingroup_length: float) -> Node:
        length = self.graph.length(edge)
        ingroup_length = min(max(float(ingroup_length), 0.0), length)
        if x == 1:
            # Outgroup on end 1: end 0 is the ingroup and comes first.
            return self.graph.render(edge, ingroup_length)
        root = self.graph.render(edge, length - ingroup_length)
        root.children.reverse()
        return root


# ======================================================================== #
# Module-level conveniences                                                 #
# ======================================================================== #


def unroot(tree: Union[Node, str], policy=DEFAULT_POLICY) -> Node:
    """Return *tree* re-rendered with a multifurcating root."""
    return TreeManipulator(tree, policy=policy).unrooted()


def midpoint_root(tree: Union[Node, str], policy=DEFAULT_POLICY) -> Node:
    """Return *tree* rooted at its midpoint."""
    return TreeManipulator(tree, policy=policy).midpoint_rooted()


def root_by_outgroup(
    tree: Union[Node, str],
    outgroup: Iterable[str],
    ingroup_length: Optional[float] = None,
    policy=DEFAULT_POLICY,
) -> Node:
    """Return *tree* rooted above the MRCA of *outgroup*."""
    return TreeManipulator(tree, policy=policy).rooted_by(
        outgroup, ingroup_length=ingroup_length
    )


def all_rootings_by_outgroup(
    tree: Union[Node, str], outgroup: Iterable[str], policy=DEFAULT_POLICY
) -> List[Node]:
    """Return every rooting of *tree* compatible with *outgroup*."""
    return TreeManipulator(tree, policy=policy).all_rooted_by(outgroup)


def every_root(tree: Union[Node, str], policy=DEFAULT_POLICY) -> List[Node]:
    """Return one rooting of *tree* per edge."""
    return TreeManipulator(tree, policy=policy).every_root()


def every_root_iterator(tree: Union[Node, str], policy=DEFAULT_POLICY) -> RootIterator:
    """Return a lazy iterator over every rooting of *tree*."""
    return TreeManipulator(tree, policy=policy).every_root_iterator()

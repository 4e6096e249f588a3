"""
tests/test_builder.py
=====================
Pytest test suite for GraphBuilder and the three construction policies.

Tree fixtures
-------------
  asymmetric_4leaf.tree   ((A:1,(B:1,C:1):1):1,D:1);
      Base edge joins the (A,(B,C)) node and leaf D (length 1 + 1 = 2).
      Graph nodes: ABC=0 D=1 A=2 BC=3 B=4 C=5

  unrooted_5leaf.tree     (A:1,B:2,(C:1,(D:1,E:1):0.5):1.5);
      Trifurcating root → the root itself is graph node 0.

  polytomy_6leaf.tree     ((A:1,B:1,C:1,D:1):1,(E:1,F:1):1);
      MIMIC keeps the 4-way node (7 edges); EXPAND builds a two-rung
      ladder (9 edges, two zero-length connectors).

  near_zero_6leaf.tree    ((A:1,(B:1,(C:1,D:1):0.0):0.0):1,(E:1,F:1):1);
      REDUCE absorbs both zero-length internal branches and yields the
      same topology as polytomy_6leaf under MIMIC.
"""

import os
import sys

import numpy as np
import pytest

_TREES_DIR = os.path.join(os.path.dirname(__file__), "trees")

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from nemoto import (
    ConstructionPolicy,
    GraphBuilder,
    MIN_BRANCH_LENGTH,
    Node,
    TooFewLeavesError,
    TreeUsageError,
    parse_newick,
)


def load_tree(filename: str) -> Node:
    with open(os.path.join(_TREES_DIR, filename)) as fh:
        return parse_newick(fh.read().strip())


def build(tree: Node, policy="mimic"):
    builder = GraphBuilder(policy)
    graph, first, unrooted = builder.build(tree)
    return builder, graph, first, unrooted


def internal_degrees(graph):
    return sorted(graph.degree(v) for v in range(graph.n_nodes) if not graph.is_leaf(v))


def all_splits(graph):
    """Non-trivial splits as a set of frozensets of the smaller/first side."""
    result = set()
    for e in range(graph.n_edges):
        left, right = graph.label_split(e)
        if len(left) > 1 and len(right) > 1:
            result.add(frozenset((left, right)))
    return result


@pytest.fixture(scope="module")
def asymmetric():
    return load_tree("asymmetric_4leaf.tree")


@pytest.fixture(scope="module")
def unrooted():
    return load_tree("unrooted_5leaf.tree")


@pytest.fixture(scope="module")
def polytomy():
    return load_tree("polytomy_6leaf.tree")


@pytest.fixture(scope="module")
def near_zero():
    return load_tree("near_zero_6leaf.tree")


# ======================================================================== #
# 1. Base cases                                                             #
# ======================================================================== #


class TestBaseCases:
    def test_bifurcating_root_becomes_base_edge(self, asymmetric):
        _, graph, first, unrooted = build(asymmetric)
        assert graph.n_edges == 5
        assert graph.n_nodes == 6
        assert graph.length(0) == pytest.approx(2.0)
        assert first == pytest.approx(1.0)
        assert unrooted is False

    def test_base_edge_ends(self, asymmetric):
        _, graph, _, _ = build(asymmetric)
        a, b = graph.ends(0)
        assert graph.labels[b] == "D"
        assert graph.is_leaf(b)
        assert graph.degree(a) == 3

    def test_base_annotation_from_first_child(self):
        root = parse_newick("((A:1,B:1)0.8:1,(C:1,D:1)0.6:1);")
        _, graph, _, _ = build(root)
        assert graph.edge_annotations[0] == pytest.approx(0.8)

    def test_base_annotation_falls_back_to_second_child(self):
        root = parse_newick("((A:1,B:1):1,(C:1,D:1)0.6:1);")
        _, graph, _, _ = build(root)
        assert graph.edge_annotations[0] == pytest.approx(0.6)

    def test_trifurcating_root_kept(self, unrooted):
        _, graph, first, is_unrooted = build(unrooted)
        assert is_unrooted is True
        assert first == 0.0
        assert graph.n_edges == 7
        base = graph.ends(0)[0]
        assert graph.sources[base] is unrooted
        assert graph.degree(base) == 3

    def test_slot_zero_is_parent_edge(self, asymmetric):
        _, graph, _, _ = build(asymmetric)
        for v in range(graph.n_nodes):
            source = graph.sources[v]
            if source is None or source.parent is None or source.parent is asymmetric:
                continue
            parent_graph_node = graph.related_node(source.parent)
            e = graph.incident(v)[0]
            assert graph.other_end(e, v) == parent_graph_node

    def test_sources_are_input_nodes(self, asymmetric):
        _, graph, _, _ = build(asymmetric)
        input_nodes = {id(n) for n in asymmetric.iter_preorder()}
        assert all(id(s) in input_nodes for s in graph.sources)
        # The bifurcating root is dissolved into the base edge.
        assert graph.related_node(asymmetric) is None

    def test_too_few_leaves(self):
        with pytest.raises(TooFewLeavesError):
            build(parse_newick("(A:1,B:1);"))

    def test_too_few_leaves_is_usage_error(self):
        with pytest.raises(TreeUsageError):
            build(Node("A"))
        with pytest.raises(ValueError):
            build(Node("A"))

    def test_edge_count_bifurcating(self):
        root = parse_newick("(((A:1,B:1):1,C:1):1,(D:1,(E:1,F:1):1):1);")
        _, graph, _, _ = build(root)
        assert graph.n_edges == 2 * 6 - 3
        assert graph.n_leaves == 6


class TestUnaryNodes:
    def test_unary_chain_collapsed(self):
        root = parse_newick("(((A:1,B:1):1):1,C:1);")
        builder, graph, first, _ = build(root)
        assert builder.n_unary == 1
        assert graph.n_edges == 3
        assert graph.length(0) == pytest.approx(3.0)
        assert first == pytest.approx(2.0)

    def test_unary_root_skipped(self):
        root = Node(children=[parse_newick("(A:1,B:1,C:1);")])
        builder, graph, _, unrooted = build(root)
        assert unrooted is True
        assert graph.n_edges == 3
        assert builder.n_unary == 1

    def test_no_degree_two_nodes(self):
        root = parse_newick("((A:1,((B:1,C:1):1):1):1,(D:1):1);")
        _, graph, _, _ = build(root)
        assert all(d >= 3 for d in internal_degrees(graph))


# ======================================================================== #
# 2. Policies                                                               #
# ======================================================================== #


class TestMimic:
    def test_polytomy_kept(self, polytomy):
        builder, graph, _, _ = build(polytomy, ConstructionPolicy.MIMIC)
        assert graph.n_edges == 7
        assert internal_degrees(graph) == [3, 5]
        assert builder.n_expanded == 0

    def test_near_zero_branches_kept(self, near_zero):
        _, graph, _, _ = build(near_zero, "mimic")
        assert graph.n_edges == 9
        assert internal_degrees(graph) == [3, 3, 3, 3]


class TestExpand:
    def test_ladder_edge_count(self, polytomy):
        builder, graph, _, _ = build(polytomy, ConstructionPolicy.EXPAND)
        assert graph.n_edges == 2 * 6 - 3
        assert builder.n_expanded == 1
        assert builder.n_connectors == 2

    def test_all_internal_degree_three(self, polytomy):
        _, graph, _, _ = build(polytomy, "expand")
        assert internal_degrees(graph) == [3, 3, 3, 3]

    def test_connectors_zero_length(self, polytomy):
        _, graph, _, _ = build(polytomy, "expand")
        connectors = [v for v in range(graph.n_nodes) if graph.sources[v] is None]
        assert len(connectors) == 2
        for v in connectors:
            parent_edge = graph.incident(v)[0]
            assert graph.length(parent_edge) == 0.0
            assert graph.edge_annotations[parent_edge] is None

    def test_right_leaning(self, polytomy):
        _, graph, _, _ = build(polytomy, "expand")
        splits = all_splits(graph)
        assert frozenset((("C", "D"), ("A", "B", "E", "F"))) in splits
        assert frozenset((("A", "E", "F"), ("B", "C", "D"))) in splits

    def test_unrooted_base_keeps_trifurcation(self):
        root = parse_newick("(A:1,B:1,C:1,D:1,E:1);")
        builder, graph, _, _ = build(root, "expand")
        base = graph.ends(0)[0]
        assert graph.degree(base) == 3
        assert graph.n_edges == 7
        assert builder.n_expanded == 1
        assert builder.n_connectors == 2
        assert internal_degrees(graph) == [3, 3, 3]

    def test_trifurcating_base_untouched(self, unrooted):
        builder, graph, _, _ = build(unrooted, "expand")
        assert builder.n_connectors == 0
        assert graph.n_edges == 7

    def test_total_length_unchanged(self, polytomy):
        _, graph, _, _ = build(polytomy, "expand")
        assert graph.edge_length.sum() == pytest.approx(polytomy.total_length())


class TestReduce:
    def test_absorbs_near_zero(self, near_zero):
        builder, graph, _, _ = build(near_zero, ConstructionPolicy.REDUCE)
        assert builder.n_absorbed == 2
        assert graph.n_edges == 7
        assert internal_degrees(graph) == [3, 5]

    def test_matches_mimic_of_true_polytomy(self, near_zero, polytomy):
        _, reduced, _, _ = build(near_zero, "reduce")
        _, mimic, _, _ = build(polytomy, "mimic")
        assert all_splits(reduced) == all_splits(mimic)

    def test_threshold_is_inclusive(self):
        t = MIN_BRANCH_LENGTH
        root = parse_newick(f"((A:1,(B:1,C:1):{t!r}):1,(D:1,E:1):1);")
        builder, _, _, _ = build(root, "reduce")
        assert builder.n_absorbed == 1

    def test_longer_branch_kept(self):
        t = 10 * MIN_BRANCH_LENGTH
        root = parse_newick(f"((A:1,(B:1,C:1):{t!r}):1,(D:1,E:1):1);")
        builder, graph, _, _ = build(root, "reduce")
        assert builder.n_absorbed == 0
        assert graph.n_edges == 7

    def test_leaves_never_absorbed(self):
        root = parse_newick("((A:0,B:0):1,(C:1,D:1):1);")
        builder, graph, _, _ = build(root, "reduce")
        assert builder.n_absorbed == 0
        assert graph.n_leaves == 4


class TestPolicyEquivalence:
    @pytest.mark.parametrize("policy", ["mimic", "expand", "reduce"])
    def test_bifurcating_input_identical(self, asymmetric, policy):
        _, reference, _, _ = build(asymmetric, "mimic")
        _, graph, _, _ = build(asymmetric, policy)
        assert graph.n_edges == reference.n_edges
        assert all_splits(graph) == all_splits(reference)
        np.testing.assert_allclose(
            np.sort(graph.edge_length), np.sort(reference.edge_length)
        )

    def test_policy_from_string(self):
        assert GraphBuilder("expand").policy is ConstructionPolicy.EXPAND

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            GraphBuilder("flatten")


# ======================================================================== #
# 3. Grafting                                                               #
# ======================================================================== #


class TestAttach:
    def test_graft_splits_edge(self, asymmetric):
        _, graph, _, _ = build(asymmetric)
        grafted = GraphBuilder().attach(graph, 0, Node("E", 0.5))
        assert grafted.n_edges == 7
        assert grafted.n_leaves == 5
        assert grafted.length(0) == pytest.approx(1.0)
        assert grafted.length(5) == pytest.approx(1.0)
        assert grafted.length(6) == pytest.approx(0.5)

    def test_joint_has_degree_three(self, asymmetric):
        _, graph, _, _ = build(asymmetric)
        grafted = GraphBuilder().attach(graph, 0, Node("E", 0.5))
        joint = grafted.ends(0)[1]
        assert grafted.degree(joint) == 3
        assert grafted.sources[joint] is None
        assert grafted.incident(joint)[0] == 0

    def test_original_untouched(self, asymmetric):
        _, graph, _, _ = build(asymmetric)
        ends_before = graph.edge_ends.copy()
        GraphBuilder().attach(graph, 0, Node("E", 0.5))
        assert graph.n_edges == 5
        np.testing.assert_array_equal(graph.edge_ends, ends_before)
        assert graph.length(0) == pytest.approx(2.0)

    def test_annotation_copied_to_both_halves(self):
        root = parse_newick("((A:1,B:1):1,(C:1,D:1)0.7:1);")
        _, graph, _, _ = build(root)
        e = next(e for e in range(graph.n_edges) if graph.edge_annotations[e] == 0.7)
        grafted = GraphBuilder().attach(graph, e, Node("X", 1.0))
        assert sum(1 for a in grafted.edge_annotations if a == 0.7) == 2

    def test_subtree_policy_applied(self, asymmetric):
        _, graph, _, _ = build(asymmetric)
        subtree = parse_newick("(X:1,Y:1,Z:1)")
        subtree.length = 0.25
        grafted = GraphBuilder("expand").attach(graph, 1, subtree)
        assert grafted.n_leaves == 7
        assert grafted.n_edges == 2 * 7 - 3

    def test_unknown_edge(self, asymmetric):
        _, graph, _, _ = build(asymmetric)
        with pytest.raises(TreeUsageError):
            GraphBuilder().attach(graph, 99, Node("E"))

    def test_rejects_non_node(self, asymmetric):
        _, graph, _, _ = build(asymmetric)
        with pytest.raises(TreeUsageError):
            GraphBuilder().attach(graph, 0, "(X,Y);")

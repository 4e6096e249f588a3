"""
tests/test_newick.py
====================
Pytest test suite for the NEWICK adapter and the rooted Node view.

Tree fixtures
-------------
  balanced_4leaf.tree
      ((A:0.1,B:0.2)0.95:0.5,(C:0.3,D:0.4)0.87:0.6);

      root_distance: A=0.6 B=0.7 C=0.9 D=1.0 AB=0.5 CD=0.6 root=0.0

  caterpillar_5leaf.tree
      (A:1,(B:1,(C:1,(D:1,E:1):1):1):1);
"""

import os
import sys

import pytest

_TREES_DIR = os.path.join(os.path.dirname(__file__), "trees")

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from nemoto import Node, parse_newick, to_newick, patristic_distances


def load_newick(filename: str) -> str:
    with open(os.path.join(_TREES_DIR, filename)) as fh:
        return fh.read().strip()


@pytest.fixture(scope="module")
def balanced():
    """4-leaf balanced tree: ((A:0.1,B:0.2)0.95:0.5,(C:0.3,D:0.4)0.87:0.6)"""
    return parse_newick(load_newick("balanced_4leaf.tree"))


@pytest.fixture(scope="module")
def caterpillar():
    """5-leaf caterpillar: (A:1,(B:1,(C:1,(D:1,E:1):1):1):1)"""
    return parse_newick(load_newick("caterpillar_5leaf.tree"))


# ======================================================================== #
# 1. Parsing                                                                #
# ======================================================================== #


class TestParse:
    def test_root_has_two_children(self, balanced):
        assert balanced.n_children == 2
        assert balanced.is_root()

    def test_leaf_names_in_order(self, balanced):
        assert balanced.leaf_names == ["A", "B", "C", "D"]

    def test_branch_lengths(self, balanced):
        ab, cd = balanced.children
        assert ab.length == pytest.approx(0.5)
        assert cd.length == pytest.approx(0.6)
        assert [c.length for c in ab.children] == pytest.approx([0.1, 0.2])
        assert [c.length for c in cd.children] == pytest.approx([0.3, 0.4])

    def test_support_values_become_annotations(self, balanced):
        ab, cd = balanced.children
        assert ab.annotation == pytest.approx(0.95)
        assert cd.annotation == pytest.approx(0.87)
        assert ab.name is None

    def test_internal_names(self):
        root = parse_newick("((A,B)AB:1,C,D);")
        assert root.children[0].name == "AB"
        assert root.children[0].annotation is None

    def test_missing_lengths_default_to_zero(self):
        root = parse_newick("(A,B,C);")
        assert all(c.length == 0.0 for c in root.children)

    def test_polytomy_preserved(self):
        root = parse_newick("((A:1,B:1,C:1,D:1):1,(E:1,F:1):1);")
        assert root.children[0].n_children == 4

    def test_trailing_semicolon_optional(self):
        assert parse_newick("(A:1,B:1,C:1)").n_leaves == 3

    def test_whitespace_tolerated(self):
        root = parse_newick(" ( A : 1 , B : 2 ,\n C : 3 ) ; ")
        assert root.leaf_names == ["A", "B", "C"]
        assert [c.length for c in root.children] == [1.0, 2.0, 3.0]

    def test_quoted_leaf_names(self):
        root = parse_newick("('A':1,'B':1,C:1);")
        assert root.leaf_names == ["A", "B", "C"]

    def test_parents_set(self, balanced):
        for node in balanced.iter_preorder():
            for child in node.children:
                assert child.parent is node

    def test_deep_caterpillar_no_recursion_limit(self):
        n = 5000
        newick = "(" * (n - 1) + "L0:1"
        newick += "".join(f",L{i}:1):1" for i in range(1, n))
        root = parse_newick(newick + ";")
        assert root.n_leaves == n


class TestParseErrors:
    def test_empty(self):
        with pytest.raises(ValueError, match="Empty"):
            parse_newick("")

    def test_unclosed_group(self):
        with pytest.raises(ValueError, match="Unbalanced"):
            parse_newick("((A,B),C;")

    def test_extra_close(self):
        with pytest.raises(ValueError, match="Unbalanced"):
            parse_newick("A,B),C);")

    def test_bad_length(self):
        with pytest.raises(ValueError, match="Invalid branch length"):
            parse_newick("(A:x,B:1,C:1);")

    def test_two_trees(self):
        with pytest.raises(ValueError, match="Unexpected ';'"):
            parse_newick("(A,B,C);(D,E,F);")

    def test_two_top_level_items(self):
        with pytest.raises(ValueError, match="single tree"):
            parse_newick("(A,B),C;")


# ======================================================================== #
# 2. Formatting                                                             #
# ======================================================================== #


class TestToNewick:
    def test_round_trip_exact_lengths(self):
        text = "((A:1.0,B:2.0):0.5,C:1.5);"
        assert to_newick(parse_newick(text)) == text

    def test_annotations_written(self):
        text = "((A:1.0,B:2.0)0.9:0.5,C:1.5);"
        assert to_newick(parse_newick(text)) == text

    def test_annotations_suppressed(self):
        root = parse_newick("((A:1.0,B:2.0)0.9:0.5,C:1.5);")
        assert to_newick(root, with_annotations=False) == "((A:1.0,B:2.0):0.5,C:1.5);"

    def test_internal_names_written(self):
        text = "((A:1.0,B:1.0)AB:1.0,C:1.0);"
        assert to_newick(parse_newick(text)) == text

    def test_parse_of_output_preserves_distances(self, balanced):
        again = parse_newick(to_newick(balanced))
        d0 = patristic_distances(balanced)
        d1 = patristic_distances(again)
        assert d0.keys() == d1.keys()
        for pair in d0:
            assert d1[pair] == pytest.approx(d0[pair])


# ======================================================================== #
# 3. Node view                                                              #
# ======================================================================== #


class TestNode:
    def test_preorder(self, caterpillar):
        names = [n.name for n in caterpillar.iter_preorder() if n.is_leaf()]
        assert names == ["A", "B", "C", "D", "E"]
        assert next(caterpillar.iter_preorder()) is caterpillar

    def test_postorder_children_first(self, caterpillar):
        seen = set()
        for node in caterpillar.iter_postorder():
            assert all(id(c) in seen for c in node.children)
            seen.add(id(node))
        assert len(seen) == 9

    def test_total_length(self, balanced):
        assert balanced.total_length() == pytest.approx(2.1)

    def test_copy_is_deep(self, balanced):
        clone = balanced.copy()
        assert clone.leaf_names == balanced.leaf_names
        clone.children[0].children[0].name = "Z"
        clone.children[0].length = 9.0
        assert balanced.leaf_names == ["A", "B", "C", "D"]
        assert balanced.children[0].length == pytest.approx(0.5)

    def test_copy_keeps_annotations(self, balanced):
        assert balanced.copy().children[0].annotation == pytest.approx(0.95)

    def test_assign_heights(self):
        root = parse_newick(load_newick("balanced_4leaf.tree")).assign_heights()
        assert root.height == pytest.approx(1.0)
        a, b = root.children[0].children
        c, d = root.children[1].children
        assert d.height == pytest.approx(0.0)
        assert a.height == pytest.approx(0.4)
        assert c.height == pytest.approx(0.1)
        assert root.children[0].height == pytest.approx(0.5)

    def test_add_child_returns_child(self):
        parent = Node()
        child = parent.add_child(Node("x", 1.0))
        assert child.parent is parent
        assert parent.children == [child]

    def test_repr(self):
        assert "A" in repr(Node("A", 1.0))
        assert "2 children" in repr(parse_newick("(A,B);"))


class TestPatristic:
    def test_balanced_values(self, balanced):
        d = patristic_distances(balanced)
        assert len(d) == 6
        assert d[frozenset(("A", "B"))] == pytest.approx(0.3)
        assert d[frozenset(("A", "C"))] == pytest.approx(1.5)
        assert d[frozenset(("C", "D"))] == pytest.approx(0.7)
        assert d[frozenset(("B", "D"))] == pytest.approx(1.7)

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            patristic_distances(parse_newick("((A:1,A:1):1,B:1);"))

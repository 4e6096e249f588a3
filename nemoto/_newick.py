"""
_newick.py
==========
NEWICK adapter for the rooted tree view.

This is a boundary convenience, not a persistence layer: it turns a NEWICK
string into a ``Node`` tree (and back) so callers and tests can describe
trees compactly.  Multifurcations are preserved exactly as written — the
construction policies in ``_builder.py`` decide what happens to them.

Parsing is a single character scan with an explicit stack of open child
lists (no recursion).  After a closing ``)`` the optional label is read:
a numeric label is stored as the node's ``annotation`` (a support value),
anything else as its ``name``.
"""

from typing import List, Tuple

from nemoto._node import Node
from nemoto._utils import format_newick


_WHITESPACE = " \t\r\n"
_LABEL_STOP = ":,);" + _WHITESPACE
_LENGTH_STOP = ",);" + _WHITESPACE


def parse_newick(newick_string: str) -> Node:
    """
    Parse *newick_string* into a ``Node`` tree.

    Parameters
    ----------
    newick_string : str
        A NEWICK tree (trailing ';' optional).  Branch lengths default to
        0.0 when absent.

    Returns
    -------
    Node   The root of the parsed tree.

    Raises
    ------
    ValueError   if the string is empty, has unbalanced parentheses or a
                 branch length that is not a number.
    """
    s = format_newick(newick_string)
    n_chars = len(s) - 1  # drop the ';' added by format_newick
    if n_chars <= 0:
        raise ValueError("Empty NEWICK string.")

    stack: List[List[Node]] = [[]]
    i = 0
    while i < n_chars:
        c = s[i]

        if c in _WHITESPACE:
            i += 1
            continue

        if c == "(":
            stack.append([])
            i += 1
            continue

        if c == ",":
            i += 1
            continue

        if c == ";":
            raise ValueError(f"Unexpected ';' at position {i}.")

        if c == ")":
            if len(stack) == 1:
                raise ValueError(f"Unbalanced ')' at position {i}.")
            children = stack.pop()
            node = Node(children=children)
            i = _skip_whitespace(s, i + 1, n_chars)
            label, i = _read_token(s, i, n_chars, _LABEL_STOP)
            if label:
                try:
                    node.annotation = float(label)
                except ValueError:
                    node.name = label
            i = _read_length(s, i, n_chars, node)
            stack[-1].append(node)
            continue

        # Leaf
        label, i = _read_token(s, i, n_chars, _LABEL_STOP)
        node = Node(label.strip("'\""))
        i = _read_length(s, i, n_chars, node)
        stack[-1].append(node)

    if len(stack) != 1:
        raise ValueError(f"Unbalanced '(': {len(stack) - 1} group(s) left open.")
    if len(stack[0]) != 1:
        raise ValueError(
            f"Expected a single tree, found {len(stack[0])} top-level items."
        )
    return stack[0][0]


def to_newick(root: Node, with_annotations: bool = True) -> str:
    """
    Format the tree below *root* as a NEWICK string.

    Parameters
    ----------
    root             : Node
    with_annotations : bool   Emit numeric internal-node annotations as
                              support labels after ``)``.

    Returns
    -------
    str   NEWICK string terminated by ';'.
    """
    text = {}
    for node in root.iter_postorder():
        if node.is_leaf():
            label = node.name or ""
        else:
            label = "(" + ",".join(text.pop(id(c)) for c in node.children) + ")"
            if node.name:
                label += node.name
            elif with_annotations and isinstance(node.annotation, (int, float)):
                label += repr(node.annotation)
        if node is not root or node.length != 0.0:
            label += ":" + repr(node.length)
        text[id(node)] = label
    return format_newick(text[id(root)])


# ======================================================================== #
# Private scanning helpers                                                   #
# ======================================================================== #


def _skip_whitespace(s: str, i: int, n_chars: int) -> int:
    while i < n_chars and s[i] in _WHITESPACE:
        i += 1
    return i


def _read_token(s: str, i: int, n_chars: int, stops: str) -> Tuple[str, int]:
    j = i
    while j < n_chars and s[j] not in stops:
        j += 1
    return s[i:j], j


def _read_length(s: str, i: int, n_chars: int, node: Node) -> int:
    """Read an optional ':length' suffix into *node* and return the new index."""
    i = _skip_whitespace(s, i, n_chars)
    if i < n_chars and s[i] == ":":
        i = _skip_whitespace(s, i + 1, n_chars)
        token, i = _read_token(s, i, n_chars, _LENGTH_STOP)
        try:
            node.length = float(token)
        except ValueError:
            raise ValueError(
                f"Invalid branch length {token!r} before position {i}."
            ) from None
        i = _skip_whitespace(s, i, n_chars)
    return i

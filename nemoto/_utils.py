"""
_utils.py
=========
General-purpose utility functions for nemoto.

These are standalone functions that don't depend on the graph or
manipulator classes and are useful both inside the package and to callers
checking rooting results.
"""

from itertools import combinations
from typing import Dict, FrozenSet, Iterable, Tuple


def validate_leaf_names(names: Iterable[str]) -> FrozenSet[str]:
    """
    Normalize an outgroup / clade specification to a frozenset of names.

    A single string is treated as one name (not as a sequence of
    characters).

    Parameters
    ----------
    names : str or iterable of str
        Leaf names.  Duplicates are collapsed.

    Returns
    -------
    frozenset[str]

    Raises
    ------
    TypeError   if any element is not a string.

    Examples
    --------
    >>> sorted(validate_leaf_names(['A', 'B', 'A']))
    ['A', 'B']

    >>> validate_leaf_names('A')
    frozenset({'A'})
    """
    if isinstance(names, str):
        return frozenset((names,))
    result = frozenset(names)
    for name in result:
        if not isinstance(name, str):
            raise TypeError(
                f"Leaf names must be strings; got {type(name).__name__} {name!r}."
            )
    return result


def format_newick(newick: str) -> str:
    """
    Format a NEWICK string for consistent representation.

    Ensures the NEWICK string:
    - Ends with a semicolon
    - Has no leading/trailing whitespace

    Parameters
    ----------
    newick : str
        NEWICK string to format.

    Returns
    -------
    str
        Formatted NEWICK string.

    Examples
    --------
    >>> format_newick('((A:1,B:1):1,(C:1,D:1):1)')
    '((A:1,B:1):1,(C:1,D:1):1);'

    >>> format_newick('  ((A:1,B:1):1);  ')
    '((A:1,B:1):1);'
    """
    newick = newick.strip()
    if not newick.endswith(';'):
        newick += ';'
    return newick


def patristic_distances(root) -> Dict[FrozenSet[str], float]:
    """
    Compute every leaf-pair patristic distance of a rooted tree view.

    Uses the identity
        dist(u, v) = root_distance[u] + root_distance[v]
                     - 2 * root_distance[LCA(u, v)]
    with the LCA found by walking parent-side ancestor sets.  Intended for
    verification of small and medium trees (O(n^2) pairs).

    Parameters
    ----------
    root : Node
        Root of the tree.  Leaf names must be unique.

    Returns
    -------
    dict[frozenset{str, str}, float]

    Raises
    ------
    ValueError   if two leaves share a name.
    """
    root_distance = {id(root): 0.0}
    ancestors = {id(root): (root,)}
    leaves = []
    for node in root.iter_preorder():
        for child in node.children:
            root_distance[id(child)] = root_distance[id(node)] + child.length
            ancestors[id(child)] = ancestors[id(node)] + (child,)
        if node.is_leaf():
            leaves.append(node)

    seen = set()
    for leaf in leaves:
        if leaf.name in seen:
            raise ValueError(f"Duplicate leaf name '{leaf.name}'.")
        seen.add(leaf.name)

    result = {}
    for u, v in combinations(leaves, 2):
        lca = _deepest_shared(ancestors[id(u)], ancestors[id(v)])
        result[frozenset((u.name, v.name))] = (
            root_distance[id(u)] + root_distance[id(v)] - 2.0 * root_distance[id(lca)]
        )
    return result


def _deepest_shared(path_u: Tuple, path_v: Tuple):
    lca = path_u[0]
    for a, b in zip(path_u, path_v):
        if a is not b:
            break
        lca = a
    return lca

"""
_exceptions.py
==============
Exception types for nemoto.

Two families are distinguished:

* **Usage errors** (``TreeUsageError`` and subclasses) are reported to the
  caller and describe a problem with the input: too few leaves, an outgroup
  that matches nothing, an edge index that does not exist.  They subclass
  ``ValueError`` so callers that already catch ``ValueError`` keep working.

* **Invariant violations** (``GraphInvariantError``) indicate a bug inside
  the engine (a cache read before its write, a traversal reaching an edge
  that is not incident to the calling node).  They are never caught
  internally.

An outgroup that does not define a unique clade is *not* an error; see
``TreeManipulator.all_rooted_by``.
"""

from typing import Iterable, Optional


class NemotoError(Exception):
    """Base exception for nemoto errors."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


# ============================================================================ #
# Usage errors
# ============================================================================ #


class TreeUsageError(NemotoError, ValueError):
    """Raised when the caller hands the engine an unusable tree or argument."""


class TooFewLeavesError(TreeUsageError):
    """Raised when a tree has fewer than three leaves."""

    def __init__(self, n_leaves: int):
        super().__init__(
            message=f"Tree must contain at least 3 leaves (found {n_leaves})",
            suggestion=(
                "Re-rooting is only meaningful for trees with three or more "
                "taxa. Check that the input tree was parsed correctly."
            ),
        )
        self.n_leaves = n_leaves


class OutgroupError(TreeUsageError):
    """Raised when an outgroup cannot be used to root the tree."""

    def __init__(self, names: Iterable[str], reason: str):
        names = sorted(str(n) for n in names)
        shown = ", ".join(names[:5])
        if len(names) > 5:
            shown += f", ... ({len(names)} names)"
        super().__init__(
            message=f"Unusable outgroup [{shown}]: {reason}",
            suggestion=(
                "The outgroup must name at least one leaf of the tree and "
                "must not contain every leaf."
            ),
        )
        self.names = names
        self.reason = reason


class UnknownEdgeError(TreeUsageError):
    """Raised when an edge index does not exist in the graph."""

    def __init__(self, edge: int, n_edges: int):
        super().__init__(
            message=f"Edge {edge} does not exist (graph has {n_edges} edges)",
            suggestion="Obtain edge handles from TreeManipulator.branch_access().",
        )
        self.edge = edge
        self.n_edges = n_edges


class UnknownNodeError(TreeUsageError):
    """Raised when a node is not part of the tree the graph was built from."""

    def __init__(self, node):
        super().__init__(
            message=f"Node {node!r} was not found in the original tree",
            suggestion=(
                "rooted_above() expects a node object from the tree passed to "
                "the TreeManipulator constructor. The root of a bifurcating "
                "input is dissolved into the base edge and cannot be used."
            ),
        )
        self.node = node


# ============================================================================ #
# Invariant violations
# ============================================================================ #


class GraphInvariantError(NemotoError, RuntimeError):
    """Raised when an internal graph invariant is violated (engine bug)."""

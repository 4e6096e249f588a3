"""
nemoto (ネモト)
===============

Re-rooting of phylogenetic trees: midpoint rooting, outgroup rooting,
enumeration of every rooting, and subtree grafting on an immutable
unrooted-graph view.

*Nemoto* (根元 = "the base of a tree, where the root meets the trunk") builds
the unrooted graph of a tree once and answers every rooting query from it.

Main Classes
------------
TreeManipulator : Re-rooting facade over one tree
Node : Rooted tree view consumed and produced by the engine
UnrootedGraph : Integer-indexed unrooted graph with path caches
BranchAccess : Per-edge handle (label splits, annotations, grafting)
RootIterator : Lazy enumerator over every rooting
ConstructionPolicy : MIMIC / EXPAND / REDUCE polytomy handling

Functions
---------
midpoint_root, root_by_outgroup, all_rootings_by_outgroup, unroot,
every_root, every_root_iterator : One-shot conveniences
parse_newick, to_newick : NEWICK adapter
instruct_rooted, instruct_unrooted : Stream a Node into a visitor interface

Context Managers
----------------
quiet : Suppress logging during operations
suppress_logger : Suppress specific logger
suppress_warnings : Suppress specific warnings
use_backend : Force specific computational backend
silent_benchmark : Combine quiet + backend selection + warning suppression

Backend Information
-------------------
get_available_backends : Query available computational backends
get_backend_info : Get comprehensive backend status
check_numba_available : Check if numba can compile

Examples
--------
Basic usage:

>>> from nemoto import TreeManipulator, to_newick
>>> m = TreeManipulator('((A:1,B:1):1,(C:1,D:3):1);')
>>> to_newick(m.midpoint_rooted())
'((A:1.0,B:1.0):2.0,(C:1.0,D:3.0):0.0);'

Outgroup rooting:

>>> rooted = m.rooted_by(['A', 'B'])
>>> m.forms_exact_clade(['A', 'B'])
True

With context managers:

>>> from nemoto import quiet, use_backend
>>> with quiet(), use_backend('python'):
...     roots = m.every_root()
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Main classes
from ._manipulator import (
    TreeManipulator,
    unroot,
    midpoint_root,
    root_by_outgroup,
    all_rootings_by_outgroup,
    every_root,
    every_root_iterator,
)
from ._node import Node
from ._graph import UnrootedGraph
from ._builder import ConstructionPolicy, DEFAULT_POLICY, MIN_BRANCH_LENGTH, GraphBuilder
from ._branch import BranchAccess
from ._enumerator import RootIterator

# Visitor protocols
from ._interfaces import (
    RootedTreeInterface,
    RNode,
    RBranch,
    UnrootedTreeInterface,
    BaseBranch,
    UNode,
    UBranch,
    RootedInstructee,
    UnrootedInstructee,
    instruct_rooted,
    instruct_unrooted,
)
from ._recorder import RootedNodeRecorder, UnrootedNodeRecorder

# Errors
from ._exceptions import (
    NemotoError,
    TreeUsageError,
    TooFewLeavesError,
    OutgroupError,
    UnknownEdgeError,
    UnknownNodeError,
    GraphInvariantError,
)

# Context managers (user-facing utilities)
from ._context import (
    suppress_logger,
    quiet,
    suppress_warnings,
    use_backend,
    silent_benchmark,
)

# Utilities
from ._newick import parse_newick, to_newick
from ._utils import format_newick, patristic_distances, validate_leaf_names

# Backend information (useful for checking capabilities)
from ._backend import (
    get_available_backends,
    get_backend_info,
    check_numba_available,
)

# Public API
__all__ = [
    # Main classes
    "TreeManipulator",
    "Node",
    "UnrootedGraph",
    "GraphBuilder",
    "ConstructionPolicy",
    "DEFAULT_POLICY",
    "MIN_BRANCH_LENGTH",
    "BranchAccess",
    "RootIterator",
    # Conveniences
    "unroot",
    "midpoint_root",
    "root_by_outgroup",
    "all_rootings_by_outgroup",
    "every_root",
    "every_root_iterator",
    # Visitor protocols
    "RootedTreeInterface",
    "RNode",
    "RBranch",
    "UnrootedTreeInterface",
    "BaseBranch",
    "UNode",
    "UBranch",
    "RootedInstructee",
    "UnrootedInstructee",
    "instruct_rooted",
    "instruct_unrooted",
    "RootedNodeRecorder",
    "UnrootedNodeRecorder",
    # Errors
    "NemotoError",
    "TreeUsageError",
    "TooFewLeavesError",
    "OutgroupError",
    "UnknownEdgeError",
    "UnknownNodeError",
    "GraphInvariantError",
    # Context managers
    "suppress_logger",
    "quiet",
    "suppress_warnings",
    "use_backend",
    "silent_benchmark",
    # Utilities
    "parse_newick",
    "to_newick",
    "format_newick",
    "patristic_distances",
    "validate_leaf_names",
    # Backend information
    "get_available_backends",
    "get_backend_info",
    "check_numba_available",
    # Version info
    "__version__",
]

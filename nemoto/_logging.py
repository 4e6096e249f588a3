"""
_logging.py
===========
Logging functions for nemoto.

All functions in this module have NO side effects except logging. They take
computed data as parameters and format/emit log messages.

This separation ensures:
- Logging can be easily disabled/mocked in tests
- Computation is separate from presentation
"""

import logging
from typing import Iterable, List


logger = logging.getLogger(__name__)


# ============================================================================ #
# System and Backend Logging (called at module import time)
# ============================================================================ #


def log_optimization_status(numba_available: bool) -> None:
    """
    Log system capabilities and numba configuration at INFO level.

    Called once at module import time.

    Parameters
    ----------
    numba_available : bool
        Whether numba's JIT compiler is enabled.
    """
    import os
    import platform

    cpu_count = os.cpu_count() or 1
    logger.info(
        f"System: {platform.machine()} ({platform.system()}), "
        f"{cpu_count} CPU cores, Python {platform.python_version()}"
    )

    import numba

    if numba_available:
        logger.info(f"Numba {numba.__version__} loaded successfully")
        try:
            import llvmlite

            logger.info(f"LLVM backend: llvmlite {llvmlite.__version__}")
        except (ImportError, AttributeError):
            pass  # LLVM version unavailable
    else:
        logger.info(
            f"Numba {numba.__version__} JIT disabled (NUMBA_DISABLE_JIT) - "
            "graph kernels will run as pure Python"
        )


def log_backend_availability(backends_available: List[str]) -> None:
    """
    Log which execution backends are available for the graph kernels.

    Parameters
    ----------
    backends_available : List[str]
        Available backends in preference order (e.g. ['python', 'cpu']).
    """
    logger.info(f"Available backends: {', '.join(backends_available)}")

    if "cpu" in backends_available:
        logger.info("  cpu: LLVM-compiled kernels (numba.njit)")
    if "python" in backends_available:
        logger.info("  python: uncompiled reference implementation")

    best = backends_available[-1]
    logger.info(f"Default backend='best' will use: {best}")


# ============================================================================ #
# Graph Construction Logging
# ============================================================================ #


def log_graph_built(
    policy: str, n_leaves: int, n_nodes: int, n_edges: int, input_unrooted: bool
) -> None:
    """
    Log the size of a freshly built unrooted graph.

    Parameters
    ----------
    policy : str
        Name of the construction policy.
    n_leaves, n_nodes, n_edges : int
        Graph dimensions.
    input_unrooted : bool
        Whether the input root had more than two children.
    """
    logger.info(
        "Graph built (%s): %d leaves, %d nodes, %d edges%s",
        policy,
        n_leaves,
        n_nodes,
        n_edges,
        " (input was unrooted)" if input_unrooted else "",
    )


def log_policy_adjustments(
    n_expanded: int, n_connectors: int, n_absorbed: int, n_unary: int
) -> None:
    """
    Emit a consolidated summary of structural changes made during
    construction.

    Parameters
    ----------
    n_expanded : int
        Polytomies rewritten as binary ladders (EXPAND).
    n_connectors : int
        Zero-length connector edges added for those ladders.
    n_absorbed : int
        Near-zero internal branches absorbed (REDUCE).
    n_unary : int
        Single-child nodes collapsed into their child's branch.
    """
    if n_expanded > 0:
        logger.warning(
            "%d polytomies expanded with %d zero-length connector branches",
            n_expanded,
            n_connectors,
        )
    if n_absorbed > 0:
        logger.warning(
            "%d near-zero internal branches absorbed into polytomies", n_absorbed
        )
    if n_unary > 0:
        logger.warning(
            "%d single-child node(s) collapsed. Their branch lengths were "
            "added to the child branch.",
            n_unary,
        )


# ============================================================================ #
# Rooting Logging
# ============================================================================ #


def log_kernel_run(kernel: str, backend: str, n_written: int) -> None:
    """Log one kernel invocation at DEBUG level."""
    logger.debug("%s ran on backend '%s' (%d cells written)", kernel, backend, n_written)


def log_unmatched_outgroup(unmatched: Iterable[str], n_matched: int) -> None:
    """
    Warn about outgroup names that are not leaves of the tree.

    Parameters
    ----------
    unmatched : Iterable[str]
        Requested names with no matching leaf.
    n_matched : int
        Number of requested names that did match.
    """
    unmatched = sorted(unmatched)
    if not unmatched:
        return
    shown = ", ".join(unmatched[:5])
    if len(unmatched) > 5:
        shown += ", ..."
    logger.warning(
        "%d outgroup name(s) not found in tree and ignored (%s); "
        "%d matched",
        len(unmatched),
        shown,
        n_matched,
    )


def log_ambiguous_outgroup(n_matched: int, n_clade: int) -> None:
    """
    Warn that an outgroup does not form a clade in any rooting.

    Parameters
    ----------
    n_matched : int
        Number of outgroup leaves found in the tree.
    n_clade : int
        Size of the smallest clade containing all of them in the chosen
        rooting.
    """
    logger.warning(
        "Outgroup of %d leaves is not monophyletic; the chosen rooting groups "
        "it in a clade of %d leaves. Use all_rooted_by() to see every "
        "candidate rooting.",
        n_matched,
        n_clade,
    )

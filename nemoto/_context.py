"""
_context.py
===========
Context managers for nemoto.

Provides context managers for temporarily changing state:
- Logging control (suppress/change levels)
- Warning control (suppress specific warnings)
- Backend selection (force specific backend)

All context managers restore state on exit, even if exceptions occur.
"""

import logging
import warnings
from contextlib import contextmanager
from typing import Optional, Type


# Module-level state for backend override
_backend_override = None


# ============================================================================ #
# Logging Context Managers
# ============================================================================ #


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """
    Temporarily change a logger's level.

    Parameters
    ----------
    logger_name : str
        Name of the logger to suppress (e.g. 'nemoto._builder').
    level : int, default logging.CRITICAL
        Temporary logging level.

    Examples
    --------
    >>> with suppress_logger('nemoto._manipulator'):
    ...     m = TreeManipulator(root)
    """
    logger = logging.getLogger(logger_name)
    original_level = logger.level

    try:
        logger.setLevel(level)
        yield
    finally:
        logger.setLevel(original_level)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Temporarily suppress all nemoto logging.

    Every module logs through a child of the 'nemoto' logger, so lowering
    the parent's level silences the whole package.

    Parameters
    ----------
    level : int, default logging.CRITICAL
        Temporary logging level.

    Examples
    --------
    >>> with quiet():
    ...     rooted = TreeManipulator(root).rooted_by(['A', 'C'])

    >>> with quiet(logging.WARNING):
    ...     m = TreeManipulator(root, policy='expand')
    """
    with suppress_logger("nemoto", level):
        yield


# ============================================================================ #
# Warning Context Managers
# ============================================================================ #


@contextmanager
def suppress_warnings(category: Optional[Type[Warning]] = None):
    """
    Temporarily suppress warnings.

    Parameters
    ----------
    category : Type[Warning] or None, default None
        Warning category to suppress. If None, suppresses all warnings.

    Examples
    --------
    >>> from numba.core.errors import NumbaPerformanceWarning
    >>> with suppress_warnings(NumbaPerformanceWarning):
    ...     m.recalculate_path_lengths()
    """
    with warnings.catch_warnings():
        if category is None:
            warnings.simplefilter("ignore")
        else:
            warnings.filterwarnings("ignore", category=category)
        yield


# ============================================================================ #
# Backend Context Managers
# ============================================================================ #


@contextmanager
def use_backend(backend: str):
    """
    Temporarily force a specific backend for the graph kernels.

    Parameters
    ----------
    backend : str
        'python', 'cpu' or 'best'.

    Raises
    ------
    ValueError
        If requested backend is not available.

    Examples
    --------
    >>> with use_backend('python'):
    ...     # No JIT compilation, easier to debug
    ...     rooted = m.midpoint_rooted()

    Notes
    -----
    Not thread-safe: uses module-level state.  Pass ``backend=`` to
    ``TreeManipulator`` instead when threads are involved.
    """
    global _backend_override

    from nemoto._backend import get_available_backends

    available = get_available_backends()
    if backend != "best" and backend not in available:
        raise ValueError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(available)}"
        )

    original_override = _backend_override
    try:
        _backend_override = backend
        yield
    finally:
        _backend_override = original_override


def get_backend_override() -> Optional[str]:
    """
    Get the current backend override, if any.

    Returns
    -------
    str or None
        Current backend override, or None if no override active.
    """
    return _backend_override


# ============================================================================ #
# Combined Context Managers
# ============================================================================ #


@contextmanager
def silent_benchmark(backend: str = "best"):
    """
    Suppress logging and warnings while forcing a specific backend.

    Examples
    --------
    >>> for backend in ['python', 'cpu']:
    ...     with silent_benchmark(backend):
    ...         start = time.time()
    ...         m.every_root()
    ...         print(f"{backend}: {time.time() - start:.3f}s")
    """
    with quiet():
        with use_backend(backend):
            with suppress_warnings():
                yield

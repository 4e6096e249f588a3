"""
_backend.py
===========
Backend detection and selection for the graph kernels.

Two execution backends run the kernels in ``_kernels.py``:

  'python'  The kernel's uncompiled ``py_func`` (slow, easy to debug).
  'cpu'     The Numba-compiled kernel.

Functions in this module have NO side effects - they only query system state.
Logging is done by the calling code, not here.
"""

from typing import Callable, List, Optional, Tuple


# ============================================================================ #
# Backend Detection (No Side Effects)
# ============================================================================ #


def check_numba_available() -> bool:
    """
    Check whether numba can JIT-compile on this system.

    Returns
    -------
    bool
        True if numba's JIT is enabled, False when it has been switched off
        (``NUMBA_DISABLE_JIT=1``), in which case 'cpu' would silently run
        uncompiled code.
    """
    from numba.core import config

    return not config.DISABLE_JIT


def get_available_backends() -> List[str]:
    """
    Get list of available execution backends.

    Returns
    -------
    list[str]
        Available backends in preference order (last is best).
        Always includes 'python'; includes 'cpu' when numba can compile.

    Examples
    --------
    >>> get_available_backends()
    ['python', 'cpu']
    """
    backends = ["python"]
    if check_numba_available():
        backends.append("cpu")
    return backends


def get_best_backend() -> str:
    """
    Get the most optimized available backend.

    Returns
    -------
    str
        'cpu' if numba can compile, otherwise 'python'.
    """
    return get_available_backends()[-1]


def resolve_backend(backend: str) -> str:
    """
    Resolve a backend specification to an actual backend.

    Parameters
    ----------
    backend : str
        'best', 'python' or 'cpu'.

    Returns
    -------
    str
        Resolved backend name.

    Raises
    ------
    ValueError
        If requested backend is not available.

    Examples
    --------
    >>> resolve_backend('best')
    'cpu'
    >>> resolve_backend('python')
    'python'
    """
    if backend == "best":
        return get_best_backend()

    available = get_available_backends()
    if backend not in available:
        raise ValueError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(available)}"
        )
    return backend


# ============================================================================ #
# Kernel Selection
# ============================================================================ #


def import_kernels() -> Tuple[Callable, Callable]:
    """
    Import the compiled kernels from ``_kernels``.

    Returns
    -------
    tuple
        (max_path_kernel, side_counts_kernel), both numba dispatchers.
    """
    from nemoto._kernels import _max_path_njit, _side_counts_njit

    return _max_path_njit, _side_counts_njit


def select_kernel(kernel, backend: str) -> Callable:
    """
    Return the callable that runs *kernel* on the resolved *backend*.

    Parameters
    ----------
    kernel : numba dispatcher
    backend : str
        An already-resolved backend name ('python' or 'cpu').
    """
    if backend == "python":
        # With NUMBA_DISABLE_JIT the decorator returns the bare function.
        return getattr(kernel, "py_func", kernel)
    return kernel


# ============================================================================ #
# Module-Level State Query (Read-Only)
# ============================================================================ #


def get_backend_info() -> dict:
    """
    Get comprehensive backend information.

    Returns
    -------
    dict
        Dictionary with keys:
        - 'numba_available': bool
        - 'numba_version': str or None
        - 'backends': list[str]
        - 'best_backend': str

    Examples
    --------
    >>> info = get_backend_info()
    >>> info['backends']
    ['python', 'cpu']
    """
    import numba

    version: Optional[str] = getattr(numba, "__version__", None)
    return {
        "numba_available": check_numba_available(),
        "numba_version": version,
        "backends": get_available_backends(),
        "best_backend": get_best_backend(),
    }

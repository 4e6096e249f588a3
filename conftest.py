"""
conftest.py
===========
Session-level pytest configuration for the test suite.

Custom marks
------------
large_scale
    Applied to tests that build random trees large enough to take several
    seconds on the 'python' backend.  Run them with ``-m large_scale``;
    exclude them with ``-m "not large_scale"``.

    Registration here suppresses PytestUnknownMarkWarning and makes the mark
    visible in ``pytest --markers``.

Warning filters
---------------
NumbaPerformanceWarning messages are filtered out during tests.  They are
about compilation choices on tiny inputs and are not informative for
correctness testing.
"""

import warnings

from numba.core.errors import NumbaPerformanceWarning


def pytest_configure(config):
    """
    Configure pytest before test collection begins.

    This runs before any test modules are imported, which is important for
    catching warnings from numba kernel compilation.
    """
    config.addinivalue_line(
        "markers",
        "large_scale: random trees with thousands of leaves "
        "(slow on the python backend)",
    )
    warnings.filterwarnings("ignore", category=NumbaPerformanceWarning)


def pytest_unconfigure(config):
    """Restore default warning behavior after all tests complete."""
    warnings.resetwarnings()

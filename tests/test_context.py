"""
tests/test_context.py
=====================
Pytest test suite for the context managers in ``_context.py`` and the
backend queries in ``_backend.py``.
"""

import logging
import os
import sys
import warnings

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from nemoto import (
    TreeManipulator,
    check_numba_available,
    get_available_backends,
    get_backend_info,
    quiet,
    silent_benchmark,
    suppress_logger,
    suppress_warnings,
    use_backend,
)
from nemoto._backend import get_best_backend, resolve_backend, select_kernel
from nemoto._context import get_backend_override
from nemoto._kernels import _max_path_njit

POLYTOMY = "((A:1,B:1,C:1,D:1):1,(E:1,F:1):1);"


# ======================================================================== #
# 1. Backend queries                                                        #
# ======================================================================== #


class TestBackend:
    def test_python_always_available(self):
        backends = get_available_backends()
        assert backends[0] == "python"
        assert set(backends) <= {"python", "cpu"}

    def test_cpu_follows_numba(self):
        assert ("cpu" in get_available_backends()) == check_numba_available()

    def test_best_is_last(self):
        assert get_best_backend() == get_available_backends()[-1]
        assert resolve_backend("best") == get_best_backend()

    def test_resolve_explicit(self):
        assert resolve_backend("python") == "python"

    def test_resolve_unknown(self):
        with pytest.raises(ValueError, match="not available"):
            resolve_backend("cuda")

    def test_select_kernel(self):
        assert select_kernel(_max_path_njit, "python") is getattr(
            _max_path_njit, "py_func", _max_path_njit
        )
        assert select_kernel(_max_path_njit, "cpu") is _max_path_njit

    def test_backend_info(self):
        info = get_backend_info()
        assert set(info) == {"numba_available", "numba_version", "backends", "best_backend"}
        assert info["backends"] == get_available_backends()
        assert info["best_backend"] in info["backends"]
        assert isinstance(info["numba_version"], str)


# ======================================================================== #
# 2. Backend override                                                       #
# ======================================================================== #


class TestUseBackend:
    def test_override_set_and_restored(self):
        assert get_backend_override() is None
        with use_backend("python"):
            assert get_backend_override() == "python"
            with use_backend("best"):
                assert get_backend_override() == "best"
            assert get_backend_override() == "python"
        assert get_backend_override() is None

    def test_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with use_backend("python"):
                raise RuntimeError("boom")
        assert get_backend_override() is None

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            with use_backend("cuda"):
                pass

    def test_override_wins_over_argument(self, caplog):
        m = TreeManipulator(POLYTOMY, backend="cpu" if "cpu" in get_available_backends() else "python")
        with caplog.at_level(logging.DEBUG, logger="nemoto"):
            with use_backend("python"):
                m.recalculate_path_lengths()
        assert "max_path ran on backend 'python'" in caplog.text

    def test_override_rescues_unavailable_argument(self):
        m = TreeManipulator(POLYTOMY, backend="cuda")
        with use_backend("python"):
            m.midpoint_rooted()
        with pytest.raises(ValueError):
            m.midpoint_rooted()


# ======================================================================== #
# 3. Logging and warnings                                                   #
# ======================================================================== #


class TestQuiet:
    def test_quiet_silences_warnings(self, caplog):
        with caplog.at_level(logging.DEBUG):
            with quiet():
                TreeManipulator(POLYTOMY, policy="expand")
        assert not [r for r in caplog.records if r.name.startswith("nemoto")]

    def test_quiet_restores_level(self):
        package_logger = logging.getLogger("nemoto")
        original = package_logger.level
        with quiet():
            assert package_logger.level == logging.CRITICAL
        assert package_logger.level == original

    def test_quiet_custom_level(self, caplog):
        with caplog.at_level(logging.DEBUG):
            with quiet(logging.ERROR):
                TreeManipulator(POLYTOMY, policy="expand")
        assert "polytomies expanded" not in caplog.text

    def test_suppress_logger(self):
        target = logging.getLogger("nemoto._graph")
        original = target.level
        with suppress_logger("nemoto._graph", logging.ERROR):
            assert target.level == logging.ERROR
        assert target.level == original

    def test_suppress_warnings_category(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            with suppress_warnings(UserWarning):
                warnings.warn("hidden", UserWarning)
                warnings.warn("shown", DeprecationWarning)
        assert [str(w.message) for w in caught] == ["shown"]

    def test_suppress_all_warnings(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            with suppress_warnings():
                warnings.warn("hidden", UserWarning)
        assert caught == []


class TestSilentBenchmark:
    @pytest.mark.parametrize("backend", get_available_backends())
    def test_backends_agree(self, backend):
        m = TreeManipulator(POLYTOMY)
        with silent_benchmark(backend):
            assert get_backend_override() == backend
            roots = m.every_root()
        assert len(roots) == m.n_edges

    def test_silent(self, caplog):
        with caplog.at_level(logging.DEBUG):
            with silent_benchmark("python"):
                TreeManipulator(POLYTOMY, policy="expand").midpoint_rooted()
        assert not [r for r in caplog.records if r.name.startswith("nemoto")]

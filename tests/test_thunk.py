"""Tests for lazy node thunks."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from symbv.core.exceptions import SymbvError
from symbv.core.graph import NodeId
from symbv.core.thunk import LazyNode, ThunkState


class TestForce:
    def test_compute_runs_once(self):
        calls = []
        lazy = LazyNode(lambda: calls.append(1) or NodeId(1, 0))
        assert lazy.state is ThunkState.UNFORCED
        assert lazy.peek() is None
        assert lazy.force() == NodeId(1, 0)
        assert lazy.force() == NodeId(1, 0)
        assert calls == [1]
        assert lazy.is_forced
        assert lazy.peek() == NodeId(1, 0)

    def test_failure_is_memoized(self):
        calls = []

        def compute():
            calls.append(1)
            raise ValueError("boom")

        lazy = LazyNode(compute)
        with pytest.raises(ValueError, match="boom"):
            lazy.force()
        with pytest.raises(ValueError, match="boom"):
            lazy.force()
        assert lazy.state is ThunkState.FAILED
        assert calls == [1]

    def test_reentrant_force_is_reported(self):
        holder = {}
        lazy = LazyNode(lambda: holder["self"].force(), label="loop")
        holder["self"] = lazy
        with pytest.raises(SymbvError, match="cyclic definition while forcing loop"):
            lazy.force()

    def test_repr(self):
        lazy = LazyNode(lambda: NodeId(1, 4))
        assert repr(lazy) == "LazyNode(unforced)"
        lazy.force()
        assert repr(lazy) == "LazyNode(s4)"


class TestConcurrentForce:
    def test_waiters_observe_the_single_result(self):
        started = threading.Event()
        release = threading.Event()
        calls = []

        def compute():
            calls.append(1)
            started.set()
            release.wait(timeout=5)
            return NodeId(1, 9)

        lazy = LazyNode(compute)
        with ThreadPoolExecutor(max_workers=6) as executor:
            futures = [executor.submit(lazy.force) for _ in range(6)]
            assert started.wait(timeout=5)
            release.set()
            results = [f.result(timeout=5) for f in futures]
        assert results == [NodeId(1, 9)] * 6
        assert calls == [1]

    def test_waiters_observe_the_failure(self):
        started = threading.Event()
        release = threading.Event()

        def compute():
            started.set()
            release.wait(timeout=5)
            raise RuntimeError("insert failed")

        lazy = LazyNode(compute)
        with ThreadPoolExecutor(max_workers=4) as executor:
            futures = [executor.submit(lazy.force) for _ in range(4)]
            assert started.wait(timeout=5)
            release.set()
            for future in futures:
                with pytest.raises(RuntimeError, match="insert failed"):
                    future.result(timeout=5)

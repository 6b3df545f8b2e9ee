"""Lazy, shared, thread-safe node thunks.
A LazyNode wraps the closure that inserts a value's node into the graph.
State machine:
    UNFORCED --force--> FORCING --ok--> FORCED(node_id)
                               \\--raise--> FAILED(exc)
FORCED and FAILED are terminal. Concurrent forces of an in-flight thunk
block on a condition variable and observe the single result, so graph
insertion for one thunk happens at most once.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from enum import Enum, auto
from typing import TYPE_CHECKING

from symbv.core.exceptions import SymbvError

if TYPE_CHECKING:
    from symbv.core.graph import NodeId


class ThunkState(Enum):
    """Lifecycle of a lazy node."""

    UNFORCED = auto()
    FORCING = auto()
    FORCED = auto()
    FAILED = auto()


class LazyNode:
    """Memoized, at-most-once graph insertion for one symbolic value."""

    __slots__ = ("_compute", "_cond", "_state", "_value", "_error", "_owner", "label")

    def __init__(self, compute: Callable[[], NodeId], label: str = "") -> None:
        self._compute: Callable[[], NodeId] | None = compute
        self._cond = threading.Condition(threading.Lock())
        self._state = ThunkState.UNFORCED
        self._value: NodeId | None = None
        self._error: BaseException | None = None
        self._owner: int | None = None
        self.label = label

    @property
    def state(self) -> ThunkState:
        with self._cond:
            return self._state

    @property
    def is_forced(self) -> bool:
        return self.state is ThunkState.FORCED

    def peek(self) -> NodeId | None:
        """The node id if already forced, without forcing."""
        with self._cond:
            return self._value if self._state is ThunkState.FORCED else None

    def force(self) -> NodeId:
        """Compute the node id once; later calls return the memoized id.
        Raises:
            SymbvError: On a re-entrant force from the computing thread.
            Exception: Whatever the closure raised, on this and every later
                force.
        """
        me = threading.get_ident()
        with self._cond:
            while True:
                if self._state is ThunkState.FORCED:
                    return self._value
                if self._state is ThunkState.FAILED:
                    raise self._error
                if self._state is ThunkState.UNFORCED:
                    break
                if self._owner == me:
                    raise SymbvError(f"cyclic definition while forcing {self.label or 'a value'}")
                self._cond.wait()
            self._state = ThunkState.FORCING
            self._owner = me
            compute = self._compute
        try:
            value = compute()
        except BaseException as exc:
            with self._cond:
                self._state = ThunkState.FAILED
                self._error = exc
                self._compute = None
                self._owner = None
                self._cond.notify_all()
            raise
        with self._cond:
            self._state = ThunkState.FORCED
            self._value = value
            self._compute = None
            self._owner = None
            self._cond.notify_all()
        return value

    def __repr__(self) -> str:
        state = self.state
        if state is ThunkState.FORCED:
            return f"LazyNode({self._value})"
        return f"LazyNode({state.name.lower()})"


__all__ = ["ThunkState", "LazyNode"]

"""Symbolic runs.
A SymbolicRun is one complete symbolic-evaluation session bound to exactly
one ExpressionGraph. It is the explicit context every symbolic value
belongs to: free variables are introduced through it, constraints and
outputs are registered on it, and it hands the finished graph to the solver
or the code generator. Closing the run expires its graph.
Example:
    >>> with SymbolicRun() as run:
    ...     x = run.free("x", WORD8)
    ...     run.constrain((x * 3).eq(7))
    ...     result = run.check()
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, TypeVar

from symbv.config import SymbvConfig, get_config
from symbv.core.exceptions import KindMismatch
from symbv.core.graph import ExpressionGraph, NodeId
from symbv.core.kinds import KBOOL, Kind
from symbv.core.ops import Op, OpDescriptor
from symbv.core.thunk import LazyNode
from symbv.core.values import SVal, literal
from symbv.core.views import BoundVariable, CodeGraph, SolverQuery
from symbv.logging import get_logger

if TYPE_CHECKING:
    from symbv.solver.result import SolverResult

T = TypeVar("T")
R = TypeVar("R")


class SymbolicRun:
    """One symbolic-evaluation session and its expression graph."""

    def __init__(self, name: str | None = None, config: SymbvConfig | None = None) -> None:
        self.config = config or get_config()
        self.graph = ExpressionGraph(name)
        self._assertions: list[SVal] = []
        self._outputs: list[tuple[str, SVal]] = []
        self._lock = threading.Lock()

    def __enter__(self) -> SymbolicRun:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Discard the run; its graph and node ids become invalid."""
        if not self.graph.closed:
            self.graph.close()

    @property
    def closed(self) -> bool:
        return self.graph.closed

    def free(self, name: str, kind: Kind) -> SVal:
        """Introduce a named free variable.
        The name is reserved immediately; the VAR node is inserted when the
        value is first forced.
        Raises:
            DuplicateFreeVariableName: If the name is already used in this run.
        """
        self.graph.reserve_name(name, kind)
        graph = self.graph
        descriptor = OpDescriptor(Op.VAR, (name,))
        lazy = LazyNode(lambda: graph.insert(descriptor, (), kind), label=name)
        return SVal.symbolic(kind, lazy, graph)

    def frees(self, names: Iterable[str], kind: Kind) -> list[SVal]:
        """Introduce several free variables of one kind."""
        return [self.free(name, kind) for name in names]

    def constrain(self, condition: SVal | bool) -> None:
        """Add a boolean assertion to the run."""
        if isinstance(condition, bool):
            condition = literal(KBOOL, condition)
        if not condition.kind.is_bool:
            raise KindMismatch(KBOOL, condition.kind, context="constraint")
        with self._lock:
            self._assertions.append(condition)

    def output(self, value: SVal, name: str | None = None) -> None:
        """Designate a value as an output of the computation."""
        with self._lock:
            label = name or f"out{len(self._outputs)}"
            self._outputs.append((label, value))

    @property
    def assertions(self) -> list[SVal]:
        with self._lock:
            return list(self._assertions)

    @property
    def outputs(self) -> list[tuple[str, SVal]]:
        with self._lock:
            return list(self._outputs)

    def force_all(self, values: Sequence[SVal], max_workers: int | None = None) -> list[NodeId]:
        """Force many values concurrently on a thread pool."""
        workers = max_workers or self.config.runtime.max_workers
        graph = self.graph
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda v: v.node(graph), values))

    def parallel_map(
        self,
        fn: Callable[[T], R],
        items: Iterable[T],
        max_workers: int | None = None,
    ) -> list[R]:
        """Evaluate a host function over items on a thread pool.
        Values built by fn may share subexpressions; hash-consing keeps the
        graph identical (up to node numbering) to a sequential evaluation.
        """
        workers = max_workers or self.config.runtime.max_workers
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(fn, items))

    def _bind_variables(self) -> list[BoundVariable]:
        bound = []
        for var in self.graph.free_variables:
            node_id = self.graph.insert(OpDescriptor(Op.VAR, (var.name,)), (), var.kind)
            bound.append(BoundVariable.bind(var, node_id))
        return bound

    def to_query(self, assertions: Iterable[SVal] | None = None) -> SolverQuery:
        """Serialize the run for a solver.
        Args:
            assertions: Boolean values to assert; defaults to the run's
                registered constraints.
        """
        if assertions is None:
            assertions = self.assertions
        roots = []
        for assertion in assertions:
            if not assertion.kind.is_bool:
                raise KindMismatch(KBOOL, assertion.kind, context="assertion")
            roots.append(assertion.node(self.graph))
        variables = self._bind_variables()
        nodes = self.graph.topological_order([*roots, *(v.node_id for v in variables)])
        get_logger().debug(
            f"query over {len(variables)} variable(s), {len(nodes)} node(s), "
            f"{len(roots)} assertion(s)",
            category="run",
        )
        return SolverQuery(variables=variables, nodes=nodes, assertions=roots)

    def code_view(self, outputs: Iterable[tuple[str, SVal]] | None = None) -> CodeGraph:
        """Expose the graph to a code generator."""
        if outputs is None:
            outputs = self.outputs
        output_ids = [(name, value.node(self.graph)) for name, value in outputs]
        inputs = self._bind_variables()
        nodes = self.graph.topological_order(
            [*(node_id for _, node_id in output_ids), *(v.node_id for v in inputs)]
        )
        return CodeGraph(inputs=inputs, nodes=nodes, outputs=output_ids)

    def check(self, config: SymbvConfig | None = None) -> SolverResult:
        """Solve the run's constraints."""
        return self.check_assertions(None, config)

    def check_assertions(
        self, assertions: Iterable[SVal] | None, config: SymbvConfig | None = None
    ) -> SolverResult:
        """Solve an explicit set of assertions over this run's variables."""
        from symbv.solver import solve

        return solve(self.to_query(assertions), config or self.config)

    def __repr__(self) -> str:
        return f"SymbolicRun({self.graph!r}, assertions={len(self._assertions)})"


__all__ = ["SymbolicRun"]

"""Symbolic control flow.
Host-level `if` cannot branch on a symbolic condition, so ite() is the
branching primitive: with a concrete condition only the live branch is
produced; with a symbolic condition both branches are produced and a
multiplexer (ITE) node selects between them at solve time.
Branches are passed as producers (zero-argument callables) when they are
expensive or only well-defined under the condition, e.g. recursion that
terminates only along the reachable branch:
    def count_down(n):
        return ite(n.eq(0), 0, lambda: count_down(n - 1))
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Union

from symbv.core.exceptions import KindMismatch
from symbv.core.graph import NodeId
from symbv.core.kinds import KBOOL, Kind, infer_kind, literal_eq
from symbv.core.ops import Op, OpDescriptor, result_kind
from symbv.core.thunk import LazyNode
from symbv.core.values import SVal, apply, common_graph, literal

Branch = Union[SVal, Callable[[], Any], Any]


def _produce(branch: Branch) -> Any:
    if callable(branch):
        return branch()
    return branch


def _condition(condition: SVal | bool) -> SVal:
    if isinstance(condition, bool):
        return literal(KBOOL, condition)
    if not isinstance(condition, SVal):
        raise TypeError(f"ite condition must be an SVal or bool, got {type(condition).__name__}")
    if not condition.kind.is_bool:
        raise KindMismatch(KBOOL, condition.kind, context="ite condition")
    return condition


def _branch_literal(kind: Kind, value: Any, context: str) -> SVal:
    try:
        return literal(kind, value)
    except KindMismatch:
        actual = infer_kind(value) or type(value).__name__
        raise KindMismatch(kind, actual, context=context) from None


def unify(a: Any, b: Any, context: str = "ite branches") -> tuple[SVal, SVal]:
    """Lift a pair of values/host literals to SVals of one kind.
    Raises:
        KindMismatch: If the two kinds differ, naming both.
        TypeError: If neither side determines a kind.
    """
    if not isinstance(a, SVal) and not isinstance(b, SVal):
        kind = infer_kind(a) or infer_kind(b)
        if kind is None:
            raise TypeError(f"cannot infer the kind of {context} {a!r} and {b!r}")
        a = literal(kind, a)
    if not isinstance(a, SVal):
        a = _branch_literal(b.kind, a, context)
    if not isinstance(b, SVal):
        b = _branch_literal(a.kind, b, context)
    if a.kind != b.kind:
        raise KindMismatch(a.kind, b.kind, context=context)
    return a, b


def ite(condition: SVal | bool, then_branch: Branch, else_branch: Branch) -> Any:
    """If-then-else over a possibly symbolic condition.
    Args:
        condition: Boolean SVal (or host bool)
        then_branch: Value, or producer evaluated only if needed
        else_branch: Value, or producer evaluated only if needed
    Returns:
        With a concrete condition, whatever the live branch produces (the
        other producer is never invoked). With a symbolic condition, an SVal
        of the branches' common kind.
    Raises:
        KindMismatch: If the condition is not boolean, or the branch kinds
            differ. Raised before any node is inserted.
    """
    cond = _condition(condition)
    if cond.is_concrete:
        return _produce(then_branch if cond.value else else_branch)
    then_value, else_value = unify(_produce(then_branch), _produce(else_branch))
    if then_value is else_value:
        return then_value
    if (
        then_value.is_concrete
        and else_value.is_concrete
        and literal_eq(then_value.value, else_value.value)
    ):
        return then_value
    kind = then_value.kind
    graph = common_graph((cond, then_value, else_value))
    descriptor = OpDescriptor(Op.ITE)

    def insert() -> NodeId:
        cond_id = cond.node(graph)
        then_id = then_value.node(graph)
        else_id = else_value.node(graph)
        if then_id == else_id:
            return then_id
        return graph.insert(descriptor, (cond_id, then_id, else_id), kind)

    return SVal.symbolic(kind, LazyNode(insert, label="ITE"), graph)


def select(table: Sequence[Any], default: Any, index: SVal | int) -> SVal:
    """Table lookup: table[index] when the index is in range, else default.
    A concrete index picks the element directly; a symbolic index builds a
    single TABLE node rather than a chain of multiplexers.
    """
    entries = list(table) + [default]
    anchor = next((e for e in entries if isinstance(e, SVal)), None)
    if anchor is None:
        kind = infer_kind(entries[0])
        if kind is None:
            raise TypeError("select needs at least one SVal (or bool/float) entry to fix its kind")
    else:
        kind = anchor.kind
    lifted = [e if isinstance(e, SVal) else _branch_literal(kind, e, "select table") for e in entries]
    for value in lifted:
        if value.kind != kind:
            raise KindMismatch(kind, value.kind, context="select table")
    *table_values, default_value = lifted
    if isinstance(index, SVal):
        result_kind(Op.TABLE, [index.kind, kind, *[v.kind for v in table_values]])
        if index.is_symbolic:
            return apply(Op.TABLE, (index, default_value, *table_values))
        position = index.value
    elif isinstance(index, int) and not isinstance(index, bool):
        position = index
    else:
        raise TypeError(f"select index must be an SVal or int, got {type(index).__name__}")
    return table_values[position] if 0 <= position < len(table_values) else default_value


__all__ = ["ite", "select", "unify", "Branch"]

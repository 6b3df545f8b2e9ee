"""Concrete-or-symbolic values.
An SVal is either a concrete literal of some kind, which never touches a
graph, or a symbolic reference: a kind plus a LazyNode that inserts the
value's node into its run's graph when forced. Operations over all-concrete
operands are computed eagerly in host arithmetic; as soon as one operand is
symbolic the result is a new symbolic value whose thunk forces the operand
thunks and hash-conses the resulting node.
Example:
    >>> x = run.free("x", WORD8)
    >>> y = (x + 1) * 2          # symbolic, nothing inserted yet
    >>> literal(WORD8, 250) + 10 # concrete fast path
    SVal(SWord8 4)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from symbv.core.exceptions import InvalidGraphHandle, UnsupportedOperation
from symbv.core.kinds import KBOOL, Kind
from symbv.core.ops import Op, OpDescriptor, evaluate, result_kind
from symbv.core.thunk import LazyNode

if TYPE_CHECKING:
    from symbv.core.graph import ExpressionGraph, NodeId

_MISSING = object()


class SVal:
    """A value of some Kind that is either concrete or symbolic.
    Instances are immutable; operations return new values.
    """

    __slots__ = ("kind", "_value", "_lazy", "_graph")

    def __init__(
        self,
        kind: Kind,
        value: Any = _MISSING,
        lazy: LazyNode | None = None,
        graph: ExpressionGraph | None = None,
    ) -> None:
        if (value is _MISSING) == (lazy is None):
            raise ValueError("an SVal is either concrete or symbolic")
        if lazy is not None and graph is None:
            raise ValueError("a symbolic SVal needs its graph")
        self.kind = kind
        self._value = value
        self._lazy = lazy
        self._graph = graph

    @staticmethod
    def concrete(kind: Kind, value: Any) -> SVal:
        """Wrap an already normalized literal."""
        return SVal(kind, value=value)

    @staticmethod
    def symbolic(kind: Kind, lazy: LazyNode, graph: ExpressionGraph) -> SVal:
        """Wrap a thunk that inserts this value's node into graph."""
        if graph.closed:
            raise InvalidGraphHandle(f"{graph.name} is closed")
        return SVal(kind, lazy=lazy, graph=graph)

    @property
    def is_concrete(self) -> bool:
        return self._lazy is None

    @property
    def is_symbolic(self) -> bool:
        return self._lazy is not None

    @property
    def graph(self) -> ExpressionGraph | None:
        """The owning graph of a symbolic value, None for concrete ones."""
        return self._graph

    @property
    def thunk(self) -> LazyNode | None:
        return self._lazy

    @property
    def value(self) -> Any:
        """The concrete literal.
        Raises:
            TypeError: If the value is symbolic.
        """
        if self._lazy is not None:
            raise TypeError(f"symbolic {self.kind} value has no concrete literal")
        return self._value

    def unliteral(self) -> Any:
        """The concrete literal, or None when symbolic."""
        return None if self._lazy is not None else self._value

    def node(self, graph: ExpressionGraph | None = None) -> NodeId:
        """Force this value into a graph node.
        Concrete values become (hash-consed) constant nodes of the given
        graph; symbolic values must belong to it.
        Raises:
            InvalidGraphHandle: If a symbolic value is used with a graph
                other than its own, or its graph is closed.
        """
        if self._lazy is None:
            if graph is None:
                raise ValueError("a concrete value needs a graph to become a node")
            return graph.constant(self.kind, self._value)
        if graph is not None and graph is not self._graph:
            raise InvalidGraphHandle(
                f"value of {self._graph.name} used with {graph.name}"
            )
        return self._lazy.force()

    def _coerce(self, other: Any) -> SVal:
        if isinstance(other, SVal):
            return other
        return literal(self.kind, other)

    def _binary(self, op: Op, other: Any) -> SVal:
        return apply(op, (self, self._coerce(other)))

    def _rbinary(self, op: Op, other: Any) -> SVal:
        return apply(op, (self._coerce(other), self))

    def __add__(self, other: Any) -> SVal:
        return self._binary(Op.ADD, other)

    def __radd__(self, other: Any) -> SVal:
        return self._rbinary(Op.ADD, other)

    def __sub__(self, other: Any) -> SVal:
        return self._binary(Op.SUB, other)

    def __rsub__(self, other: Any) -> SVal:
        return self._rbinary(Op.SUB, other)

    def __mul__(self, other: Any) -> SVal:
        return self._binary(Op.MUL, other)

    def __rmul__(self, other: Any) -> SVal:
        return self._rbinary(Op.MUL, other)

    def __floordiv__(self, other: Any) -> SVal:
        if not self.kind.is_bounded:
            raise UnsupportedOperation("//", self.kind)
        return self._binary(Op.QUOT, other)

    def __rfloordiv__(self, other: Any) -> SVal:
        if not self.kind.is_bounded:
            raise UnsupportedOperation("//", self.kind)
        return self._rbinary(Op.QUOT, other)

    def __truediv__(self, other: Any) -> SVal:
        if not self.kind.is_float:
            raise UnsupportedOperation("/", self.kind)
        return self._binary(Op.QUOT, other)

    def __rtruediv__(self, other: Any) -> SVal:
        if not self.kind.is_float:
            raise UnsupportedOperation("/", self.kind)
        return self._rbinary(Op.QUOT, other)

    def __mod__(self, other: Any) -> SVal:
        return self._binary(Op.REM, other)

    def __rmod__(self, other: Any) -> SVal:
        return self._rbinary(Op.REM, other)

    def quot(self, other: Any) -> SVal:
        """Truncating division; x.quot(0) == 0."""
        return self._binary(Op.QUOT, other)

    def rem(self, other: Any) -> SVal:
        """Remainder of quot; x.rem(0) == x."""
        return self._binary(Op.REM, other)

    def __neg__(self) -> SVal:
        return apply(Op.NEG, (self,))

    def __pos__(self) -> SVal:
        return self

    def __invert__(self) -> SVal:
        return apply(Op.NOT, (self,))

    def __and__(self, other: Any) -> SVal:
        return self._binary(Op.AND, other)

    def __rand__(self, other: Any) -> SVal:
        return self._rbinary(Op.AND, other)

    def __or__(self, other: Any) -> SVal:
        return self._binary(Op.OR, other)

    def __ror__(self, other: Any) -> SVal:
        return self._rbinary(Op.OR, other)

    def __xor__(self, other: Any) -> SVal:
        return self._binary(Op.XOR, other)

    def __rxor__(self, other: Any) -> SVal:
        return self._rbinary(Op.XOR, other)

    def __lshift__(self, amount: int) -> SVal:
        return apply(Op.SHL, (self,), (_shift_amount(amount),))

    def __rshift__(self, amount: int) -> SVal:
        return apply(Op.SHR, (self,), (_shift_amount(amount),))

    def __lt__(self, other: Any) -> SVal:
        return self._binary(Op.LT, other)

    def __le__(self, other: Any) -> SVal:
        return self._binary(Op.LE, other)

    def __gt__(self, other: Any) -> SVal:
        return self._binary(Op.GT, other)

    def __ge__(self, other: Any) -> SVal:
        return self._binary(Op.GE, other)

    def eq(self, other: Any) -> SVal:
        """Symbolic equality (IEEE-754 equality for floats)."""
        return self._binary(Op.EQ, other)

    def ne(self, other: Any) -> SVal:
        """Symbolic disequality."""
        return self._binary(Op.NE, other)

    def implies(self, other: Any) -> SVal:
        """Boolean implication."""
        return ~self | self._coerce(other)

    def __bool__(self) -> bool:
        if self._lazy is None and self.kind.is_bool:
            return self._value
        raise TypeError(
            f"cannot branch on a {'symbolic' if self._lazy else 'non-boolean'} "
            f"{self.kind} value in host code; use ite()"
        )

    def __repr__(self) -> str:
        if self._lazy is None:
            return f"SVal({self.kind} {self._value!r})"
        return f"SVal({self.kind} {self._lazy!r})"


def _shift_amount(amount: Any) -> int:
    if isinstance(amount, SVal):
        if amount.is_symbolic:
            raise TypeError("shift amounts must be concrete")
        amount = amount.value
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise ValueError(f"shift amount must be a non-negative int, got {amount!r}")
    return amount


def literal(kind: Kind, value: Any) -> SVal:
    """Concrete value of a kind; never touches a graph."""
    return SVal.concrete(kind, kind.normalize(value))


true = literal(KBOOL, True)
false = literal(KBOOL, False)


def common_graph(operands: Sequence[SVal]) -> ExpressionGraph | None:
    """The graph shared by the symbolic operands.
    Raises:
        InvalidGraphHandle: If operands come from different runs.
    """
    graph = None
    for operand in operands:
        if operand.graph is None:
            continue
        if graph is None:
            graph = operand.graph
        elif operand.graph is not graph:
            raise InvalidGraphHandle(
                f"operands from {graph.name} and {operand.graph.name} cannot be mixed"
            )
    if graph is not None and graph.closed:
        raise InvalidGraphHandle(f"{graph.name} is closed")
    return graph


def apply(op: Op, operands: Sequence[SVal], params: tuple = ()) -> SVal:
    """Apply an operation to values.
    Kinds are checked synchronously. With all-concrete operands the result
    is computed eagerly and no node is allocated; otherwise the result is a
    symbolic value whose node is inserted on first force.
    """
    operands = tuple(operands)
    kind = result_kind(op, [o.kind for o in operands], params)
    if all(o.is_concrete for o in operands):
        return SVal.concrete(kind, evaluate(op, kind, [o.value for o in operands], params))
    graph = common_graph(operands)
    descriptor = OpDescriptor(op, params)

    def insert() -> NodeId:
        operand_ids = [o.node(graph) for o in operands]
        return graph.insert(descriptor, operand_ids, kind)

    return SVal.symbolic(kind, LazyNode(insert, label=op.name), graph)


__all__ = ["SVal", "literal", "apply", "common_graph", "true", "false"]

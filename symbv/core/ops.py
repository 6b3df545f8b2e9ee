"""Operation catalog for symbv.
Each graph node carries an OpDescriptor. This module owns the two dispatch
tables every operation needs:
- result_kind: which operand kinds are legal and what kind comes out
- evaluate: the eager host semantics used by the concrete fast path
Bit-vector arithmetic wraps modulo 2**width. Division follows the
truncating convention with total definitions at zero:
    x quot 0 == 0
    x rem  0 == x
so that concrete evaluation, the solver encoding and the generated C code
all agree on every input.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from symbv.core.exceptions import KindMismatch, UnsupportedOperation
from symbv.core.kinds import KBOOL, Kind, KindTag, Left, Right, round_float32

if TYPE_CHECKING:
    from symbv.core.graph import NodeId


class Op(Enum):
    """Graph operations."""

    CONST = auto()
    VAR = auto()
    ADD = auto()
    SUB = auto()
    MUL = auto()
    QUOT = auto()
    REM = auto()
    NEG = auto()
    AND = auto()
    OR = auto()
    XOR = auto()
    NOT = auto()
    SHL = auto()
    SHR = auto()
    EQ = auto()
    NE = auto()
    LT = auto()
    LE = auto()
    GT = auto()
    GE = auto()
    ITE = auto()
    TABLE = auto()
    EITHER_CONSTRUCTOR = auto()
    EITHER_IS = auto()
    EITHER_ACCESS = auto()


ARITHMETIC_OPS = frozenset({Op.ADD, Op.SUB, Op.MUL, Op.QUOT, Op.REM})
BITWISE_OPS = frozenset({Op.AND, Op.OR, Op.XOR})
EQUALITY_OPS = frozenset({Op.EQ, Op.NE})
ORDERING_OPS = frozenset({Op.LT, Op.LE, Op.GT, Op.GE})
SHIFT_OPS = frozenset({Op.SHL, Op.SHR})
EITHER_OPS = frozenset({Op.EITHER_CONSTRUCTOR, Op.EITHER_IS, Op.EITHER_ACCESS})


def literal_key(value: Any) -> str:
    """Canonical text of a literal, stable across float signs and NaNs."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return value.hex()
    if isinstance(value, Left):
        return f"L({literal_key(value.value)})"
    if isinstance(value, Right):
        return f"R({literal_key(value.value)})"
    if isinstance(value, Kind):
        return str(value)
    return repr(value)


@dataclass(frozen=True)
class OpDescriptor:
    """What a node computes, minus its operands.
    Attributes:
        op: The operation
        params: Non-node payload (constant literal, variable name, shift
            amount, Either side flag)
    """

    op: Op
    params: tuple = ()

    def key(self) -> str:
        if not self.params:
            return self.op.name
        return f"{self.op.name}[{';'.join(literal_key(p) for p in self.params)}]"

    def __str__(self) -> str:
        return self.key()


def canonical_key(descriptor: OpDescriptor, kind: Kind, operands: Sequence[NodeId]) -> str:
    """Serialize (descriptor, kind, operand ids) into a hash-consing key.
    Operand order is preserved: commutative operations are not normalized.
    """
    return f"{descriptor.key()}:{kind}:{','.join(str(o.index) for o in operands)}"


def _same_kind(op: Op, kinds: Sequence[Kind]) -> Kind:
    first = kinds[0]
    for other in kinds[1:]:
        if other != first:
            raise KindMismatch(first, other, context=op.name)
    return first


def _expect_arity(op: Op, kinds: Sequence[Kind], arity: int) -> None:
    if len(kinds) != arity:
        raise TypeError(f"{op.name} takes {arity} operand(s), got {len(kinds)}")


def result_kind(op: Op, kinds: Sequence[Kind], params: tuple = ()) -> Kind:
    """Check operand kinds for an operation and return the result kind.
    Raises:
        KindMismatch: If operand kinds are incompatible.
        UnsupportedOperation: If the operation has no meaning for the kind.
    """
    if op in ARITHMETIC_OPS:
        _expect_arity(op, kinds, 2)
        kind = _same_kind(op, kinds)
        if kind.is_bounded or (kind.is_float and op is not Op.REM):
            return kind
        raise UnsupportedOperation(op.name, kind)
    if op is Op.NEG:
        _expect_arity(op, kinds, 1)
        if kinds[0].is_bounded or kinds[0].is_float:
            return kinds[0]
        raise UnsupportedOperation(op.name, kinds[0])
    if op in BITWISE_OPS:
        _expect_arity(op, kinds, 2)
        kind = _same_kind(op, kinds)
        if kind.is_bool or kind.is_bounded:
            return kind
        raise UnsupportedOperation(op.name, kind)
    if op is Op.NOT:
        _expect_arity(op, kinds, 1)
        if kinds[0].is_bool or kinds[0].is_bounded:
            return kinds[0]
        raise UnsupportedOperation(op.name, kinds[0])
    if op in SHIFT_OPS:
        _expect_arity(op, kinds, 1)
        if not kinds[0].is_bounded:
            raise UnsupportedOperation(op.name, kinds[0])
        if len(params) != 1 or not isinstance(params[0], int) or params[0] < 0:
            raise ValueError(f"{op.name} needs a non-negative shift amount, got {params}")
        return kinds[0]
    if op in EQUALITY_OPS:
        _expect_arity(op, kinds, 2)
        _same_kind(op, kinds)
        return KBOOL
    if op in ORDERING_OPS:
        _expect_arity(op, kinds, 2)
        kind = _same_kind(op, kinds)
        if kind.is_bounded or kind.is_float:
            return KBOOL
        raise UnsupportedOperation(op.name, kind)
    if op is Op.ITE:
        _expect_arity(op, kinds, 3)
        if not kinds[0].is_bool:
            raise KindMismatch(KBOOL, kinds[0], context="ite condition")
        return _same_kind(op, kinds[1:])
    if op is Op.TABLE:
        if len(kinds) < 2:
            raise TypeError("TABLE needs an index and a default")
        if not kinds[0].is_bounded:
            raise KindMismatch("a bit-vector index", kinds[0], context="table lookup")
        return _same_kind(op, kinds[1:])
    if op is Op.EITHER_CONSTRUCTOR:
        _expect_arity(op, kinds, 1)
        is_right, sum_kind = params
        side = sum_kind.right if is_right else sum_kind.left
        if kinds[0] != side:
            raise KindMismatch(side, kinds[0], context=f"{'right' if is_right else 'left'} injection")
        return sum_kind
    if op in (Op.EITHER_IS, Op.EITHER_ACCESS):
        _expect_arity(op, kinds, 1)
        if not kinds[0].is_either:
            raise KindMismatch("an Either kind", kinds[0], context=op.name)
        if op is Op.EITHER_IS:
            return KBOOL
        return kinds[0].right if params[0] else kinds[0].left
    raise UnsupportedOperation(op.name, kinds[0] if kinds else "nullary")


def _quot_int(a: int, b: int) -> int:
    if b == 0:
        return 0
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _rem_int(a: int, b: int) -> int:
    if b == 0:
        return a
    return a - b * _quot_int(a, b)


def _div_float(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


_INT_ARITH: dict[Op, Callable[[int, int], int]] = {
    Op.ADD: lambda a, b: a + b,
    Op.SUB: lambda a, b: a - b,
    Op.MUL: lambda a, b: a * b,
    Op.QUOT: _quot_int,
    Op.REM: _rem_int,
    Op.AND: lambda a, b: a & b,
    Op.OR: lambda a, b: a | b,
    Op.XOR: lambda a, b: a ^ b,
}

_FLOAT_ARITH: dict[Op, Callable[[float, float], float]] = {
    Op.ADD: lambda a, b: a + b,
    Op.SUB: lambda a, b: a - b,
    Op.MUL: lambda a, b: a * b,
    Op.QUOT: _div_float,
}

_BOOL_LOGIC: dict[Op, Callable[[bool, bool], bool]] = {
    Op.AND: lambda a, b: a and b,
    Op.OR: lambda a, b: a or b,
    Op.XOR: lambda a, b: a != b,
}

_COMPARE: dict[Op, Callable[[Any, Any], bool]] = {
    Op.EQ: lambda a, b: a == b,
    Op.NE: lambda a, b: a != b,
    Op.LT: lambda a, b: a < b,
    Op.LE: lambda a, b: a <= b,
    Op.GT: lambda a, b: a > b,
    Op.GE: lambda a, b: a >= b,
}


def evaluate(op: Op, kind: Kind, values: Sequence[Any], params: tuple = ()) -> Any:
    """Eagerly compute an operation over normalized concrete literals.
    Args:
        op: The operation
        kind: The result kind, as returned by result_kind
        values: Normalized operand literals
        params: Descriptor payload
    Returns:
        The normalized result literal.
    """
    if op in _COMPARE:
        return bool(_COMPARE[op](values[0], values[1]))
    if op is Op.ITE:
        return values[1] if values[0] else values[2]
    if op is Op.TABLE:
        index, default, table = values[0], values[1], values[2:]
        return table[index] if 0 <= index < len(table) else default
    if op is Op.EITHER_CONSTRUCTOR:
        return Right(values[0]) if params[0] else Left(values[0])
    if op is Op.EITHER_IS:
        return isinstance(values[0], Right if params[0] else Left)
    if op is Op.EITHER_ACCESS:
        side = Right if params[0] else Left
        return values[0].value if isinstance(values[0], side) else kind.zero
    if kind.tag is KindTag.BOOL:
        if op is Op.NOT:
            return not values[0]
        return _BOOL_LOGIC[op](values[0], values[1])
    if kind.tag is KindTag.BOUNDED:
        if op is Op.NEG:
            return kind.normalize(-values[0])
        if op is Op.NOT:
            return kind.normalize(~values[0])
        if op in (Op.SHL, Op.SHR):
            amount = params[0]
            if amount >= kind.width:
                if op is Op.SHR and kind.signed:
                    amount = kind.width - 1
                else:
                    return 0
            if op is Op.SHL:
                return kind.normalize(values[0] << amount)
            return values[0] >> amount
        return kind.normalize(_INT_ARITH[op](values[0], values[1]))
    if kind.is_float:
        if op is Op.NEG:
            result = -values[0]
        else:
            result = _FLOAT_ARITH[op](values[0], values[1])
        return round_float32(result) if kind.tag is KindTag.FLOAT else result
    raise UnsupportedOperation(op.name, kind)


__all__ = [
    "Op",
    "OpDescriptor",
    "ARITHMETIC_OPS",
    "BITWISE_OPS",
    "EQUALITY_OPS",
    "ORDERING_OPS",
    "SHIFT_OPS",
    "EITHER_OPS",
    "canonical_key",
    "literal_key",
    "result_kind",
    "evaluate",
]

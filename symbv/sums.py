"""Symbolic sum types.
An SEither l r value holds either a value of kind l (Left) or one of kind r
(Right). Concrete inputs stay concrete and evaluate on the host; symbolic
inputs build EITHER_* nodes, and case analysis over them goes through ite().
Example:
    >>> v = s_left(literal(WORD8, 3), KBOOL)
    >>> either(lambda a: a + 1, lambda b: ite(b, 1, 0), v)   # Word8 4
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from symbv.core.conditional import ite, unify
from symbv.core.exceptions import KindMismatch
from symbv.core.kinds import Kind, Left, Right, either as either_kind, infer_kind
from symbv.core.ops import Op
from symbv.core.values import SVal, apply, literal


def _lift(value: Any, kind: Kind | None = None) -> SVal:
    if isinstance(value, SVal):
        return value
    kind = kind or infer_kind(value)
    if kind is None:
        raise TypeError(f"cannot infer the kind of {value!r}; pass an SVal")
    return literal(kind, value)


def s_left(value: SVal | Any, right_kind: Kind) -> SVal:
    """Inject a value into the left side of SEither value.kind right_kind."""
    value = _lift(value)
    sum_kind = either_kind(value.kind, right_kind)
    return apply(Op.EITHER_CONSTRUCTOR, (value,), (False, sum_kind))


def s_right(value: SVal | Any, left_kind: Kind) -> SVal:
    """Inject a value into the right side of SEither left_kind value.kind."""
    value = _lift(value)
    sum_kind = either_kind(left_kind, value.kind)
    return apply(Op.EITHER_CONSTRUCTOR, (value,), (True, sum_kind))


def lift_either(value: Left | Right, left_kind: Kind, right_kind: Kind) -> SVal:
    """Turn a host Left/Right into a concrete sum value."""
    return literal(either_kind(left_kind, right_kind), value)


def is_left(value: SVal) -> SVal:
    return apply(Op.EITHER_IS, (value,), (False,))


def is_right(value: SVal) -> SVal:
    return apply(Op.EITHER_IS, (value,), (True,))


def from_left(value: SVal) -> SVal:
    """The left payload; the zero of the left kind if value is a Right."""
    return apply(Op.EITHER_ACCESS, (value,), (False,))


def from_right(value: SVal) -> SVal:
    """The right payload; the zero of the right kind if value is a Left."""
    return apply(Op.EITHER_ACCESS, (value,), (True,))


def either(on_left: Callable[[SVal], Any], on_right: Callable[[SVal], Any], value: SVal) -> Any:
    """Case analysis over a sum value.
    With a concrete value only the matching handler runs. With a symbolic
    value both handlers run on the projected payloads and the results are
    merged with ite().
    Raises:
        KindMismatch: If the two handlers return values of different kinds.
    """
    if value.is_concrete:
        if isinstance(value.value, Right):
            return on_right(from_right(value))
        return on_left(from_left(value))
    left_result, right_result = unify(on_left(from_left(value)), on_right(from_right(value)), "either branches")
    return ite(is_left(value), left_result, right_result)


def _mapped(result: Any, kind: Kind, context: str) -> SVal:
    result = _lift(result, kind)
    if result.kind != kind:
        raise KindMismatch(kind, result.kind, context=context)
    return result


def bimap(
    on_left: Callable[[SVal], Any],
    on_right: Callable[[SVal], Any],
    value: SVal,
    left_kind: Kind | None = None,
    right_kind: Kind | None = None,
) -> SVal:
    """Map both sides of a sum value, keeping the side it is on.
    The result is an SEither left_kind right_kind, each defaulting to the
    matching side of value.kind. Like either(), a concrete value only runs
    the handler for its live side.
    Raises:
        KindMismatch: If a handler returns a value of another kind.
    """
    if left_kind is None:
        left_kind = value.kind.left
    if right_kind is None:
        right_kind = value.kind.right
    return either(
        lambda a: s_left(_mapped(on_left(a), left_kind, "bimap left"), right_kind),
        lambda b: s_right(_mapped(on_right(b), right_kind, "bimap right"), left_kind),
        value,
    )


def first(on_left: Callable[[SVal], Any], value: SVal, left_kind: Kind | None = None) -> SVal:
    """Map the left side of a sum value."""
    return bimap(on_left, lambda r: r, value, left_kind=left_kind)


def second(on_right: Callable[[SVal], Any], value: SVal, right_kind: Kind | None = None) -> SVal:
    """Map the right side of a sum value."""
    return bimap(lambda l: l, on_right, value, right_kind=right_kind)


__all__ = [
    "s_left",
    "s_right",
    "lift_either",
    "either",
    "bimap",
    "first",
    "second",
    "is_left",
    "is_right",
    "from_left",
    "from_right",
]

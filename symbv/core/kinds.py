"""Value kinds for symbv.
A Kind describes the shape of a value: a boolean, a fixed-width
bit-vector of a given signedness, an IEEE-754 single or double, or a sum
of two subordinate kinds. Kinds form a closed tagged union: operations
dispatch on the tag through small tables rather than through subclassing.
Kind Hierarchy:
    Kind
    ├── BOOL                 # SBool
    ├── BOUNDED(w, signed)   # SWord8 .. SWord64, SInt8 .. SInt64
    ├── FLOAT                # SFloat  (binary32)
    ├── DOUBLE               # SDouble (binary64)
    └── EITHER(l, r)         # SEither l r
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Generic, TypeVar

from symbv.core.exceptions import KindMismatch

T = TypeVar("T")


class KindTag(Enum):
    """Kind discriminators for dispatch."""

    BOOL = auto()
    BOUNDED = auto()
    FLOAT = auto()
    DOUBLE = auto()
    EITHER = auto()


@dataclass(frozen=True)
class Left(Generic[T]):
    """Literal payload of the left side of an Either kind."""

    value: T

    def __repr__(self) -> str:
        return f"Left({self.value!r})"


@dataclass(frozen=True)
class Right(Generic[T]):
    """Literal payload of the right side of an Either kind."""

    value: T

    def __repr__(self) -> str:
        return f"Right({self.value!r})"


def round_float32(value: float) -> float:
    """Round a host double to the nearest binary32 value."""
    if math.isnan(value) or math.isinf(value):
        return value
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


@dataclass(frozen=True)
class Kind:
    """The kind of a symbolic value.
    Attributes:
        tag: Discriminator
        width: Bit width (BOUNDED only)
        signed: Two's complement signedness (BOUNDED only)
        left: Left subordinate kind (EITHER only)
        right: Right subordinate kind (EITHER only)
    """

    tag: KindTag
    width: int = 0
    signed: bool = False
    left: Kind | None = None
    right: Kind | None = None

    def __post_init__(self) -> None:
        if self.tag is KindTag.BOUNDED and self.width <= 0:
            raise ValueError(f"Bit-vector width must be positive, got {self.width}")
        if self.tag is KindTag.EITHER and (self.left is None or self.right is None):
            raise ValueError("Either kinds need both a left and a right kind")

    @property
    def is_bool(self) -> bool:
        return self.tag is KindTag.BOOL

    @property
    def is_bounded(self) -> bool:
        return self.tag is KindTag.BOUNDED

    @property
    def is_float(self) -> bool:
        """True for both FLOAT and DOUBLE."""
        return self.tag in (KindTag.FLOAT, KindTag.DOUBLE)

    @property
    def is_either(self) -> bool:
        return self.tag is KindTag.EITHER

    @property
    def min_value(self) -> int:
        if not self.is_bounded:
            raise TypeError(f"{self} has no integer range")
        return -(1 << (self.width - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        if not self.is_bounded:
            raise TypeError(f"{self} has no integer range")
        return (1 << (self.width - 1)) - 1 if self.signed else (1 << self.width) - 1

    @property
    def mask(self) -> int:
        return (1 << self.width) - 1

    @property
    def zero(self) -> Any:
        """The default literal of this kind."""
        if self.tag is KindTag.BOOL:
            return False
        if self.tag is KindTag.BOUNDED:
            return 0
        if self.is_float:
            return 0.0
        return Left(self.left.zero)

    def normalize(self, value: Any) -> Any:
        """Convert a host literal into the canonical literal of this kind.
        Integers wrap modulo 2**width (two's complement when signed), FLOAT
        values round to binary32, Either payloads normalize recursively.
        Raises:
            KindMismatch: If the literal has the wrong shape for this kind.
        """
        if self.tag is KindTag.BOOL:
            if isinstance(value, bool):
                return value
        elif self.tag is KindTag.BOUNDED:
            if isinstance(value, int) and not isinstance(value, bool):
                value &= self.mask
                if self.signed and value >> (self.width - 1):
                    value -= 1 << self.width
                return value
        elif self.is_float:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                value = float(value)
                return round_float32(value) if self.tag is KindTag.FLOAT else value
        elif self.tag is KindTag.EITHER:
            if isinstance(value, Left):
                return Left(self.left.normalize(value.value))
            if isinstance(value, Right):
                return Right(self.right.normalize(value.value))
        raise KindMismatch(self, type(value).__name__, context="literal")

    def __str__(self) -> str:
        if self.tag is KindTag.BOOL:
            return "SBool"
        if self.tag is KindTag.BOUNDED:
            return f"S{'Int' if self.signed else 'Word'}{self.width}"
        if self.tag is KindTag.FLOAT:
            return "SFloat"
        if self.tag is KindTag.DOUBLE:
            return "SDouble"
        return f"SEither {self.left.paren()} {self.right.paren()}"

    def paren(self) -> str:
        """String form, parenthesized when it is itself a compound kind."""
        return f"({self})" if self.is_either else str(self)


def bounded(signed: bool, width: int) -> Kind:
    """Kind of a width-bit bit-vector."""
    return Kind(KindTag.BOUNDED, width=width, signed=signed)


def either(left: Kind, right: Kind) -> Kind:
    """Kind of a sum of two kinds."""
    return Kind(KindTag.EITHER, left=left, right=right)


KBOOL = Kind(KindTag.BOOL)
KFLOAT = Kind(KindTag.FLOAT)
KDOUBLE = Kind(KindTag.DOUBLE)
WORD8 = bounded(False, 8)
WORD16 = bounded(False, 16)
WORD32 = bounded(False, 32)
WORD64 = bounded(False, 64)
INT8 = bounded(True, 8)
INT16 = bounded(True, 16)
INT32 = bounded(True, 32)
INT64 = bounded(True, 64)


def infer_kind(value: Any) -> Kind | None:
    """Best-effort kind of a bare host literal.
    Only booleans and floats are unambiguous; integers need a kind from
    context, so None is returned for them.
    """
    if isinstance(value, bool):
        return KBOOL
    if isinstance(value, float):
        return KDOUBLE
    return None


def literal_eq(a: Any, b: Any) -> bool:
    """Structural equality of two normalized literals.
    Floats compare by bit pattern so that 0.0 and -0.0 differ and NaN equals
    itself, which is what literal sharing needs.
    """
    if isinstance(a, float) and isinstance(b, float):
        return struct.pack("<d", a) == struct.pack("<d", b)
    if isinstance(a, (Left, Right)) and isinstance(b, (Left, Right)):
        return type(a) is type(b) and literal_eq(a.value, b.value)
    return type(a) is type(b) and a == b


__all__ = [
    "KindTag",
    "Kind",
    "Left",
    "Right",
    "bounded",
    "either",
    "infer_kind",
    "literal_eq",
    "round_float32",
    "KBOOL",
    "KFLOAT",
    "KDOUBLE",
    "WORD8",
    "WORD16",
    "WORD32",
    "WORD64",
    "INT8",
    "INT16",
    "INT32",
    "INT64",
]

"""Core module for symbv.
Provides:
- Kinds (SBool, SWord/SInt n, SFloat, SDouble, SEither) and the operation catalog
- The run-scoped, hash-consed expression graph
- Lazy thunks and the concrete/symbolic value type
- Symbolic if-then-else and table lookup
- Symbolic runs and the views handed to solvers and code generators
"""

from symbv.core.conditional import ite, select, unify
from symbv.core.exceptions import (
    CodeGenError,
    DuplicateFreeVariableName,
    InvalidGraphHandle,
    KindMismatch,
    SolverError,
    SymbvError,
    UnsupportedOperation,
)
from symbv.core.graph import ExpressionGraph, FreeVariable, Node, NodeId
from symbv.core.hashcons import CacheStats, HashConsCache
from symbv.core.kinds import (
    INT8,
    INT16,
    INT32,
    INT64,
    KBOOL,
    KDOUBLE,
    KFLOAT,
    WORD8,
    WORD16,
    WORD32,
    WORD64,
    Kind,
    KindTag,
    Left,
    Right,
    bounded,
    either,
)
from symbv.core.ops import Op, OpDescriptor
from symbv.core.run import SymbolicRun
from symbv.core.thunk import LazyNode, ThunkState
from symbv.core.values import SVal, apply, false, literal, true
from symbv.core.views import BoundVariable, CodeGraph, SolverQuery

__all__ = [
    "ite",
    "select",
    "unify",
    "CodeGenError",
    "DuplicateFreeVariableName",
    "InvalidGraphHandle",
    "KindMismatch",
    "SolverError",
    "SymbvError",
    "UnsupportedOperation",
    "ExpressionGraph",
    "FreeVariable",
    "Node",
    "NodeId",
    "CacheStats",
    "HashConsCache",
    "INT8",
    "INT16",
    "INT32",
    "INT64",
    "KBOOL",
    "KDOUBLE",
    "KFLOAT",
    "WORD8",
    "WORD16",
    "WORD32",
    "WORD64",
    "Kind",
    "KindTag",
    "Left",
    "Right",
    "bounded",
    "either",
    "Op",
    "OpDescriptor",
    "SymbolicRun",
    "LazyNode",
    "ThunkState",
    "SVal",
    "apply",
    "false",
    "literal",
    "true",
    "BoundVariable",
    "CodeGraph",
    "SolverQuery",
]

"""symbv: symbolic bit-vector evaluation with hash-consed expression graphs.
Programs written against SVal values run either concretely (every operand
known, evaluated eagerly on the host) or symbolically (building a shared
expression DAG). The graph is handed to an SMT solver to prove or satisfy
properties, or to a C code generator.
Example:
    >>> from symbv import WORD8, prove
    >>> print(prove(lambda x: (x * 2).eq(x + x), WORD8))
    Q.E.D.
"""

from symbv.api import SatResult, ThmResult, prove, sat
from symbv.codegen.c import CodeGen, compile_to_c
from symbv.core.conditional import ite, select
from symbv.core.exceptions import (
    CodeGenError,
    DuplicateFreeVariableName,
    InvalidGraphHandle,
    KindMismatch,
    SolverError,
    SymbvError,
    UnsupportedOperation,
)
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
    Left,
    Right,
    bounded,
    either,
)
from symbv.core.run import SymbolicRun
from symbv.core.values import SVal, false, literal, true
from symbv.solver import SolverOutcome, SolverResult, solve
from symbv.sums import s_left, s_right

__version__ = "0.1.0"
from symbv.config import SymbvConfig, load_config
from symbv.logging import LogLevel, configure_logging, get_logger

__all__ = [
    "prove",
    "sat",
    "ThmResult",
    "SatResult",
    "CodeGen",
    "compile_to_c",
    "ite",
    "select",
    "CodeGenError",
    "DuplicateFreeVariableName",
    "InvalidGraphHandle",
    "KindMismatch",
    "SolverError",
    "SymbvError",
    "UnsupportedOperation",
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
    "Left",
    "Right",
    "bounded",
    "either",
    "SymbolicRun",
    "SVal",
    "false",
    "literal",
    "true",
    "SolverOutcome",
    "SolverResult",
    "solve",
    "s_left",
    "s_right",
    "SymbvConfig",
    "load_config",
    "LogLevel",
    "configure_logging",
    "get_logger",
]

"""Error taxonomy for symbv.
Every failure the engine reports is one of these typed exceptions:
- KindMismatch: operands or branches of incompatible kinds
- InvalidGraphHandle: a node id used against a store that did not create it
- DuplicateFreeVariableName: a free variable name reused within one run
- SolverError: an unresolved solver outcome surfaced to the caller
- UnsupportedOperation: an operation that has no meaning for a kind
- CodeGenError: a graph the C backend cannot express
Construction-time errors are raised synchronously, before any node that
depends on them can become reachable from a returned value.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from symbv.core.kinds import Kind


class SymbvError(Exception):
    """Base class for all symbv errors."""


class KindMismatch(SymbvError, TypeError):
    """Operands (or branches) of incompatible kinds were combined.
    Attributes:
        expected: The kind the operation required
        actual: The kind it was given
    """

    def __init__(self, expected: Kind | str, actual: Kind | str, context: str = "") -> None:
        self.expected = expected
        self.actual = actual
        self.context = context
        where = f" in {context}" if context else ""
        super().__init__(f"Kind mismatch{where}: expected {expected}, got {actual}")


class InvalidGraphHandle(SymbvError):
    """A node id was used against an expression graph that did not create it,
    or against a graph that has already been closed."""


class DuplicateFreeVariableName(SymbvError):
    """A free variable name was declared twice in the same run."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Free variable {name!r} is already declared in this run")


class UnsupportedOperation(SymbvError):
    """An operation was applied to a kind that does not support it."""

    def __init__(self, op: Any, kind: Kind | str) -> None:
        self.op = op
        self.kind = kind
        super().__init__(f"Operation {op} is not supported for kind {kind}")


class SolverError(SymbvError):
    """The solver collaborator could not resolve a query.
    The diagnostic text is passed through verbatim.
    """

    def __init__(self, diagnostic: str, solver: str = "") -> None:
        self.diagnostic = diagnostic
        self.solver = solver
        prefix = f"{solver}: " if solver else ""
        super().__init__(f"{prefix}{diagnostic}")


class CodeGenError(SymbvError):
    """The expression graph cannot be rendered in the target language."""


__all__ = [
    "SymbvError",
    "KindMismatch",
    "InvalidGraphHandle",
    "DuplicateFreeVariableName",
    "UnsupportedOperation",
    "SolverError",
    "CodeGenError",
]

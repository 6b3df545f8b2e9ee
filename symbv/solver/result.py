"""Solver outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from symbv.core.exceptions import SolverError


class SolverOutcome(Enum):
    """What a solver said about a query."""

    SATISFIABLE = auto()
    UNSATISFIABLE = auto()
    UNKNOWN = auto()
    ERROR = auto()


@dataclass
class SolverResult:
    """Result of a satisfiability check.
    Attributes:
        outcome: The verdict
        model: Free-variable name -> normalized literal (SATISFIABLE only)
        diagnostic: Solver text for UNKNOWN / ERROR, passed through verbatim
        solver: Which solver produced the result
    """

    outcome: SolverOutcome
    model: dict[str, Any] = field(default_factory=dict)
    diagnostic: str | None = None
    solver: str = ""

    @staticmethod
    def sat(model: dict[str, Any], solver: str = "") -> SolverResult:
        return SolverResult(SolverOutcome.SATISFIABLE, model=model, solver=solver)

    @staticmethod
    def unsat(solver: str = "") -> SolverResult:
        return SolverResult(SolverOutcome.UNSATISFIABLE, solver=solver)

    @staticmethod
    def unknown(reason: str | None = None, solver: str = "") -> SolverResult:
        return SolverResult(SolverOutcome.UNKNOWN, diagnostic=reason, solver=solver)

    @staticmethod
    def error(diagnostic: str, solver: str = "") -> SolverResult:
        return SolverResult(SolverOutcome.ERROR, diagnostic=diagnostic, solver=solver)

    @property
    def is_sat(self) -> bool:
        return self.outcome is SolverOutcome.SATISFIABLE

    @property
    def is_unsat(self) -> bool:
        return self.outcome is SolverOutcome.UNSATISFIABLE

    @property
    def is_unknown(self) -> bool:
        return self.outcome is SolverOutcome.UNKNOWN

    @property
    def is_error(self) -> bool:
        return self.outcome is SolverOutcome.ERROR

    def raise_for_error(self) -> SolverResult:
        """Raise SolverError for an ERROR outcome, otherwise return self."""
        if self.is_error:
            raise SolverError(self.diagnostic or "unknown solver error", solver=self.solver)
        return self

    def format_model(self) -> str:
        return "\n".join(f"  {name} = {value!r}" for name, value in self.model.items())

    def __str__(self) -> str:
        if self.is_sat:
            body = self.format_model()
            return "Satisfiable. Model:\n" + body if body else "Satisfiable"
        if self.is_unsat:
            return "Unsatisfiable"
        if self.is_unknown:
            return f"Unknown{': ' + self.diagnostic if self.diagnostic else ''}"
        return f"Error: {self.diagnostic}"


__all__ = ["SolverOutcome", "SolverResult"]

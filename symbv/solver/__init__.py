"""Solver collaborators for symbv.
solve() dispatches a SolverQuery either to the in-process Z3 bindings or to
an external SMT-LIB 2 solver process, depending on the configuration.
"""

from __future__ import annotations

from symbv.config import SymbvConfig, get_config
from symbv.core.views import SolverQuery
from symbv.logging import get_logger
from symbv.solver.process import ProcessSolver, missing_capability
from symbv.solver.result import SolverOutcome, SolverResult
from symbv.solver.smtlib import parse_model, to_smtlib
from symbv.solver.solvers import (
    PRESETS,
    SolverCapabilities,
    SolverConfig,
    SolverName,
    solver_config,
)
from symbv.solver.z3_backend import Z3Backend


def solve(query: SolverQuery, config: SymbvConfig | None = None) -> SolverResult:
    """Decide a query with the configured solver.
    Args:
        query: The query to decide
        config: Configuration; the process-wide one when omitted
    Returns:
        SolverResult; failures are reported as ERROR outcomes, never raised.
    """
    config = config or get_config()
    settings = config.solver
    logger = get_logger()
    if settings.name.lower() == SolverName.Z3.value and settings.in_process:
        backend = Z3Backend(timeout_ms=settings.timeout_ms)
        result = backend.check(query)
    else:
        try:
            resolved = solver_config(config)
        except ValueError as e:
            return SolverResult.error(str(e), solver=settings.name)
        result = ProcessSolver(resolved).check(query)
    logger.count(f"solver.{result.outcome.name.lower()}")
    logger.verbose(f"{result.solver}: {result.outcome.name}", category="solver")
    return result


__all__ = [
    "solve",
    "SolverOutcome",
    "SolverResult",
    "SolverName",
    "SolverCapabilities",
    "SolverConfig",
    "PRESETS",
    "solver_config",
    "missing_capability",
    "Z3Backend",
    "ProcessSolver",
    "to_smtlib",
    "parse_model",
]

"""External solvers driven over SMT-LIB 2.
The query is rendered to a script, piped into the solver's stdin, and the
reply is read back from stdout: a check-sat verdict optionally followed by
a get-value model. Solver diagnostics (error replies, stderr, non-zero exit
status) are passed through verbatim in ERROR results.
"""

from __future__ import annotations

import subprocess

from symbv.core.exceptions import SolverError
from symbv.core.views import SolverQuery
from symbv.logging import get_logger
from symbv.solver.result import SolverResult
from symbv.solver.smtlib import model_from_sexpr, parse_sexprs, to_smtlib
from symbv.solver.solvers import SolverConfig

_GRACE_SECONDS = 5.0


def missing_capability(query: SolverQuery, config: SolverConfig) -> str | None:
    """Describe the first theory the query needs that the solver lacks."""
    caps = config.capabilities
    if query.uses_floats and not caps.supports_ieee754:
        return f"{config.name.value} does not support IEEE-754 floating point"
    if query.uses_either and not caps.supports_datatypes:
        return f"{config.name.value} does not support algebraic datatypes"
    return None


class ProcessSolver:
    """Runs one solver process per query."""

    def __init__(self, config: SolverConfig) -> None:
        self.config = config

    @property
    def name(self) -> str:
        return self.config.name.value

    def script(self, query: SolverQuery) -> str:
        return to_smtlib(query)

    def check(self, query: SolverQuery) -> SolverResult:
        """Check satisfiability of a query in a fresh solver process."""
        logger = get_logger()
        problem = missing_capability(query, self.config)
        if problem is not None:
            return SolverResult.error(problem, solver=self.name)
        try:
            script = self.script(query)
        except SolverError as e:
            return SolverResult.error(e.diagnostic, solver=self.name)
        command = self.config.command()
        logger.debug(f"running {' '.join(command)}", category="solver")
        try:
            completed = subprocess.run(
                command,
                input=script,
                capture_output=True,
                text=True,
                timeout=self.config.timeout_ms / 1000 + _GRACE_SECONDS,
                check=False,
            )
        except FileNotFoundError:
            return SolverResult.error(
                f"solver executable not found: {self.config.executable}", solver=self.name
            )
        except subprocess.TimeoutExpired:
            return SolverResult.unknown("timeout", solver=self.name)
        except OSError as e:
            return SolverResult.error(f"cannot start solver: {e}", solver=self.name)
        return self.interpret(completed.stdout, completed.stderr, completed.returncode, query)

    def interpret(
        self, stdout: str, stderr: str, returncode: int, query: SolverQuery
    ) -> SolverResult:
        """Turn the solver's raw reply into a SolverResult."""
        try:
            replies = parse_sexprs(stdout)
        except SolverError as e:
            return SolverResult.error(e.diagnostic, solver=self.name)
        for position, reply in enumerate(replies):
            if isinstance(reply, list):
                if reply and reply[0] == "error":
                    return SolverResult.error(_error_text(reply, stderr), solver=self.name)
                continue
            if reply == "unsat":
                return SolverResult.unsat(solver=self.name)
            if reply == "unknown":
                return SolverResult.unknown(stderr.strip() or None, solver=self.name)
            if reply == "sat":
                if not query.variables:
                    return SolverResult.sat({}, solver=self.name)
                if position + 1 >= len(replies):
                    return SolverResult.error(
                        f"solver printed no model\n{stderr}".strip(), solver=self.name
                    )
                try:
                    model = model_from_sexpr(replies[position + 1], query.variables)
                except SolverError as e:
                    return SolverResult.error(e.diagnostic, solver=self.name)
                return SolverResult.sat(model, solver=self.name)
        diagnostic = (stderr or stdout).strip() or f"solver exited with status {returncode}"
        return SolverResult.error(diagnostic, solver=self.name)


def _error_text(reply: list, stderr: str) -> str:
    message = " ".join(str(part).strip('"') for part in reply[1:])
    return f"{message}\n{stderr}".strip()


__all__ = ["ProcessSolver", "missing_capability"]

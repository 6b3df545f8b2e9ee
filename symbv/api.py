"""Public proving API for symbv."""
from __future__ import annotations
import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from symbv.config import SymbvConfig
from symbv.core.exceptions import KindMismatch, SolverError
from symbv.core.kinds import KBOOL, Kind
from symbv.core.run import SymbolicRun
from symbv.core.values import SVal, literal
from symbv.solver.result import SolverResult
@dataclass
class ThmResult:
    """Outcome of prove().
    Attributes:
        proved: True if the predicate holds for every input
        counterexample: Falsifying assignment when not proved
        kinds: Kind of every free variable, in parameter order
        solver_result: Raw solver answer (None when decided without a solver)
    """
    proved: bool
    counterexample: dict[str, Any] | None = None
    kinds: dict[str, Kind] = field(default_factory=dict)
    solver_result: SolverResult | None = None
    def __bool__(self) -> bool:
        return self.proved
    def __str__(self) -> str:
        if self.proved:
            return "Q.E.D."
        return "Falsifiable. Counter-example:\n" + _format_model(self.counterexample or {}, self.kinds)
@dataclass
class SatResult:
    """Outcome of sat()."""
    satisfiable: bool
    model: dict[str, Any] | None = None
    kinds: dict[str, Kind] = field(default_factory=dict)
    solver_result: SolverResult | None = None
    def __bool__(self) -> bool:
        return self.satisfiable
    def __str__(self) -> str:
        if not self.satisfiable:
            return "Unsatisfiable"
        return "Satisfiable. Model:\n" + _format_model(self.model or {}, self.kinds)
def _format_model(model: dict[str, Any], kinds: dict[str, Kind]) -> str:
    width = max((len(name) for name in model), default=0)
    lines = []
    for name, value in model.items():
        kind = kinds.get(name)
        suffix = f" :: {str(kind)[1:]}" if kind is not None else ""
        lines.append(f"  {name.ljust(width)} = {value!r}{suffix}")
    return "\n".join(lines)
def _parameter_names(predicate: Callable, count: int) -> list[str]:
    params = [
        p for p in inspect.signature(predicate).parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    if len(params) != count:
        raise TypeError(
            f"{getattr(predicate, '__name__', predicate)} takes {len(params)} "
            f"positional argument(s) but {count} kind(s) were given"
        )
    return [p.name for p in params]
def _evaluate(
    run: SymbolicRun, predicate: Callable, kinds: tuple[Kind, ...]
) -> tuple[SVal, dict[str, Kind]]:
    names = _parameter_names(predicate, len(kinds))
    args = [run.free(name, kind) for name, kind in zip(names, kinds)]
    result = predicate(*args)
    if isinstance(result, bool):
        result = literal(KBOOL, result)
    if not isinstance(result, SVal) or not result.kind.is_bool:
        raise KindMismatch(KBOOL, getattr(result, "kind", type(result).__name__), context="predicate result")
    return result, dict(zip(names, kinds))
def _decide(run: SymbolicRun, assertion: SVal, config: SymbvConfig | None) -> SolverResult:
    result = run.check_assertions([assertion], config)
    if result.is_error or result.is_unknown:
        raise SolverError(result.diagnostic or result.outcome.name.lower(), solver=result.solver)
    return result
def prove(predicate: Callable[..., SVal | bool], *kinds: Kind, config: SymbvConfig | None = None) -> ThmResult:
    """
    Prove that a predicate holds for all inputs of the given kinds.
    One free variable is introduced per parameter, named after it. The
    negation of the predicate's result is handed to the solver: unsat means
    the predicate is a theorem, a model is a counter-example.
    Args:
        predicate: Function from symbolic values to an SBool
        *kinds: Kind of each positional parameter
        config: Configuration (solver selection, timeout)
    Returns:
        ThmResult
    Raises:
        SolverError: If the solver answers unknown or fails
    Example:
        >>> print(prove(lambda x: (x + x).eq(x * 2), WORD8))
        Q.E.D.
    """
    with SymbolicRun(getattr(predicate, "__name__", None), config) as run:
        result, named = _evaluate(run, predicate, kinds)
        if result.is_concrete:
            if result.value:
                return ThmResult(True, kinds=named)
            return ThmResult(False, {name: kind.zero for name, kind in named.items()}, named)
        answer = _decide(run, ~result, config)
        if answer.is_unsat:
            return ThmResult(True, kinds=named, solver_result=answer)
        return ThmResult(False, answer.model, named, answer)
def sat(predicate: Callable[..., SVal | bool], *kinds: Kind, config: SymbvConfig | None = None) -> SatResult:
    """
    Find inputs of the given kinds for which a predicate holds.
    Args:
        predicate: Function from symbolic values to an SBool
        *kinds: Kind of each positional parameter
        config: Configuration (solver selection, timeout)
    Returns:
        SatResult with a model when satisfiable
    """
    with SymbolicRun(getattr(predicate, "__name__", None), config) as run:
        result, named = _evaluate(run, predicate, kinds)
        if result.is_concrete:
            if not result.value:
                return SatResult(False, kinds=named)
            return SatResult(True, {name: kind.zero for name, kind in named.items()}, named)
        answer = _decide(run, result, config)
        if answer.is_unsat:
            return SatResult(False, kinds=named, solver_result=answer)
        return SatResult(True, answer.model, named, answer)
__all__ = ["prove", "sat", "ThmResult", "SatResult"]

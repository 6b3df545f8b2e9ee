"""Solver descriptions.
Each supported solver has a name, a default executable with default
command-line options and a set of capabilities. Executable and options can
be overridden per solver through environment variables, e.g. for cvc4:
    SYMBV_CVC4=/opt/cvc4/bin/cvc4
    SYMBV_CVC4_OPTIONS="--lang smt --rlimit=100000"
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field, replace
from enum import Enum

from symbv.config import SymbvConfig


class SolverName(Enum):
    """Known solvers."""

    Z3 = "z3"
    CVC4 = "cvc4"
    CVC5 = "cvc5"


@dataclass(frozen=True)
class SolverCapabilities:
    """Which theories and features a solver handles."""

    supports_quantifiers: bool = True
    supports_uninterpreted_sorts: bool = True
    supports_unbounded_ints: bool = True
    supports_reals: bool = True
    supports_ieee754: bool = True
    supports_datatypes: bool = True
    supports_optimization: bool = False


@dataclass
class SolverConfig:
    """How to start a solver process and what it can do."""

    name: SolverName
    executable: str
    options: list[str] = field(default_factory=list)
    capabilities: SolverCapabilities = field(default_factory=SolverCapabilities)
    timeout_ms: int = 10000

    @property
    def env_prefix(self) -> str:
        return f"SYMBV_{self.name.name}"

    def with_environment(self, environ: dict[str, str] | None = None) -> SolverConfig:
        """Apply SYMBV_<NAME> / SYMBV_<NAME>_OPTIONS overrides."""
        env = os.environ if environ is None else environ
        executable = env.get(self.env_prefix, self.executable)
        raw_options = env.get(f"{self.env_prefix}_OPTIONS")
        options = shlex.split(raw_options) if raw_options is not None else list(self.options)
        return replace(self, executable=executable, options=options)

    def command(self) -> list[str]:
        return [self.executable, *self.options]


Z3_SOLVER = SolverConfig(
    name=SolverName.Z3,
    executable="z3",
    options=["-nw", "-in", "-smt2"],
    capabilities=SolverCapabilities(supports_optimization=True),
)

CVC4_SOLVER = SolverConfig(
    name=SolverName.CVC4,
    executable="cvc4",
    options=["--lang", "smt"],
    capabilities=SolverCapabilities(supports_ieee754=False),
)

CVC5_SOLVER = SolverConfig(
    name=SolverName.CVC5,
    executable="cvc5",
    options=["--lang", "smt2"],
)

PRESETS: dict[SolverName, SolverConfig] = {
    SolverName.Z3: Z3_SOLVER,
    SolverName.CVC4: CVC4_SOLVER,
    SolverName.CVC5: CVC5_SOLVER,
}


def solver_config(config: SymbvConfig, environ: dict[str, str] | None = None) -> SolverConfig:
    """Resolve the solver described by a symbv configuration.
    Order of precedence: explicit executable/options in the configuration,
    then environment overrides, then the preset defaults.
    """
    settings = config.solver
    try:
        name = SolverName(settings.name.lower())
    except ValueError:
        known = ", ".join(n.value for n in SolverName)
        raise ValueError(f"Unknown solver {settings.name!r} (known: {known})") from None
    resolved = replace(PRESETS[name], timeout_ms=settings.timeout_ms).with_environment(environ)
    if settings.executable:
        resolved = replace(resolved, executable=settings.executable)
    if settings.options is not None:
        resolved = replace(resolved, options=list(settings.options))
    return resolved


__all__ = [
    "SolverName",
    "SolverCapabilities",
    "SolverConfig",
    "Z3_SOLVER",
    "CVC4_SOLVER",
    "CVC5_SOLVER",
    "PRESETS",
    "solver_config",
]

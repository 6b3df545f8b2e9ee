"""Tests for the solver collaborators: presets, results, Z3 and external processes."""

import math
import stat
import sys

import pytest

from symbv.config import SymbvConfig
from symbv.core.conditional import ite, select
from symbv.core.exceptions import SolverError
from symbv.core.kinds import INT8, KBOOL, KDOUBLE, KFLOAT, WORD8, WORD16, WORD32, Left, Right, either
from symbv.core.values import literal
from symbv.solver import ProcessSolver, SolverOutcome, SolverResult, Z3Backend, solve
from symbv.solver.process import missing_capability
from symbv.solver.solvers import CVC4_SOLVER, Z3_SOLVER, SolverName, solver_config
from symbv.sums import from_left, from_right, is_left, is_right, s_left


class TestSolverResult:
    def test_predicates(self):
        assert SolverResult.sat({"x": 1}).is_sat
        assert SolverResult.unsat().is_unsat
        assert SolverResult.unknown("timeout").is_unknown
        assert SolverResult.error("boom").is_error

    def test_raise_for_error_keeps_the_diagnostic(self):
        with pytest.raises(SolverError) as info:
            SolverResult.error("(error \"line 1\")", solver="cvc4").raise_for_error()
        assert info.value.diagnostic == "(error \"line 1\")"
        assert info.value.solver == "cvc4"
        assert SolverResult.unsat().raise_for_error().is_unsat

    def test_str(self):
        assert str(SolverResult.unsat()) == "Unsatisfiable"
        assert str(SolverResult.unknown("timeout")) == "Unknown: timeout"
        assert str(SolverResult.sat({"x": 5})) == "Satisfiable. Model:\n  x = 5"


class TestPresets:
    def test_defaults(self):
        assert Z3_SOLVER.command() == ["z3", "-nw", "-in", "-smt2"]
        assert not CVC4_SOLVER.capabilities.supports_ieee754

    def test_environment_overrides(self):
        resolved = CVC4_SOLVER.with_environment(
            {"SYMBV_CVC4": "/opt/cvc4", "SYMBV_CVC4_OPTIONS": "--lang smt --rlimit=10"}
        )
        assert resolved.command() == ["/opt/cvc4", "--lang", "smt", "--rlimit=10"]
        assert CVC4_SOLVER.executable == "cvc4"

    def test_configuration_beats_environment(self):
        config = SymbvConfig()
        config.solver.name = "CVC4"
        config.solver.executable = "/usr/local/bin/cvc4"
        config.solver.timeout_ms = 500
        resolved = solver_config(config, {"SYMBV_CVC4": "/opt/cvc4"})
        assert resolved.name is SolverName.CVC4
        assert resolved.executable == "/usr/local/bin/cvc4"
        assert resolved.timeout_ms == 500

    def test_unknown_solver(self):
        config = SymbvConfig()
        config.solver.name = "yices"
        with pytest.raises(ValueError, match="yices"):
            solver_config(config, {})


class TestZ3Backend:
    def check(self, run, *assertions):
        return Z3Backend().check(run.to_query(list(assertions)))

    def test_model_satisfies_the_constraint(self, run):
        x = run.free("x", WORD8)
        result = self.check(run, (x * 3).eq(7))
        assert result.is_sat
        assert (result.model["x"] * 3) % 256 == 7

    def test_unsat(self, run):
        x = run.free("x", WORD8)
        assert self.check(run, x < 0).is_unsat

    def test_signed_comparisons(self, run):
        x = run.free("x", INT8)
        result = self.check(run, x < 0, x > -2)
        assert result.model == {"x": -1}

    def test_total_division(self, run):
        x = run.free("x", WORD16)
        assert self.check(run, x.quot(0).ne(0)).is_unsat
        assert self.check(run, x.rem(0).ne(x)).is_unsat

    def test_signed_overflow_division(self, run):
        x = run.free("x", INT8)
        assert self.check(run, x.eq(-128), x.quot(-1).ne(-128)).is_unsat

    def test_shifts_past_the_width(self, run):
        x = run.free("x", INT8)
        assert self.check(run, (x >> 20).ne(ite(x < 0, literal(INT8, -1), literal(INT8, 0)))).is_unsat

    def test_table_out_of_range(self, run):
        i = run.free("i", WORD8)
        table = [literal(WORD8, v) for v in (10, 20, 30)]
        result = self.check(run, select(table, literal(WORD8, 99), i).eq(99))
        assert result.is_sat
        assert result.model["i"] >= 3

    def test_float_model_is_binary32(self, run):
        f = run.free("f", KFLOAT)
        result = self.check(run, f > 0.1, f < 0.2)
        value = result.model["f"]
        assert KFLOAT.normalize(0.1) < value < KFLOAT.normalize(0.2)
        assert KFLOAT.normalize(value) == value

    def test_nan_is_not_equal_to_itself(self, run):
        d = run.free("d", KDOUBLE)
        result = self.check(run, d.ne(d))
        assert math.isnan(result.model["d"])

    def test_either_model(self, run):
        v = run.free("v", either(WORD8, KBOOL))
        result = self.check(run, is_right(v), from_right(v))
        assert result.model["v"] == Right(True)

    def test_either_access_on_wrong_side_is_zero(self, run):
        x = run.free("x", WORD8)
        v = s_left(x, WORD32)
        assert self.check(run, from_right(v).ne(0)).is_unsat

    def test_nested_either(self, run):
        v = run.free("v", either(either(WORD8, KBOOL), INT8))
        result = self.check(run, is_left(v), is_right(from_left(v)), from_right(from_left(v)))
        assert result.model["v"] == Left(Right(True))

    def test_unconstrained_variables_get_values(self, run):
        run.free("unused", WORD8)
        x = run.free("x", KBOOL)
        result = self.check(run, x)
        assert set(result.model) == {"unused", "x"}
        assert result.model["x"] is True

    def test_query_count(self, run):
        backend = Z3Backend()
        x = run.free("x", WORD8)
        backend.check(run.to_query([x.eq(1)]))
        backend.check(run.to_query([x.eq(2)]))
        assert backend.query_count == 2


class TestProcessSolver:
    def query(self, run):
        x = run.free("x", WORD8)
        b = run.free("b", KBOOL)
        return run.to_query([x.eq(5) & b])

    def test_interpret_sat(self, run):
        solver = ProcessSolver(Z3_SOLVER)
        result = solver.interpret("sat\n((|v.x| #x05) (|v.b| true))\n", "", 0, self.query(run))
        assert result.is_sat
        assert result.model == {"x": 5, "b": True}
        assert result.solver == "z3"

    def test_interpret_unsat_and_unknown(self, run):
        solver = ProcessSolver(Z3_SOLVER)
        query = self.query(run)
        assert solver.interpret("unsat\n(error \"model is not available\")\n", "", 1, query).is_unsat
        assert solver.interpret("unknown\n", "incomplete", 0, query).diagnostic == "incomplete"

    def test_interpret_error_passes_text_through(self, run):
        solver = ProcessSolver(CVC4_SOLVER)
        result = solver.interpret('(error "Parse Error: line 3")\n', "", 1, self.query(run))
        assert result.is_error
        assert result.diagnostic == "Parse Error: line 3"

    def test_interpret_without_verdict(self, run):
        solver = ProcessSolver(Z3_SOLVER)
        result = solver.interpret("", "segmentation fault\n", 139, self.query(run))
        assert result.is_error
        assert result.diagnostic == "segmentation fault"

    def test_missing_capability_stops_before_running(self, run):
        f = run.free("f", KDOUBLE)
        query = run.to_query([f.eq(f)])
        assert "IEEE-754" in missing_capability(query, CVC4_SOLVER)
        result = ProcessSolver(CVC4_SOLVER).check(query)
        assert result.is_error
        assert "IEEE-754" in result.diagnostic

    def test_missing_executable(self, run):
        config = Z3_SOLVER.with_environment({"SYMBV_Z3": "/nonexistent/solver-binary"})
        result = ProcessSolver(config).check(self.query(run))
        assert result.is_error
        assert "not found" in result.diagnostic

    @pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
    def test_fake_solver_process(self, run, tmp_path):
        script = tmp_path / "fake-solver"
        script.write_text("#!/bin/sh\ncat > /dev/null\necho sat\necho '((|v.x| #x05) (|v.b| true))'\n")
        script.chmod(script.stat().st_mode | stat.S_IEXEC)
        config = Z3_SOLVER.with_environment({"SYMBV_Z3": str(script), "SYMBV_Z3_OPTIONS": ""})
        result = ProcessSolver(config).check(self.query(run))
        assert result.model == {"x": 5, "b": True}


class TestSolve:
    def test_in_process_dispatch(self, run, config, isolated_environment):
        x = run.free("x", WORD8)
        result = solve(run.to_query([x.eq(3)]), config)
        assert result.outcome is SolverOutcome.SATISFIABLE
        assert isolated_environment.get_count("solver.satisfiable") == 1

    def test_unknown_solver_name_is_an_error_result(self, run, config):
        config.solver.name = "nope"
        result = solve(run.to_query([literal(KBOOL, True)]), config)
        assert result.is_error
        assert "nope" in result.diagnostic

    def test_run_check_uses_registered_constraints(self, run):
        x = run.free("x", WORD8)
        run.constrain(x > 250)
        result = run.check()
        assert result.is_sat
        assert result.model["x"] > 250

    def test_either_literal_roundtrips_through_z3(self, run):
        v = run.free("v", either(WORD8, KBOOL))
        result = run.check_assertions([v.eq(literal(either(WORD8, KBOOL), Left(7)))])
        assert result.model["v"] == Left(7)

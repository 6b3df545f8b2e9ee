"""Tests for C code generation."""

import pytest

from symbv.codegen import CodeGen, compile_to_c
from symbv.codegen.c import c_literal, c_type, printf_format
from symbv.config import SymbvConfig
from symbv.core.conditional import ite, select
from symbv.core.exceptions import CodeGenError
from symbv.core.kinds import INT8, INT32, INT64, KBOOL, KDOUBLE, KFLOAT, WORD8, WORD16, WORD64, bounded, either
from symbv.core.values import literal


class TestTypesAndLiterals:
    def test_c_types(self):
        assert c_type(WORD8) == "SWord8"
        assert c_type(INT64) == "SInt64"
        with pytest.raises(CodeGenError):
            c_type(bounded(False, 12))
        with pytest.raises(CodeGenError):
            c_type(either(WORD8, KBOOL))

    def test_unsigned_literals(self):
        assert c_literal(WORD8, 5) == "0x05U"
        assert c_literal(WORD64, 0x1B02E143E4F0E0E5) == "0x1b02e143e4f0e0e5ULL"

    def test_signed_minimum_is_expressible(self):
        assert c_literal(INT8, -128) == "(-127 - 1)"
        assert c_literal(INT64, -5) == "-5LL"

    def test_float_literals(self):
        assert c_literal(KDOUBLE, 0.5) == "0x1.0000000000000p-1"
        assert c_literal(KFLOAT, 0.5) == "0x1.0000000000000p-1F"
        assert c_literal(KDOUBLE, float("-inf")) == "(-INFINITY)"
        assert c_literal(KDOUBLE, float("nan")) == "NAN"

    def test_printf_formats(self):
        assert printf_format(WORD8) == '%"PRIu8"'
        assert printf_format(INT32) == '%"PRId32"'


def render(build, **settings):
    config = SymbvConfig()
    for key, value in settings.items():
        setattr(config.codegen, key, value)
    return compile_to_c("f", build, config=config)


class TestCodeGen:
    def test_files(self):
        files = render(lambda cg: cg.returns(cg.input("x", WORD8) + 1))
        assert sorted(files) == ["Makefile", "f.c", "f.h", "f_driver.c"]

    def test_driver_and_makefile_are_optional(self):
        files = render(lambda cg: cg.returns(cg.input("x", WORD8)), driver=False, makefile=False)
        assert sorted(files) == ["f.c", "f.h"]

    def test_header_prototype(self):
        def build(cg):
            x = cg.input("x", WORD16)
            y = cg.input("y", KBOOL)
            cg.output("twice", x * 2)
            cg.returns(ite(y, x, x + 1))

        header = render(build)["f.h"]
        assert "SWord16 f(const SWord16 x, const SBool y, SWord16 *twice);" in header
        assert "#ifndef __f__HEADER_INCLUDED__" in header

    def test_source_declares_each_node_once(self):
        def build(cg):
            x = cg.input("x", WORD8)
            y = x + 1
            cg.returns(y * y)

        source = render(build)["f.c"]
        assert source.count("(SWord8) ((uint32_t) s0 + (uint32_t) 0x01U)") == 1
        assert "return s3;" in source

    def test_constants_are_inlined(self):
        source = render(lambda cg: cg.returns(cg.input("x", WORD8) ^ 0xFF))["f.c"]
        assert "s0 ^ 0xffU" in source

    def test_guarded_division(self):
        def build(cg):
            x = cg.input("x", INT8)
            y = cg.input("y", INT8)
            cg.output("q", x.quot(y))
            cg.output("r", x.rem(y))

        source = render(build)["f.c"]
        assert "(s1 == 0) ? 0 : (s1 == -1) ? (SInt8) (-(uint32_t) s0) : s0 / s1" in source
        assert "(s1 == 0) ? s0 : (s1 == -1) ? 0 : s0 % s1" in source
        assert "*q = s2;" in source

    def test_folded_shifts(self):
        def build(cg):
            x = cg.input("x", WORD8)
            cg.output("a", x << 8)
            cg.output("b", x >> 3)

        source = render(build)["f.c"]
        assert "s1 = 0x00U;" in source
        assert "s0 >> 3" in source

    def test_table_lookup(self):
        def build(cg):
            i = cg.input("i", WORD8)
            table = [literal(WORD16, v) for v in range(256)]
            cg.returns(select(table, literal(WORD16, 0), i))

        source = render(build)["f.c"]
        assert "static const SWord16 table0[] = {" in source
        assert "table0[s0]" in source

    def test_short_table_is_guarded(self):
        def build(cg):
            i = cg.input("i", INT8)
            cg.returns(select([literal(INT8, 1), literal(INT8, 2)], literal(INT8, 0), i))

        source = render(build)["f.c"]
        assert "(s0 >= 0 && s0 < 2) ? table0[s0] : 0" in source

    def test_driver_uses_given_values(self):
        def build(cg):
            cg.set_driver_values([7])
            cg.returns(cg.input("x", WORD8) * 3)

        driver = render(build)["f_driver.c"]
        assert "const SWord8 __result = f(0x07U);" in driver
        assert 'printf("f(0x07U) = %"PRIu8"\\n", __result);' in driver

    def test_makefile_uses_configured_compiler(self):
        makefile = render(lambda cg: cg.returns(cg.input("x", WORD8)), cc="clang")["Makefile"]
        assert "CC?=clang" in makefile
        assert "f_driver: f.o f_driver.o" in makefile

    def test_build_return_value_becomes_the_result(self):
        source = render(lambda cg: cg.input("x", WORD8) + 2)["f.c"]
        assert "return s2;" in source

    def test_void_function(self):
        def build(cg):
            cg.output("out", cg.input("x", KDOUBLE) * 2.0)

        header = render(build)["f.h"]
        assert "void f(const SDouble x, SDouble *out);" in header


class TestCodeGenErrors:
    def test_bad_names(self):
        with pytest.raises(CodeGenError):
            CodeGen("int")
        with pytest.raises(CodeGenError):
            CodeGen("s12")
        with pytest.raises(CodeGenError):
            render(lambda cg: cg.input("two words", WORD8))

    def test_second_return(self):
        def build(cg):
            x = cg.input("x", WORD8)
            cg.returns(x)
            cg.returns(x)

        with pytest.raises(CodeGenError, match="already has a return value"):
            render(build)

    def test_driver_value_count(self):
        def build(cg):
            cg.set_driver_values([1, 2])
            cg.returns(cg.input("x", WORD8))

        with pytest.raises(CodeGenError, match="driver value"):
            render(build)

    def test_sum_values_are_rejected(self):
        with pytest.raises(CodeGenError):
            render(lambda cg: cg.input("v", either(WORD8, KBOOL)))

    def test_run_is_closed_after_failure(self):
        captured = {}

        def build(cg):
            captured["cg"] = cg
            raise CodeGenError("stop")

        with pytest.raises(CodeGenError):
            render(build)
        assert captured["cg"].run.closed


class TestWriting:
    def test_files_are_written(self, tmp_path, isolated_environment):
        compile_to_c("g", lambda cg: cg.returns(cg.input("x", WORD8)), tmp_path / "out")
        assert (tmp_path / "out" / "g.c").read_text().startswith('/* File: "g.c"')
        assert isolated_environment.get_entries(category="codegen")

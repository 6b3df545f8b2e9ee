"""Tests for value kinds and literal normalization."""

import math

import pytest

from symbv.core.exceptions import KindMismatch
from symbv.core.kinds import (
    INT8,
    INT32,
    KBOOL,
    KDOUBLE,
    KFLOAT,
    WORD8,
    WORD16,
    WORD64,
    Kind,
    KindTag,
    Left,
    Right,
    bounded,
    either,
    infer_kind,
    literal_eq,
    round_float32,
)


class TestKindNames:
    def test_scalar_names(self):
        assert str(KBOOL) == "SBool"
        assert str(WORD8) == "SWord8"
        assert str(INT32) == "SInt32"
        assert str(KFLOAT) == "SFloat"
        assert str(KDOUBLE) == "SDouble"

    def test_either_names_parenthesize_nested_sums(self):
        inner = either(WORD8, KBOOL)
        assert str(inner) == "SEither SWord8 SBool"
        assert str(either(inner, INT8)) == "SEither (SEither SWord8 SBool) SInt8"

    def test_kinds_are_structural_values(self):
        assert bounded(False, 8) == WORD8
        assert hash(bounded(True, 32)) == hash(INT32)
        assert either(WORD8, KBOOL) == either(WORD8, KBOOL)
        assert either(WORD8, KBOOL) != either(KBOOL, WORD8)


class TestKindValidation:
    def test_width_must_be_positive(self):
        with pytest.raises(ValueError):
            bounded(False, 0)

    def test_either_needs_both_sides(self):
        with pytest.raises(ValueError):
            Kind(KindTag.EITHER, left=WORD8)


class TestRanges:
    def test_unsigned_range(self):
        assert WORD8.min_value == 0
        assert WORD8.max_value == 255
        assert WORD16.mask == 0xFFFF

    def test_signed_range(self):
        assert INT8.min_value == -128
        assert INT8.max_value == 127

    def test_non_bounded_has_no_range(self):
        with pytest.raises(TypeError):
            KBOOL.max_value


class TestNormalize:
    def test_unsigned_wraps(self):
        assert WORD8.normalize(256) == 0
        assert WORD8.normalize(-1) == 255
        assert WORD64.normalize(2**64 + 5) == 5

    def test_signed_wraps_twos_complement(self):
        assert INT8.normalize(128) == -128
        assert INT8.normalize(255) == -1
        assert INT8.normalize(-129) == 127

    def test_bool_is_not_an_integer_literal(self):
        with pytest.raises(KindMismatch):
            WORD8.normalize(True)

    def test_int_is_not_a_bool_literal(self):
        with pytest.raises(KindMismatch):
            KBOOL.normalize(1)

    def test_float_rounds_to_binary32(self):
        assert KFLOAT.normalize(0.1) == round_float32(0.1)
        assert KFLOAT.normalize(0.1) != 0.1
        assert KDOUBLE.normalize(0.1) == 0.1

    def test_float_overflow_becomes_infinity(self):
        assert KFLOAT.normalize(1e300) == math.inf
        assert KFLOAT.normalize(-1e300) == -math.inf

    def test_ints_are_accepted_for_floats(self):
        assert KDOUBLE.normalize(3) == 3.0
        assert isinstance(KDOUBLE.normalize(3), float)

    def test_either_payloads_normalize(self):
        kind = either(WORD8, INT8)
        assert kind.normalize(Left(300)) == Left(44)
        assert kind.normalize(Right(200)) == Right(-56)

    def test_either_rejects_bare_values(self):
        with pytest.raises(KindMismatch):
            either(WORD8, INT8).normalize(3)

    def test_zero_literals(self):
        assert KBOOL.zero is False
        assert WORD8.zero == 0
        assert KDOUBLE.zero == 0.0
        assert either(WORD8, KBOOL).zero == Left(0)


class TestLiteralHelpers:
    def test_infer_kind(self):
        assert infer_kind(True) == KBOOL
        assert infer_kind(1.5) == KDOUBLE
        assert infer_kind(3) is None

    def test_literal_eq_distinguishes_signed_zeros(self):
        assert not literal_eq(0.0, -0.0)
        assert literal_eq(math.nan, math.nan)

    def test_literal_eq_compares_sides(self):
        assert literal_eq(Left(1), Left(1))
        assert not literal_eq(Left(1), Right(1))

    def test_literal_eq_is_type_strict(self):
        assert not literal_eq(1, True)

"""
Unit tests for exact arithmetic.

This module tests the checked and saturating integer helpers and the
18-digit fixed-point decimal.
"""

import pytest

from vescrow.core.math import (
    DECIMAL_FRACTIONAL,
    UINT128_MAX,
    FixedDecimal,
    assert_uint128,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    multiply_ratio,
    saturating_sub,
)
from vescrow.errors.exceptions import MathError, ValidationError


class TestIntegerHelpers:
    """Test checked and saturating integer helpers."""

    def test_checked_add(self):
        """Test addition within range and on overflow."""
        assert checked_add(1, 2) == 3
        assert checked_add(UINT128_MAX - 1, 1) == UINT128_MAX
        with pytest.raises(MathError):
            checked_add(UINT128_MAX, 1)

    def test_checked_sub_underflow(self):
        """Test that subtraction below zero fails."""
        assert checked_sub(5, 5) == 0
        with pytest.raises(MathError):
            checked_sub(4, 5)

    def test_checked_mul_and_div(self):
        """Test multiplication overflow and division by zero."""
        assert checked_mul(3, 4) == 12
        with pytest.raises(MathError):
            checked_mul(UINT128_MAX, 2)
        assert checked_div(7, 2) == 3
        with pytest.raises(MathError):
            checked_div(1, 0)

    def test_saturating_sub(self):
        """Test that saturating subtraction clamps at zero."""
        assert saturating_sub(10, 3) == 7
        assert saturating_sub(3, 10) == 0

    def test_multiply_ratio_floors(self):
        """Test floor rounding with a full-width intermediate."""
        assert multiply_ratio(10, 1, 3) == 3
        assert multiply_ratio(UINT128_MAX, 2, 4) == UINT128_MAX // 2
        with pytest.raises(MathError):
            multiply_ratio(1, 1, 0)
        with pytest.raises(MathError):
            multiply_ratio(UINT128_MAX, 2, 1)

    def test_assert_uint128(self):
        """Test the unsigned 128-bit range check."""
        assert assert_uint128(0) == 0
        with pytest.raises(ValidationError):
            assert_uint128(-1)
        with pytest.raises(ValidationError):
            assert_uint128(UINT128_MAX + 1)
        with pytest.raises(ValidationError):
            assert_uint128(True)


class TestFixedDecimal:
    """Test FixedDecimal class."""

    def test_constants(self):
        """Test zero and one."""
        assert FixedDecimal.zero().is_zero()
        assert FixedDecimal.one().atomics == DECIMAL_FRACTIONAL
        assert FixedDecimal.from_int(3) == FixedDecimal(3 * DECIMAL_FRACTIONAL)

    def test_from_ratio_rounds_down(self):
        """Test ratio construction truncates at 18 digits."""
        third = FixedDecimal.from_ratio(1, 3)
        assert third.atomics == 333333333333333333
        assert FixedDecimal.percent(50) == FixedDecimal.from_ratio(1, 2)

    def test_arithmetic(self):
        """Test add, sub and saturating sub."""
        half = FixedDecimal.from_ratio(1, 2)
        assert half + half == FixedDecimal.one()
        assert FixedDecimal.one() - half == half
        assert half.saturating_sub(FixedDecimal.one()) == FixedDecimal.zero()
        with pytest.raises(MathError):
            half - FixedDecimal.one()

    def test_multiplication(self):
        """Test decimal and integer multiplication."""
        half = FixedDecimal.from_ratio(1, 2)
        assert half * half == FixedDecimal.from_ratio(1, 4)
        assert half * 7 == 3
        assert half.mul_uint(1001) == 500

    def test_division(self):
        """Test division and division by zero."""
        assert FixedDecimal.one() / FixedDecimal.from_int(4) == FixedDecimal.from_ratio(1, 4)
        with pytest.raises(MathError):
            FixedDecimal.one() / FixedDecimal.zero()

    def test_ordering(self):
        """Test decimals compare by value."""
        assert FixedDecimal.from_ratio(1, 3) < FixedDecimal.from_ratio(1, 2)
        assert max(FixedDecimal.one(), FixedDecimal.zero()) == FixedDecimal.one()

    def test_string_conversion(self):
        """Test formatting and parsing."""
        assert FixedDecimal.from_ratio(3, 4).to_string() == "0.75"
        assert str(FixedDecimal.from_int(2)) == "2"
        assert FixedDecimal.from_string("0.75") == FixedDecimal.from_ratio(3, 4)
        assert FixedDecimal.from_string("12") == FixedDecimal.from_int(12)

    def test_invalid_strings(self):
        """Test that malformed decimals are rejected."""
        with pytest.raises(ValidationError):
            FixedDecimal.from_string("abc")
        with pytest.raises(ValidationError):
            FixedDecimal.from_string("0." + "1" * 19)

    def test_out_of_range(self):
        """Test that negative atomics are rejected."""
        with pytest.raises(MathError):
            FixedDecimal(-1)

"""
Exact integer and fixed-point arithmetic.

All amounts are unsigned 128-bit integers carried as Python ``int``. Checked
helpers raise :class:`MathError` on overflow, underflow or division by zero;
saturating helpers clamp at zero. :class:`FixedDecimal` is an unsigned
fixed-point number with 18 fractional digits whose multiplication and
division round toward zero.
"""

from dataclasses import dataclass
from typing import Union

from ..errors.exceptions import MathError, ValidationError

UINT128_MAX = 2**128 - 1
DECIMAL_PLACES = 18
DECIMAL_FRACTIONAL = 10**DECIMAL_PLACES


def assert_uint128(value: int, name: str = "value") -> int:
    """Validate that ``value`` fits an unsigned 128-bit integer."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer", field=name, value=value)
    if value < 0 or value > UINT128_MAX:
        raise ValidationError(f"{name} out of range: {value}", field=name, value=value)
    return value


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > UINT128_MAX:
        raise MathError(f"Overflow: {a} + {b}", operation="add")
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise MathError(f"Underflow: {a} - {b}", operation="sub")
    return a - b


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > UINT128_MAX:
        raise MathError(f"Overflow: {a} * {b}", operation="mul")
    return result


def checked_div(a: int, b: int) -> int:
    if b == 0:
        raise MathError(f"Cannot divide {a} by zero", operation="div")
    return a // b


def saturating_sub(a: int, b: int) -> int:
    return a - b if a > b else 0


def multiply_ratio(value: int, numerator: int, denominator: int) -> int:
    """Return ``floor(value * numerator / denominator)`` with a full-width intermediate."""
    if denominator == 0:
        raise MathError(f"Cannot multiply {value} by ratio {numerator}/0", operation="multiply_ratio")
    result = value * numerator // denominator
    if result > UINT128_MAX:
        raise MathError(
            f"Overflow: {value} * {numerator} / {denominator}", operation="multiply_ratio"
        )
    return result


@dataclass(frozen=True, order=True)
class FixedDecimal:
    """Unsigned decimal with 18 fractional digits stored as integer atomics."""

    atomics: int

    def __post_init__(self):
        if self.atomics < 0 or self.atomics > UINT128_MAX:
            raise MathError(f"Decimal out of range: {self.atomics}e-18", operation="decimal")

    @classmethod
    def zero(cls) -> "FixedDecimal":
        return cls(0)

    @classmethod
    def one(cls) -> "FixedDecimal":
        return cls(DECIMAL_FRACTIONAL)

    @classmethod
    def from_int(cls, value: int) -> "FixedDecimal":
        return cls(checked_mul(value, DECIMAL_FRACTIONAL))

    @classmethod
    def from_ratio(cls, numerator: int, denominator: int) -> "FixedDecimal":
        """Create ``numerator / denominator`` rounded down."""
        return cls(multiply_ratio(numerator, DECIMAL_FRACTIONAL, denominator))

    @classmethod
    def percent(cls, value: int) -> "FixedDecimal":
        return cls.from_ratio(value, 100)

    def numerator(self) -> int:
        return self.atomics

    def denominator(self) -> int:
        return DECIMAL_FRACTIONAL

    def is_zero(self) -> bool:
        return self.atomics == 0

    def __add__(self, other: "FixedDecimal") -> "FixedDecimal":
        return FixedDecimal(checked_add(self.atomics, other.atomics))

    def __sub__(self, other: "FixedDecimal") -> "FixedDecimal":
        return FixedDecimal(checked_sub(self.atomics, other.atomics))

    def saturating_sub(self, other: "FixedDecimal") -> "FixedDecimal":
        return FixedDecimal(saturating_sub(self.atomics, other.atomics))

    def __mul__(self, other: Union["FixedDecimal", int]) -> Union["FixedDecimal", int]:
        if isinstance(other, FixedDecimal):
            return FixedDecimal(multiply_ratio(self.atomics, other.atomics, DECIMAL_FRACTIONAL))
        if isinstance(other, int):
            return self.mul_uint(other)
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, other: "FixedDecimal") -> "FixedDecimal":
        if other.atomics == 0:
            raise MathError(f"Cannot divide {self} by zero", operation="div")
        return FixedDecimal(multiply_ratio(self.atomics, DECIMAL_FRACTIONAL, other.atomics))

    def mul_uint(self, value: int) -> int:
        """Multiply an integer amount, rounding the result down."""
        return multiply_ratio(value, self.atomics, DECIMAL_FRACTIONAL)

    def to_string(self) -> str:
        whole, fractional = divmod(self.atomics, DECIMAL_FRACTIONAL)
        if fractional == 0:
            return str(whole)
        digits = str(fractional).rjust(DECIMAL_PLACES, "0").rstrip("0")
        return f"{whole}.{digits}"

    @classmethod
    def from_string(cls, value: str) -> "FixedDecimal":
        """Parse a plain decimal string such as ``"0.75"``."""
        whole, _, fractional = value.strip().partition(".")
        if not whole.isdigit() or (fractional and not fractional.isdigit()):
            raise ValidationError(f"Invalid decimal: {value}", value=value)
        if len(fractional) > DECIMAL_PLACES:
            raise ValidationError(f"Too many fractional digits: {value}", value=value)
        atomics = int(whole) * DECIMAL_FRACTIONAL + int(fractional.ljust(DECIMAL_PLACES, "0") or 0)
        return cls(atomics)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"FixedDecimal('{self.to_string()}')"

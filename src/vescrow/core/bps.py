"""
Basic points.

A bounded share in ``[0, 10000]`` at 0.01% resolution, used to express how
a voter splits their voting power across gauge targets.
"""

from dataclasses import dataclass
from typing import Union

from ..errors.exceptions import BasicPointsError, MathError
from .math import DECIMAL_FRACTIONAL, FixedDecimal, multiply_ratio


@dataclass(frozen=True, order=True)
class BasicPoints:
    """Share expressed in basic points (10000 = 100%)."""

    value: int = 0

    MAX = 10000

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise BasicPointsError(f"Basic points must be an integer, got {self.value!r}")
        if not 0 <= self.value <= self.MAX:
            raise BasicPointsError(f"Basic points conversion error. {self.value} > {self.MAX}", value=self.value)

    @classmethod
    def max(cls) -> "BasicPoints":
        return cls(cls.MAX)

    @classmethod
    def one(cls) -> "BasicPoints":
        return cls(cls.MAX)

    @classmethod
    def zero(cls) -> "BasicPoints":
        return cls(0)

    @classmethod
    def percent(cls, percent: int) -> "BasicPoints":
        return cls(percent * 100)

    @classmethod
    def from_ratio(cls, numerator: int, denominator: int) -> "BasicPoints":
        """Create ``numerator / denominator`` rounded down."""
        try:
            value = multiply_ratio(numerator, cls.MAX, denominator)
        except MathError as e:
            raise BasicPointsError("Checked multiply ratio error", cause=e)
        return cls(value)

    @classmethod
    def from_decimal(cls, value: FixedDecimal) -> "BasicPoints":
        """Create from a decimal in ``[0, 1]``."""
        if value > FixedDecimal.one():
            raise BasicPointsError(f"Basic points conversion error. {value} > 1", value=str(value))
        return cls.from_ratio(value.numerator(), value.denominator())

    def checked_add(self, other: "BasicPoints") -> "BasicPoints":
        """Add two shares, failing when the sum exceeds 100%."""
        next_value = self.value + other.value
        if next_value > self.MAX:
            raise BasicPointsError(f"Basic points sum exceeds limit: {next_value}", value=next_value)
        return BasicPoints(next_value)

    def reverse(self) -> "BasicPoints":
        return BasicPoints(self.MAX - self.value)

    def decimal(self) -> FixedDecimal:
        return FixedDecimal.from_ratio(self.value, self.MAX)

    def is_max(self) -> bool:
        return self.value == self.MAX

    def is_zero(self) -> bool:
        return self.value == 0

    def mul_uint(self, amount: int) -> int:
        if self.is_max():
            return amount
        return multiply_ratio(amount, self.value, self.MAX)

    def mul_decimal(self, other: FixedDecimal) -> FixedDecimal:
        return FixedDecimal.from_ratio(other.numerator() * self.value, DECIMAL_FRACTIONAL * self.MAX)

    def __mul__(self, other: Union[int, FixedDecimal]):
        if isinstance(other, FixedDecimal):
            return self.mul_decimal(other)
        if isinstance(other, int) and not isinstance(other, bool):
            return self.mul_uint(other)
        return NotImplemented

    __rmul__ = __mul__

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return f"{self.value}bps"

"""
Bribe distribution curves.

A bribe deposit is spread over future periods either in a single period
(``Next``), along an easing curve (``Func``) or by an explicit schedule
(``Specific``). Curves map normalized progress ``t`` in ``[0, 1]`` to the
cumulative share paid out so far; each period receives the increase of the
cumulative amount and the last period absorbs any rounding so the schedule
always sums to the deposit.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..core.math import FixedDecimal, saturating_sub
from ..errors.exceptions import BribeDistributionError

HALF = FixedDecimal.from_ratio(1, 2)


def dec(value: int) -> FixedDecimal:
    return FixedDecimal.from_int(value)


def linear(t: FixedDecimal) -> FixedDecimal:
    return t


def bezier(t: FixedDecimal) -> FixedDecimal:
    """Smoothstep ``3t^2 - 2t^3``."""
    return t * t * (dec(3) - dec(2) * t)


def ease_in_cubic(t: FixedDecimal) -> FixedDecimal:
    return t * t * t


def ease_out_cubic(t: FixedDecimal) -> FixedDecimal:
    """``3t + t^3 - 3t^2``, ordered so no intermediate goes negative."""
    return dec(3) * t + t * t * t - dec(3) * t * t


def ease_in_out_cubic(t: FixedDecimal) -> FixedDecimal:
    if t < HALF:
        return dec(4) * t * t * t
    return dec(4) * t * t * t + dec(12) * t - dec(12) * t * t - dec(3)


def parametric(t: FixedDecimal) -> FixedDecimal:
    """``t^2 / (2t^2 + 1 - 2t)``; the denominator is at least 0.5."""
    sqr = t * t
    return sqr / (dec(2) * sqr + FixedDecimal.one() - dec(2) * t)


class FuncType(Enum):
    LINEAR = "linear"
    BEZIER = "bezier"
    EASE_IN_CUBIC = "ease_in_cubic"
    EASE_OUT_CUBIC = "ease_out_cubic"
    EASE_IN_OUT_CUBIC = "ease_in_out_cubic"
    PARAMETRIC = "parametric"

    @property
    def func(self) -> Callable[[FixedDecimal], FixedDecimal]:
        return EASING_FUNCTIONS[self]


EASING_FUNCTIONS: Dict[FuncType, Callable[[FixedDecimal], FixedDecimal]] = {
    FuncType.LINEAR: linear,
    FuncType.BEZIER: bezier,
    FuncType.EASE_IN_CUBIC: ease_in_cubic,
    FuncType.EASE_OUT_CUBIC: ease_out_cubic,
    FuncType.EASE_IN_OUT_CUBIC: ease_in_out_cubic,
    FuncType.PARAMETRIC: parametric,
}


class DistributionKind(Enum):
    FUNC = "func"
    NEXT = "next"
    SPECIFIC = "specific"


@dataclass(frozen=True)
class BribeDistribution:
    """How a bribe deposit is spread over periods."""

    kind: DistributionKind
    end: Optional[int] = None
    start: Optional[int] = None
    func_type: FuncType = FuncType.LINEAR
    specific: Tuple[Tuple[int, int], ...] = field(default_factory=tuple)

    @classmethod
    def func(cls, end: int, func_type: FuncType = FuncType.LINEAR, start: Optional[int] = None) -> "BribeDistribution":
        return cls(DistributionKind.FUNC, end=end, start=start, func_type=func_type)

    @classmethod
    def next(cls) -> "BribeDistribution":
        return cls(DistributionKind.NEXT)

    @classmethod
    def from_schedule(cls, schedule: Sequence[Tuple[int, int]]) -> "BribeDistribution":
        return cls(DistributionKind.SPECIFIC, specific=tuple((int(p), int(a)) for p, a in schedule))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "start": self.start,
            "end": self.end,
            "func_type": self.func_type.value,
            "specific": [[p, str(a)] for p, a in self.specific],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BribeDistribution":
        return cls(
            kind=DistributionKind(data["kind"]),
            start=data.get("start"),
            end=data.get("end"),
            func_type=FuncType(data.get("func_type", FuncType.LINEAR.value)),
            specific=tuple((p, int(a)) for p, a in data.get("specific", [])),
        )


def create_distribution(block_period: int, amount: int, distribution: BribeDistribution) -> List[Tuple[int, int]]:
    """Expand ``distribution`` into ``(period, amount)`` pairs.

    ``Func`` starts at ``block_period + 1`` unless given and fails when
    ``end < start``. ``Specific`` schedules are returned unchanged.
    """
    if distribution.kind == DistributionKind.NEXT:
        return [(block_period + 1, amount)]

    if distribution.kind == DistributionKind.SPECIFIC:
        return list(distribution.specific)

    start = block_period + 1 if distribution.start is None else distribution.start
    end = distribution.end
    if end is None or end < start:
        raise BribeDistributionError(f"from ({start}) must be <= to ({end}).")

    periods = end + 1 - start
    func = distribution.func_type.func

    results = []
    last = 0
    for n in range(start, end + 1):
        if n == end:
            results.append((n, amount - last))
            break
        progress = FixedDecimal.from_ratio(n + 1 - start, periods)
        total = min(func(progress).mul_uint(amount), amount)
        results.append((n, saturating_sub(total, last)))
        last = max(last, total)
    return results

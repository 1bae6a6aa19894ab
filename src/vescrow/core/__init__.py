"""
Core primitives: exact arithmetic, basic points, the period clock, assets
and the bank interface.
"""

from .assets import Asset, AssetInfo, AssetKind, Assets
from .bank import Bank, StoreBank
from .bps import BasicPoints
from .math import (
    DECIMAL_FRACTIONAL,
    UINT128_MAX,
    FixedDecimal,
    checked_add,
    checked_mul,
    checked_sub,
    multiply_ratio,
    saturating_sub,
)
from .period import (
    Env,
    PeriodClock,
    Time,
    Times,
    resolve_period,
    resolve_periods,
)

__all__ = [
    "Asset",
    "AssetInfo",
    "AssetKind",
    "Assets",
    "Bank",
    "StoreBank",
    "BasicPoints",
    "DECIMAL_FRACTIONAL",
    "UINT128_MAX",
    "FixedDecimal",
    "checked_add",
    "checked_mul",
    "checked_sub",
    "multiply_ratio",
    "saturating_sub",
    "Env",
    "PeriodClock",
    "Time",
    "Times",
    "resolve_period",
    "resolve_periods",
]

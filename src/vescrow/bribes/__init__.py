"""Bribe deposits, distribution curves and claims."""

from .buckets import BribeBucket, BribeBuckets
from .claims import ClaimContext, ClaimEngine, ClaimResult
from .distribution import (
    BribeDistribution,
    DistributionKind,
    FuncType,
    bezier,
    create_distribution,
    ease_in_cubic,
    ease_in_out_cubic,
    ease_out_cubic,
    linear,
    parametric,
)
from .manager import BribeManager
from .state import BribeConfig

__all__ = [
    "BribeBucket",
    "BribeBuckets",
    "ClaimContext",
    "ClaimEngine",
    "ClaimResult",
    "BribeDistribution",
    "DistributionKind",
    "FuncType",
    "bezier",
    "create_distribution",
    "ease_in_cubic",
    "ease_in_out_cubic",
    "ease_out_cubic",
    "linear",
    "parametric",
    "BribeManager",
    "BribeConfig",
]

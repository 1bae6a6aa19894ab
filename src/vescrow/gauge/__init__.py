"""Gauge voting over escrowed voting power."""

from .engine import AssetGauge, GaugeSharesProvider
from .period_index import Data, Line, Operation, PeriodIndex
from .state import GaugeConfig, GaugesConfig, UserShare, UserVotes

__all__ = [
    "AssetGauge",
    "GaugeSharesProvider",
    "Data",
    "Line",
    "Operation",
    "PeriodIndex",
    "GaugeConfig",
    "GaugesConfig",
    "UserShare",
    "UserVotes",
]

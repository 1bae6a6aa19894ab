"""
Period clock.

Maps Unix timestamps onto discrete weekly periods counted from a fixed epoch
start, and resolves the ``Time`` / ``Times`` selectors that queries accept.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from ..config import VescrowConfig, get_global_config
from ..errors.exceptions import ValidationError


class PeriodClock:
    """Converts between timestamps and period indices."""

    def __init__(self, config: Optional[VescrowConfig] = None):
        config = config or get_global_config()
        self.epoch_start = config.epoch_start
        self.week = config.week_seconds

    def period(self, timestamp: int) -> int:
        """Return the period containing ``timestamp``."""
        if timestamp < self.epoch_start:
            raise ValidationError(
                f"Invalid time: {timestamp} is before epoch start {self.epoch_start}",
                field="timestamp",
                value=timestamp,
            )
        return (timestamp - self.epoch_start) // self.week

    def period_start(self, period: int) -> int:
        """Return the first timestamp of ``period``."""
        return self.epoch_start + period * self.week

    def periods_count(self, interval: int) -> int:
        """Number of whole periods in ``interval`` seconds."""
        return interval // self.week


@dataclass
class Env:
    """Block environment of an invocation."""

    block_time: int
    block_height: int = 0
    clock: PeriodClock = field(default_factory=PeriodClock)

    @property
    def block_period(self) -> int:
        return self.clock.period(self.block_time)

    def advance(self, seconds: int, blocks: int = 1) -> None:
        """Move the block clock forward."""
        if seconds < 0:
            raise ValidationError("Block time is monotonic", field="seconds", value=seconds)
        self.block_time += seconds
        self.block_height += blocks

    def advance_periods(self, periods: int) -> None:
        self.advance(periods * self.clock.week, blocks=periods)

    @classmethod
    def at_period(cls, period: int, clock: Optional[PeriodClock] = None) -> "Env":
        """Environment positioned at the start of ``period``."""
        clock = clock or PeriodClock()
        return cls(block_time=clock.period_start(period), clock=clock)


class TimeKind(Enum):
    CURRENT = "current"
    NEXT = "next"
    TIME = "time"
    PERIOD = "period"


@dataclass(frozen=True)
class Time:
    """Selects a single period relative to the block clock."""

    kind: TimeKind = TimeKind.CURRENT
    value: Optional[int] = None

    @classmethod
    def current(cls) -> "Time":
        return cls(TimeKind.CURRENT)

    @classmethod
    def next(cls) -> "Time":
        return cls(TimeKind.NEXT)

    @classmethod
    def at(cls, timestamp: int) -> "Time":
        return cls(TimeKind.TIME, timestamp)

    @classmethod
    def period(cls, period: int) -> "Time":
        return cls(TimeKind.PERIOD, period)

    def get_period(self, env: Env) -> int:
        if self.kind == TimeKind.CURRENT:
            return env.block_period
        if self.kind == TimeKind.NEXT:
            return env.block_period + 1
        if self.kind == TimeKind.TIME:
            return env.clock.period(self.value)
        return self.value


def resolve_period(time: Optional[Time], env: Env) -> int:
    """Resolve an optional selector, defaulting to the current period."""
    return (time or Time.current()).get_period(env)


class TimesKind(Enum):
    CURRENT = "current"
    TIMES = "times"
    PERIODS = "periods"


@dataclass(frozen=True)
class Times:
    """Selects several periods."""

    kind: TimesKind = TimesKind.CURRENT
    values: Sequence[int] = ()

    @classmethod
    def current(cls) -> "Times":
        return cls(TimesKind.CURRENT)

    @classmethod
    def at(cls, timestamps: Sequence[int]) -> "Times":
        return cls(TimesKind.TIMES, tuple(timestamps))

    @classmethod
    def periods(cls, periods: Sequence[int]) -> "Times":
        return cls(TimesKind.PERIODS, tuple(periods))

    def get_periods(self, env: Env) -> List[int]:
        if self.kind == TimesKind.CURRENT:
            return [env.block_period]
        if self.kind == TimesKind.TIMES:
            return [env.clock.period(t) for t in self.values]
        return list(self.values)


def resolve_periods(times: Optional[Times], env: Env) -> List[int]:
    return (times or Times.current()).get_periods(env)

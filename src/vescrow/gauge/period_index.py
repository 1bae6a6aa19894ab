"""
Weighted period index.

A :class:`PeriodIndex` keeps, per key (a voter or a vote target), the
aggregate decaying voting power, its slope and the fixed amount, checkpointed
per period, plus a per-key schedule of slope reductions. Lines (lock
snapshots) are added or removed with a basic points weight; intermediate
periods are reconstructed from the nearest earlier checkpoint.

A line taken at period ``p`` is applied from ``p + 1``; its slope therefore
stops at ``end + 1``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.bps import BasicPoints
from ..core.math import checked_add, saturating_sub
from ..escrow.state import LockInfo
from ..storage.backend import StorageBackend
from ..storage.maps import BOOL, INT, Bound, Map, model_codec


@dataclass
class Data:
    """Aggregate voting parameters of a key at a period."""

    voting_power: int = 0
    slope: int = 0
    fixed_amount: int = 0

    def has_vp(self) -> bool:
        return self.voting_power > 0 or self.fixed_amount > 0

    def total_vp(self) -> int:
        return checked_add(self.voting_power, self.fixed_amount)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voting_power": str(self.voting_power),
            "slope": str(self.slope),
            "fixed_amount": str(self.fixed_amount),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Data":
        return cls(int(data["voting_power"]), int(data["slope"]), int(data["fixed_amount"]))


class Operation(Enum):
    ADD = "add"
    SUB = "sub"

    def calc(self, current: int, amount: int, bps: BasicPoints) -> int:
        if self == Operation.ADD:
            return checked_add(current, bps.mul_uint(amount))
        return saturating_sub(current, bps.mul_uint(amount))


@dataclass(frozen=True)
class Line:
    """Voting parameters of one lock."""

    vp: int
    slope: int
    fixed: int
    start: int
    end: Optional[int]

    @classmethod
    def from_lock_info(cls, info: LockInfo) -> "Line":
        return cls(
            vp=info.voting_power,
            slope=info.slope,
            fixed=info.fixed_amount,
            start=info.start,
            end=info.end.value,
        )

    def slope_end(self) -> Optional[int]:
        """Period from which the line no longer decays."""
        return None if self.end is None else self.end + 1


Change = Tuple[BasicPoints, int, int, int, Operation]


def _decay(data: Data, from_period: int, to_period: int) -> int:
    return saturating_sub(data.voting_power, data.slope * (to_period - from_period))


class PeriodIndex:
    """Checkpointed weighted aggregates under a namespace."""

    def __init__(self, store: StorageBackend, namespace: str):
        self.store = store
        self.namespace = namespace
        self.data = Map(f"{namespace}_data", (str, int), model_codec(Data))
        self.slope_changes = Map(f"{namespace}_slope_changes", (str, int), INT)
        self._keys = Map(f"{namespace}_keys", (str,), BOOL)

    def add_line(self, period: int, key: str, bps: BasicPoints, line: Line) -> Data:
        """Add a lock's weighted parameters from ``period`` on."""
        if line.fixed or line.vp:
            self._keys.save(self.store, key, True)

        slope_end = line.slope_end()
        slope = line.slope if slope_end is not None and slope_end > period else 0
        if slope:
            self.slope_changes.update(
                self.store, (key, slope_end), lambda current: checked_add(current or 0, bps.mul_uint(slope))
            )
        return self.update_data(period, key, (bps, line.vp, slope, line.fixed, Operation.ADD))

    def remove_line(self, period: int, key: str, bps: BasicPoints, line: Line) -> Data:
        """Remove a previously added line from ``period`` on."""
        slope_end = line.slope_end()
        vp_to_reduce = slope_to_reduce = 0
        if slope_end is not None and slope_end > period:
            # Not folded yet, so the line's share is still scheduled.
            scheduled = self.slope_changes.may_load(self.store, (key, slope_end))
            if scheduled is not None:
                remaining = saturating_sub(scheduled, bps.mul_uint(line.slope))
                if remaining:
                    self.slope_changes.save(self.store, (key, slope_end), remaining)
                else:
                    self.slope_changes.remove(self.store, (key, slope_end))
            # Remaining decaying power of the line.
            vp_to_reduce = line.slope * (slope_end - period)
            slope_to_reduce = line.slope

        result = self.update_data(period, key, (bps, vp_to_reduce, slope_to_reduce, line.fixed, Operation.SUB))
        if not result.has_vp():
            self._keys.remove(self.store, key)
        return result

    def change_weights(
        self,
        period: int,
        key: str,
        old_bps: BasicPoints,
        new_bps: BasicPoints,
        current: Data,
        slopes: Sequence[Tuple[int, int]],
    ) -> Data:
        """Move a voter's weight on ``key`` from ``old_bps`` to ``new_bps``.

        ``current`` is the voter's aggregate at ``period`` and ``slopes`` its
        future slope schedule, which is re-weighted onto this key.
        """
        changed = (not old_bps.is_zero() or not new_bps.is_zero()) and old_bps != new_bps
        data, is_new = self._get_data_mut(period, key)

        if changed:
            if not old_bps.is_zero():
                data = self._apply(data, (old_bps, current.voting_power, current.slope, current.fixed_amount, Operation.SUB))
            if not new_bps.is_zero():
                data = self._apply(data, (new_bps, current.voting_power, current.slope, current.fixed_amount, Operation.ADD))
            self.data.save(self.store, (key, period), data)

            for slope_period, slope in slopes:
                scheduled = self.slope_changes.may_load(self.store, (key, slope_period)) or 0
                if not old_bps.is_zero():
                    scheduled = Operation.SUB.calc(scheduled, slope, old_bps)
                if not new_bps.is_zero():
                    scheduled = Operation.ADD.calc(scheduled, slope, new_bps)
                if scheduled:
                    self.slope_changes.save(self.store, (key, slope_period), scheduled)
                else:
                    self.slope_changes.remove(self.store, (key, slope_period))
        elif is_new:
            self.data.save(self.store, (key, period), data)

        if data.has_vp():
            self._keys.save(self.store, key, True)
        else:
            self._keys.remove(self.store, key)
        return data

    def update_data(self, period: int, key: str, change: Optional[Change] = None) -> Data:
        """Checkpoint ``key`` at ``period``, applying ``change`` if given."""
        data, is_new = self._get_data_mut(period, key)
        if change is not None:
            data = self._apply(data, change)
            self.data.save(self.store, (key, period), data)
        elif is_new:
            self.data.save(self.store, (key, period), data)
        return data

    @staticmethod
    def _apply(data: Data, change: Change) -> Data:
        bps, vp, slope, fixed, op = change
        return Data(
            voting_power=op.calc(data.voting_power, vp, bps),
            slope=op.calc(data.slope, slope, bps),
            fixed_amount=op.calc(data.fixed_amount, fixed, bps),
        )

    def _get_data_mut(self, period: int, key: str) -> Tuple[Data, bool]:
        """Data at ``period``; intermediate folded periods are persisted."""
        existing = self.data.may_load(self.store, (key, period))
        if existing is not None:
            return existing, False

        last = self.fetch_last_period(period, key)
        if last is None:
            return Data(), True

        prev_period, data = last
        for recalc_period, scheduled in self.fetch_slope_changes(key, prev_period, period):
            data = Data(
                voting_power=_decay(data, prev_period, recalc_period),
                slope=saturating_sub(data.slope, scheduled),
                fixed_amount=data.fixed_amount,
            )
            self.data.save(self.store, (key, recalc_period), data)
            prev_period = recalc_period

        return Data(_decay(data, prev_period, period), data.slope, data.fixed_amount), True

    def get_latest_data(self, period: int, key: str) -> Data:
        """Data at ``period`` without writing anything."""
        existing = self.data.may_load(self.store, (key, period))
        if existing is not None:
            return existing

        last = self.fetch_last_period(period, key)
        if last is None:
            return Data()

        prev_period, data = last
        for recalc_period, scheduled in self.fetch_slope_changes(key, prev_period, period):
            data = Data(
                voting_power=_decay(data, prev_period, recalc_period),
                slope=saturating_sub(data.slope, scheduled),
                fixed_amount=data.fixed_amount,
            )
            prev_period = recalc_period
        return Data(_decay(data, prev_period, period), data.slope, data.fixed_amount)

    def fetch_slope_changes(self, key: str, last_period: int, period: int) -> List[Tuple[int, int]]:
        """Scheduled changes of ``key`` in ``(last_period, period]``."""
        return [
            (full_key[1], slope)
            for full_key, slope in self.slope_changes.range(
                self.store, (key,), min=Bound.exclusive_of(last_period), max=Bound.inclusive_of(period)
            )
        ]

    def fetch_future_slope_changes(self, key: str, period: int) -> List[Tuple[int, int]]:
        """Scheduled changes of ``key`` from ``period`` on."""
        return [
            (full_key[1], slope)
            for full_key, slope in self.slope_changes.range(self.store, (key,), min=Bound.inclusive_of(period))
        ]

    def fetch_last_period(self, period: int, key: str) -> Optional[Tuple[int, Data]]:
        """Nearest checkpoint strictly before ``period``."""
        for full_key, data in self.data.range(
            self.store, (key,), max=Bound.exclusive_of(period), descending=True
        ):
            return full_key[1], data
        return None

    def keys(self) -> List[str]:
        """Keys currently holding voting power."""
        return list(self._keys.keys(self.store))

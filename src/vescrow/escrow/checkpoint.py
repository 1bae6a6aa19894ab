"""
Checkpoint ledger.

Every lock keeps a sparse history of :class:`Point` checkpoints, written
only in periods where its state changes. The total voting power is kept the
same way under a reserved token id, together with a global schedule of
slope reductions (``SLOPE_CHANGES``) that is folded into the total lazily up
to the ``LAST_SLOPE_CHANGE`` cursor. Voting power at any period is
reconstructed from the nearest checkpoint at or before it, so neither
queries nor writes ever iterate over holders.
"""

import logging
from typing import List, Optional, Tuple

from ..config import MAX_LOCK_PERIODS
from ..core.math import FixedDecimal, checked_add, saturating_sub
from ..storage.backend import StorageBackend
from ..storage.maps import Bound
from .state import HISTORY, LAST_SLOPE_CHANGE, SLOPE_CHANGES, TOTAL_VP_TOKEN_ID, Point

logger = logging.getLogger(__name__)


def calc_coefficient(periods: int, max_periods: int = MAX_LOCK_PERIODS) -> FixedDecimal:
    """Bonus coefficient ``0.9 * periods / max_periods``."""
    return FixedDecimal.from_ratio(9 * periods, max_periods * 10)


def adjust_vp_and_slope(vp: int, dt: int) -> Tuple[int, int]:
    """Round ``vp`` down to a multiple of ``dt``; returns ``(vp, slope)``."""
    slope = vp // dt
    return slope * dt, slope


def calc_voting_power(point: Point, period: int) -> int:
    """Decaying component of ``point`` at ``period``."""
    elapsed = max(period - point.start, 0)
    return saturating_sub(point.power, point.slope * elapsed)


def point_voting_power(point: Point, period: int) -> int:
    """Decaying plus fixed voting power of a holder checkpoint at ``period``."""
    if point.start == period:
        return point.power + point.fixed
    if point.end is not None and point.end <= period:
        return point.fixed
    return calc_voting_power(point, period) + point.fixed


def zero_point(period: int) -> Point:
    return Point(power=0, start=period, end=period, slope=0, fixed=0)


class CheckpointLedger:
    """Per-lock and total voting power checkpoints over a storage backend."""

    def __init__(self, store: StorageBackend, max_lock_periods: int = MAX_LOCK_PERIODS):
        self.store = store
        self.max_lock_periods = max_lock_periods

    def coefficient(self, periods: int) -> FixedDecimal:
        return calc_coefficient(periods, self.max_lock_periods)

    def bonus(self, amount: int, periods: int) -> Tuple[int, int]:
        """Decaying bonus for locking ``amount`` for ``periods``; returns ``(vp, slope)``."""
        if periods == 0:
            return 0, 0
        return adjust_vp_and_slope(self.coefficient(periods).mul_uint(amount), periods)

    def permanent_fixed(self, amount: int) -> int:
        """Fixed weight of a permanent lock: the amount plus the maximum bonus."""
        return checked_add(amount, self.coefficient(self.max_lock_periods).mul_uint(amount))

    # Storage helpers

    def fetch_last_checkpoint(self, token_id: str, period: int) -> Optional[Point]:
        last = HISTORY.fetch_last(self.store, token_id, period)
        return None if last is None else last[1]

    def last_slope_change(self) -> int:
        value = LAST_SLOPE_CHANGE.may_load(self.store)
        return 0 if value is None else value

    def fetch_slope_changes(self, last_period: int, period: int) -> List[Tuple[int, int]]:
        """Scheduled changes in ``(last_period, period]``."""
        return list(
            SLOPE_CHANGES.range(
                self.store, min=Bound.exclusive_of(last_period), max=Bound.inclusive_of(period)
            )
        )

    def schedule_slope_change(self, slope: int, end: Optional[int]) -> None:
        if slope == 0 or end is None:
            return
        SLOPE_CHANGES.update(self.store, end, lambda current: checked_add(current or 0, slope))

    def cancel_scheduled_slope(self, slope: int, end: Optional[int]) -> Optional[int]:
        """Withdraw ``slope`` from the schedule at ``end`` if not yet applied.

        Returns the last applied period, or None for permanent points.
        """
        if end is None:
            return None
        last_slope_change = self.last_slope_change()
        if end > last_slope_change:
            scheduled = SLOPE_CHANGES.may_load(self.store, end)
            if scheduled is not None:
                remaining = saturating_sub(scheduled, slope)
                if remaining:
                    SLOPE_CHANGES.save(self.store, end, remaining)
                else:
                    SLOPE_CHANGES.remove(self.store, end)
        return last_slope_change

    # Total

    def fold_total(self, period: int) -> Optional[Point]:
        """Apply scheduled slope changes up to ``period`` to the total.

        Intermediate total checkpoints are persisted and the cursor advanced.
        """
        point = self.fetch_last_checkpoint(TOTAL_VP_TOKEN_ID, period)
        if point is None:
            return None
        last_slope_change = self.last_slope_change()
        if last_slope_change < period:
            for recalc_period, scheduled in self.fetch_slope_changes(last_slope_change, period):
                point = Point(
                    power=calc_voting_power(point, recalc_period),
                    start=recalc_period,
                    end=point.end,
                    slope=saturating_sub(point.slope, scheduled),
                    fixed=point.fixed,
                )
                HISTORY.save(self.store, TOTAL_VP_TOKEN_ID, recalc_period, point)
                logger.debug(f"Folded slope change {scheduled} at period {recalc_period}")
            LAST_SLOPE_CHANGE.save(self.store, period)
        return point

    def checkpoint_total(
        self,
        period: int,
        add_power: int = 0,
        reduce_power: int = 0,
        add_fixed: int = 0,
        reduce_fixed: int = 0,
        old_slope: int = 0,
        new_slope: int = 0,
    ) -> Point:
        """Fold the schedule forward and apply deltas to the total checkpoint."""
        point = self.fold_total(period)
        if point is None:
            new_point = Point(power=add_power, start=period, end=None, slope=new_slope, fixed=add_fixed)
        else:
            new_point = Point(
                power=saturating_sub(checked_add(calc_voting_power(point, period), add_power), reduce_power),
                start=period,
                end=None,
                slope=checked_add(saturating_sub(point.slope, old_slope), new_slope),
                fixed=saturating_sub(checked_add(point.fixed, add_fixed), reduce_fixed),
            )
        HISTORY.save(self.store, TOTAL_VP_TOKEN_ID, period, new_point)
        return new_point

    # Holder checkpoints

    def replace_point(self, period: int, token_id: str, new_point: Point) -> Point:
        """Write ``new_point`` for ``token_id`` and move the total by the difference.

        The old point's scheduled slope is cancelled only while its end is
        still in the future; otherwise the schedule has already retired it.
        """
        self.fold_total(period)
        old = self.fetch_last_checkpoint(token_id, period)

        reduce_power = reduce_fixed = old_slope = 0
        if old is not None:
            reduce_power = calc_voting_power(old, period)
            reduce_fixed = old.fixed
            last_slope_change = self.cancel_scheduled_slope(old.slope, old.end)
            if last_slope_change is not None and old.end > last_slope_change:
                old_slope = old.slope

        self.schedule_slope_change(new_point.slope, new_point.end)
        HISTORY.save(self.store, token_id, period, new_point)
        self.checkpoint_total(
            period,
            add_power=new_point.power,
            reduce_power=reduce_power,
            add_fixed=new_point.fixed,
            reduce_fixed=reduce_fixed,
            old_slope=old_slope,
            new_slope=new_point.slope,
        )
        return new_point

    def create_or_extend(
        self,
        period: int,
        token_id: str,
        lock_amount: int,
        add_amount: int = 0,
        new_end: Optional[int] = None,
    ) -> Point:
        """Checkpoint a decaying lock after a deposit or an end extension.

        ``lock_amount`` is the lock's amount after the deposit. When the end
        moves out the whole bonus is recomputed from ``lock_amount``,
        otherwise only the bonus of ``add_amount`` is added.
        """
        last = self.fetch_last_checkpoint(token_id, period)
        if last is None:
            end = new_end
            vp, slope = self.bonus(add_amount, end - period)
            new_point = Point(power=vp, start=period, end=end, slope=slope, fixed=add_amount)
        else:
            end = new_end if new_end is not None else last.end
            dt = saturating_sub(end, period)
            current = calc_voting_power(last, period)
            power = current
            slope = 0
            if dt:
                if end > last.end:
                    # Power must stay a multiple of the slope to reach zero at the end.
                    raw = self.coefficient(dt).mul_uint(lock_amount)
                    power, slope = adjust_vp_and_slope(max(raw, current), dt)
                else:
                    raw = self.coefficient(dt).mul_uint(add_amount)
                    power, slope = adjust_vp_and_slope(checked_add(current, raw), dt)
            new_point = Point(
                power=power,
                start=period,
                end=end,
                slope=slope,
                fixed=checked_add(last.fixed, add_amount),
            )

        logger.debug(f"Checkpoint {token_id} at period {period}: {new_point}")
        return self.replace_point(period, token_id, new_point)

    def make_permanent(self, period: int, token_id: str, amount: int) -> Point:
        """Replace the lock's checkpoint by a non-decaying one."""
        return self.replace_point(
            period,
            token_id,
            Point(power=0, start=period, end=None, slope=0, fixed=self.permanent_fixed(amount)),
        )

    def restart_decaying(self, period: int, token_id: str, amount: int, end: int) -> Point:
        """Replace a permanent checkpoint by a fresh decaying lock ending at ``end``."""
        vp, slope = self.bonus(amount, end - period)
        return self.replace_point(
            period, token_id, Point(power=vp, start=period, end=end, slope=slope, fixed=amount)
        )

    def zero_out(self, period: int, token_id: str) -> Point:
        """Remove the lock's contribution from now on."""
        return self.replace_point(period, token_id, zero_point(period))

    # Queries

    def voting_power(self, token_id: str, period: int) -> int:
        point = self.fetch_last_checkpoint(token_id, period)
        return 0 if point is None else point_voting_power(point, period)

    def total_voting_power(self, period: int) -> int:
        """Total voting power at ``period`` without writing anything."""
        point = self.fetch_last_checkpoint(TOTAL_VP_TOKEN_ID, period)
        if point is None:
            return 0
        if point.start == period:
            return point.power + point.fixed
        for recalc_period, scheduled in self.fetch_slope_changes(point.start, period):
            point = Point(
                power=calc_voting_power(point, recalc_period),
                start=recalc_period,
                end=point.end,
                slope=saturating_sub(point.slope, scheduled),
                fixed=point.fixed,
            )
        return calc_voting_power(point, period) + point.fixed

    def ensure_total(self, period: int) -> None:
        """Create the initial empty total checkpoint."""
        if HISTORY.fetch_last(self.store, TOTAL_VP_TOKEN_ID) is None:
            HISTORY.save(self.store, TOTAL_VP_TOKEN_ID, period, Point(start=period))
            LAST_SLOPE_CHANGE.save(self.store, period)

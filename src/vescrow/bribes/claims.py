"""
Bribe claim engine.

Walks a voter's period-ordered gauge shares and pays each its proportional
part of the period's bribe buckets. Periods without bribes and periods the
voter already claimed are skipped rather than rejected, so callers may ask
for wide, overlapping ranges and repeated claims never pay twice.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..config import VescrowConfig, get_global_config
from ..core.assets import Asset, Assets
from ..core.period import Env
from ..gauge.engine import GaugeSharesProvider
from ..storage.backend import StorageBackend
from .buckets import BribeBuckets
from .state import BRIBE_AVAILABLE, BRIBE_CLAIMED, BRIBE_TOTAL, fetch_last_claimed

logger = logging.getLogger(__name__)


@dataclass
class ClaimContext:
    """Per-period state of a claim run."""

    period: Optional[int] = None
    skip: bool = False
    should_save: bool = False
    bribe_available: BribeBuckets = field(default_factory=BribeBuckets)
    bribe_totals: BribeBuckets = field(default_factory=BribeBuckets)
    bribe_claimed: BribeBuckets = field(default_factory=BribeBuckets)

    @classmethod
    def skipping(cls, period: int) -> "ClaimContext":
        return cls(period=period, skip=True)

    def maybe_save(self, store: StorageBackend, user: str) -> None:
        """Persist the claim marker and the reduced available bucket."""
        if self.period is None or not self.should_save:
            return
        BRIBE_CLAIMED.save(store, (user, self.period), self.bribe_claimed)
        if self.bribe_available.is_empty():
            BRIBE_AVAILABLE.remove(store, self.period)
        else:
            BRIBE_AVAILABLE.save(store, self.period, self.bribe_available)


@dataclass
class ClaimResult:
    """Outcome of a claim run."""

    periods: List[int] = field(default_factory=list)
    rewards: Assets = field(default_factory=Assets)
    # Rewards per (gauge, asset) across all claimed periods.
    buckets: BribeBuckets = field(default_factory=BribeBuckets)

    def is_empty(self) -> bool:
        return self.rewards.is_empty()


class ClaimEngine:
    """Computes, and optionally records, a voter's bribe rewards."""

    def __init__(
        self,
        store: StorageBackend,
        gauge: GaugeSharesProvider,
        env: Env,
        config: Optional[VescrowConfig] = None,
    ):
        self.store = store
        self.gauge = gauge
        self.env = env
        self.config = config or get_global_config()

    def next_claim_period(self, user: str) -> int:
        """First period not yet claimed by ``user``."""
        block_period = self.env.block_period
        last = fetch_last_claimed(self.store, user, block_period)
        if last is not None:
            return last[0] + 1
        first = self.gauge.query_first_participation(user)
        return block_period if first is None else first

    def claim_periods(self, user: str, periods: Optional[Sequence[int]] = None) -> List[int]:
        """Sorted, de-duplicated periods to claim, never past the current one.

        Without explicit periods the range runs from the next claim period
        over at most ``claim_batch_periods`` further periods.
        """
        block_period = self.env.block_period
        if periods is None:
            start = self.next_claim_period(user)
            end = min(start + self.config.claim_batch_periods, block_period)
            periods = range(start, end + 1)
        return sorted({period for period in periods if period <= block_period})

    def run(self, user: str, periods: Sequence[int], record: bool = False) -> ClaimResult:
        """Accumulate the rewards of ``user`` over ``periods``.

        With ``record`` the first touch of a period freezes its totals and
        claimed periods get a marker; otherwise nothing is written.
        """
        result = ClaimResult()
        context = ClaimContext()

        for share in self.gauge.query_user_shares(user, periods):
            if share.period != context.period:
                if record:
                    context.maybe_save(self.store, user)
                context = self._open_period(user, share.period, record)
                if not context.skip:
                    result.periods.append(share.period)

            if context.skip:
                continue

            total_bucket = context.bribe_totals.find(share.gauge, share.asset)
            if total_bucket is None:
                continue

            available = context.bribe_available.find(share.gauge, share.asset)
            if available is None:
                continue

            for reward in total_bucket.assets.calc_share_amounts(share.vp, share.total_vp):
                # Per-lock rounding in the vote index can leave the shares a few
                # units above the bucket; the bucket is the hard limit.
                amount = min(reward.amount, available.assets.amount_of(reward.info))
                if amount == 0:
                    continue
                paid = Asset(reward.info, amount)
                context.bribe_available.remove(share.gauge, share.asset, paid)
                context.bribe_claimed.add(share.gauge, share.asset, paid)
                result.buckets.add(share.gauge, share.asset, paid)
                result.rewards.add(paid)

        if record:
            context.maybe_save(self.store, user)
        return result

    def _open_period(self, user: str, period: int, record: bool) -> ClaimContext:
        available = BRIBE_AVAILABLE.may_load(self.store, period)
        if available is None:
            logger.debug(f"No bribes in period {period}, skipping")
            return ClaimContext.skipping(period)

        if BRIBE_CLAIMED.has(self.store, (user, period)):
            logger.debug(f"{user} already claimed period {period}, skipping")
            return ClaimContext.skipping(period)

        totals = BRIBE_TOTAL.may_load(self.store, period)
        if totals is None:
            totals = available.copy()
            if record:
                BRIBE_TOTAL.save(self.store, period, totals)

        return ClaimContext(
            period=period,
            skip=False,
            should_save=record,
            bribe_available=available,
            bribe_totals=totals,
        )

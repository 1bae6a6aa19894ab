"""
Unit tests for the bribe claim engine.

The gauge is replaced by a fixed list of shares so that claim arithmetic is
tested in isolation.
"""

from typing import List, Optional, Sequence

import pytest

from vescrow.bribes.buckets import BribeBuckets
from vescrow.bribes.claims import ClaimContext, ClaimEngine
from vescrow.bribes.state import BRIBE_AVAILABLE, BRIBE_CLAIMED, BRIBE_TOTAL, fetch_last_claimed
from vescrow.config import VescrowConfig
from vescrow.core.assets import Asset, AssetInfo, Assets
from vescrow.core.period import Env
from vescrow.gauge.state import UserShare
from vescrow.storage.backend import MemoryBackend

TARGET = AssetInfo.native("a")


class FixedShares:
    """Gauge stand-in returning preset shares."""

    def __init__(self, shares: List[UserShare], first: Optional[int] = None):
        self.shares = shares
        self.first = first

    def query_user_shares(self, user: str, periods: Sequence[int]) -> List[UserShare]:
        wanted = set(periods)
        return [share for share in self.shares if share.period in wanted]

    def query_first_participation(self, user: str) -> Optional[int]:
        return self.first


def bucket_of(amount: int, gauge: str = "g") -> BribeBuckets:
    buckets = BribeBuckets()
    buckets.add(gauge, TARGET, Asset.native("a", amount))
    return buckets


class TestClaimEngine:
    """Test ClaimEngine class."""

    @pytest.fixture
    def store(self):
        return MemoryBackend()

    @pytest.fixture
    def env(self):
        return Env.at_period(5)

    def engine(self, store, env, shares, first=None, config=None):
        return ClaimEngine(store, FixedShares(shares, first), env, config)

    def test_claim_pays_share(self, store, env):
        """Test a tenth of the voting power receives a tenth of the bucket."""
        BRIBE_AVAILABLE.save(store, 5, bucket_of(50))
        engine = self.engine(store, env, [UserShare("g", TARGET, 5, 10, 100)])

        result = engine.run("alice", [5], record=True)
        assert result.rewards == Assets([Asset.native("a", 5)])
        assert result.periods == [5]
        assert result.buckets.find("g", TARGET).assets == Assets([Asset.native("a", 5)])

        assert BRIBE_AVAILABLE.load(store, 5).total() == Assets([Asset.native("a", 45)])
        assert BRIBE_TOTAL.load(store, 5).total() == Assets([Asset.native("a", 50)])
        assert BRIBE_CLAIMED.has(store, ("alice", 5))

    def test_dry_run_writes_nothing(self, store, env):
        """Test claimable queries leave state untouched."""
        BRIBE_AVAILABLE.save(store, 5, bucket_of(50))
        engine = self.engine(store, env, [UserShare("g", TARGET, 5, 10, 100)])
        assert engine.run("alice", [5]).rewards == Assets([Asset.native("a", 5)])
        assert BRIBE_TOTAL.may_load(store, 5) is None
        assert not BRIBE_CLAIMED.has(store, ("alice", 5))
        assert BRIBE_AVAILABLE.load(store, 5).total() == Assets([Asset.native("a", 50)])

    def test_second_claim_pays_nothing(self, store, env):
        """Test claimed periods are skipped."""
        BRIBE_AVAILABLE.save(store, 5, bucket_of(50))
        engine = self.engine(store, env, [UserShare("g", TARGET, 5, 10, 100)])
        engine.run("alice", [5], record=True)
        result = engine.run("alice", [5], record=True)
        assert result.is_empty()
        assert result.periods == []

    def test_frozen_totals(self, store, env):
        """Test later claimers are paid from the frozen total."""
        BRIBE_AVAILABLE.save(store, 5, bucket_of(100))
        shares = [UserShare("g", TARGET, 5, 50, 100)]
        self.engine(store, env, shares).run("alice", [5], record=True)
        result = self.engine(store, env, shares).run("bob", [5], record=True)
        assert result.rewards == Assets([Asset.native("a", 50)])
        assert BRIBE_AVAILABLE.may_load(store, 5) is None

    def test_payout_capped_by_available(self, store, env):
        """Test rounding excess never overdraws the bucket."""
        BRIBE_TOTAL.save(store, 5, bucket_of(50))
        BRIBE_AVAILABLE.save(store, 5, bucket_of(3))
        engine = self.engine(store, env, [UserShare("g", TARGET, 5, 10, 100)])
        result = engine.run("alice", [5], record=True)
        assert result.rewards == Assets([Asset.native("a", 3)])
        assert BRIBE_AVAILABLE.may_load(store, 5) is None

    def test_periods_without_bribes_skipped(self, store, env):
        """Test shares of empty periods and other targets pay nothing."""
        BRIBE_AVAILABLE.save(store, 5, bucket_of(50, gauge="other"))
        shares = [UserShare("g", TARGET, 4, 10, 100), UserShare("g", TARGET, 5, 10, 100)]
        result = self.engine(store, env, shares).run("alice", [4, 5], record=True)
        assert result.is_empty()
        assert result.periods == [5]
        assert BRIBE_CLAIMED.load(store, ("alice", 5)).is_empty()

    def test_next_claim_period(self, store, env):
        """Test the claim cursor."""
        engine = self.engine(store, env, [], first=2)
        assert engine.next_claim_period("alice") == 2
        assert self.engine(store, env, []).next_claim_period("alice") == 5

        BRIBE_CLAIMED.save(store, ("alice", 3), BribeBuckets())
        assert engine.next_claim_period("alice") == 4
        assert fetch_last_claimed(store, "alice", 5) == (3, BribeBuckets())
        assert fetch_last_claimed(store, "alice", 2) is None

    def test_claim_periods(self, store, env):
        """Test explicit and default claim ranges."""
        engine = self.engine(store, env, [], first=2)
        assert engine.claim_periods("alice", [5, 3, 3, 9]) == [3, 5]
        assert engine.claim_periods("alice") == [2, 3, 4, 5]

    def test_claim_batch_limit(self, store):
        """Test default ranges are bounded by the batch size."""
        env = Env.at_period(50)
        config = VescrowConfig(claim_batch_periods=3)
        engine = self.engine(store, env, [], first=10, config=config)
        assert engine.claim_periods("alice") == [10, 11, 12, 13]


class TestClaimContext:
    """Test ClaimContext class."""

    def test_skipping_does_not_save(self):
        """Test skipped periods write no marker."""
        store = MemoryBackend()
        ClaimContext.skipping(5).maybe_save(store, "alice")
        ClaimContext().maybe_save(store, "alice")
        assert not BRIBE_CLAIMED.has(store, ("alice", 5))

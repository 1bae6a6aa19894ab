"""
Property-based tests for vescrow using Hypothesis.

This module tests the invariants of the distribution curves, basic points
accumulation, the voting power ledger and bribe claims under generated
inputs.
"""

import logging

import pytest
from hypothesis import given, settings, strategies as st

from vescrow.bribes.claims import ClaimEngine
from vescrow.bribes.distribution import BribeDistribution, FuncType, create_distribution
from vescrow.bribes.state import BRIBE_AVAILABLE
from vescrow.bribes.buckets import BribeBuckets
from vescrow.core.assets import Asset, AssetInfo
from vescrow.core.bps import BasicPoints
from vescrow.core.math import FixedDecimal
from vescrow.core.period import Env
from vescrow.errors.exceptions import BasicPointsError
from vescrow.escrow.checkpoint import CheckpointLedger
from vescrow.gauge.state import UserShare
from vescrow.storage.backend import MemoryBackend

logger = logging.getLogger(__name__)

TARGET = AssetInfo.native("a")

func_types = st.sampled_from(list(FuncType))


class TestDistributionProperties:
    """Property-based tests for bribe distributions."""

    @given(
        st.integers(min_value=0, max_value=1000),
        st.integers(min_value=1, max_value=10 ** 24),
        st.integers(min_value=0, max_value=103),
        func_types,
    )
    @settings(max_examples=200, deadline=None)
    def test_schedule_sums_to_amount(self, block_period, amount, length, func_type):
        """Test every schedule pays exactly the deposit over its range."""
        end = block_period + 1 + length
        schedule = create_distribution(block_period, amount, BribeDistribution.func(end, func_type))

        assert sum(value for _, value in schedule) == amount
        assert [period for period, _ in schedule] == list(range(block_period + 1, end + 1))
        assert all(value >= 0 for _, value in schedule)

    @given(func_types, st.integers(min_value=0, max_value=999))
    @settings(max_examples=300, deadline=None)
    def test_curves_monotonic(self, func_type, step):
        """Test curves never decrease at 1/1000 resolution and stay in [0, 1]."""
        func = func_type.func
        lower = func(FixedDecimal.from_ratio(step, 1000))
        upper = func(FixedDecimal.from_ratio(step + 1, 1000))
        assert lower <= upper
        assert upper <= FixedDecimal.one()


class TestBasicPointsProperties:
    """Property-based tests for basic points."""

    @given(st.lists(st.integers(min_value=0, max_value=10000), max_size=20))
    def test_accumulation(self, values):
        """Test summing succeeds exactly while the total stays within 100%."""
        total = BasicPoints.zero()
        running = 0
        for value in values:
            running += value
            if running > 10000:
                with pytest.raises(BasicPointsError):
                    total.checked_add(BasicPoints(value))
                return
            total = total.checked_add(BasicPoints(value))
        assert total.value == sum(values)

    @given(st.integers(min_value=0, max_value=10000), st.integers(min_value=0, max_value=10 ** 30))
    def test_mul_uint_bounded(self, bps, amount):
        """Test weighted amounts never exceed the amount."""
        assert BasicPoints(bps).mul_uint(amount) <= amount


locks = st.lists(
    st.tuples(
        st.integers(min_value=1, max_value=10 ** 12),
        st.integers(min_value=1, max_value=104),
    ),
    min_size=1,
    max_size=6,
)


class TestLedgerProperties:
    """Property-based tests for the checkpoint ledger."""

    @given(st.integers(min_value=1, max_value=10 ** 15), st.integers(min_value=1, max_value=104))
    @settings(deadline=None)
    def test_voting_power_decays_to_fixed(self, amount, periods):
        """Test lock power is non-increasing and ends at the locked amount."""
        ledger = CheckpointLedger(MemoryBackend())
        ledger.ensure_total(0)
        ledger.create_or_extend(0, "1", amount, amount, periods)

        previous = None
        for period in range(0, periods + 2):
            power = ledger.voting_power("1", period)
            assert power >= amount
            if previous is not None:
                assert power <= previous
            previous = power
        assert ledger.voting_power("1", periods) == amount

    @given(locks)
    @settings(max_examples=50, deadline=None)
    def test_total_is_sum_of_locks(self, lock_specs):
        """Test the total equals the sum of lock powers at every period."""
        ledger = CheckpointLedger(MemoryBackend())
        ledger.ensure_total(0)
        for index, (amount, periods) in enumerate(lock_specs):
            ledger.create_or_extend(0, str(index + 1), amount, amount, periods)

        token_ids = [str(index + 1) for index in range(len(lock_specs))]
        for period in range(0, 110, 3):
            expected = sum(ledger.voting_power(token_id, period) for token_id in token_ids)
            assert ledger.total_voting_power(period) == expected


class FixedShares:
    """Gauge stand-in returning preset shares."""

    def __init__(self, shares):
        self.shares = shares

    def query_user_shares(self, user, periods):
        wanted = set(periods)
        return [share for share in self.shares if share.period in wanted]

    def query_first_participation(self, user):
        return None


class TestClaimProperties:
    """Property-based tests for bribe claims."""

    @given(
        st.lists(st.integers(min_value=1, max_value=8), min_size=1, max_size=4),
        st.lists(st.integers(min_value=1, max_value=8), min_size=1, max_size=4),
        st.integers(min_value=1, max_value=10 ** 9),
    )
    @settings(max_examples=100, deadline=None)
    def test_overlapping_claims_pay_once(self, first, second, bribe):
        """Test claiming overlapping ranges never pays a period twice."""
        store = MemoryBackend()
        env = Env.at_period(10)
        for period in range(1, 9):
            buckets = BribeBuckets()
            buckets.add("g", TARGET, Asset.native("a", bribe))
            BRIBE_AVAILABLE.save(store, period, buckets)

        shares = [UserShare("g", TARGET, period, 1, 4) for period in range(1, 9)]
        engine = ClaimEngine(store, FixedShares(shares), env)

        paid = engine.run("alice", first, record=True).rewards.amount_of(TARGET)
        paid += engine.run("alice", second, record=True).rewards.amount_of(TARGET)

        periods = set(first) | set(second)
        assert paid == len(periods) * (bribe // 4)

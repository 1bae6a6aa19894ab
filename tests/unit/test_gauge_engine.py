"""
Unit tests for the asset gauge.

The gauge is exercised through a wired system so that lock changes made in
the escrow reach it the way they do in production.
"""

import pytest

from vescrow.config import WEEK
from vescrow.core.assets import Asset, AssetInfo
from vescrow.core.bps import BasicPoints
from vescrow.core.period import Env, Time
from vescrow.errors.exceptions import (
    AuthorizationError,
    BasicPointsError,
    DuplicatedVotesError,
    InvalidAssetError,
    NotFoundError,
    ZeroVotingPowerError,
)
from vescrow.gauge.period_index import Data
from vescrow.gauge.state import GaugeConfig, UserShare
from vescrow.storage.backend import MemoryBackend
from vescrow.system import VeSystem

UVE = AssetInfo.native("uve")
USDC = AssetInfo.native("usdc")
USDT = AssetInfo.native("usdt")


class TestAssetGauge:
    """Test AssetGauge class."""

    @pytest.fixture
    def env(self):
        """Create an environment at period 10."""
        return Env.at_period(10)

    @pytest.fixture
    def system(self, env):
        """Create a wired system with a ``stable`` gauge."""
        system = VeSystem(
            owner="owner",
            env=env,
            deposit_assets=[UVE],
            gauges=[GaugeConfig("stable", [USDC, USDT])],
            store=MemoryBackend(),
        )
        for user in ("alice", "bob"):
            system.bank.mint(user, Asset(UVE, 1_000_000))
        return system

    @pytest.fixture
    def locked(self, system):
        """Alice locks 1000 for ten periods."""
        return system.escrow.create_lock("alice", Asset(UVE, 1000), 10 * WEEK)

    def test_lock_reaches_gauge_next_period(self, system, locked):
        """Test lock updates apply from the next period."""
        gauge = system.gauge
        assert gauge.user_info("alice") == Data()
        assert gauge.user_info("alice", Time.next()) == Data(80, 8, 1000)
        assert gauge.user_info("alice", Time.period(21)) == Data(0, 0, 1000)

    def test_vote(self, system, locked):
        """Test splitting voting power across two targets."""
        gauge = system.gauge
        votes = gauge.vote("alice", "stable", [(str(USDC), 6000), (str(USDT), 4000)])
        assert votes.votes == [(str(USDC), BasicPoints(6000)), (str(USDT), BasicPoints(4000))]
        assert votes.period == 11

        assert gauge.asset_info("stable", USDC, Time.next()) == Data(48, 4, 600)
        assert gauge.asset_info("stable", USDT, Time.next()) == Data(32, 3, 400)
        assert gauge.user_votes("stable", "alice").votes == []
        assert gauge.user_votes("stable", "alice", Time.next()) == votes
        assert gauge.user_votes("stable", "alice", Time.period(15)).period == 11
        assert gauge.voted_assets("stable") == [str(USDC), str(USDT)]

        shares = gauge.query_user_shares("alice", [11])
        assert shares == [
            UserShare("stable", USDC, 11, 648, 648),
            UserShare("stable", USDT, 11, 432, 432),
        ]
        assert gauge.query_user_shares("alice", [10]) == []
        assert gauge.query_first_participation("alice") == 11

    def test_revote_moves_weight(self, system, locked):
        """Test a second vote in the same period replaces the first."""
        gauge = system.gauge
        gauge.vote("alice", "stable", [(str(USDC), 6000), (str(USDT), 4000)])
        gauge.vote("alice", "stable", [(str(USDT), 10000)])
        assert gauge.asset_info("stable", USDC, Time.next()) == Data()
        assert gauge.asset_info("stable", USDT, Time.next()) == Data(80, 8, 1000)
        assert gauge.voted_assets("stable") == [str(USDT)]

    def test_deposit_updates_votes(self, system, locked):
        """Test a lock change re-applies the owner's votes."""
        gauge = system.gauge
        gauge.vote("alice", "stable", [(str(USDC), 6000), (str(USDT), 4000)])
        system.escrow.extend_lock_amount("alice", locked, Asset(UVE, 1000))

        assert gauge.user_info("alice", Time.next()) == Data(160, 16, 2000)
        assert gauge.asset_info("stable", USDC, Time.next()) == Data(96, 9, 1200)
        share = gauge.query_user_shares("alice", [11])[0]
        assert (share.vp, share.total_vp) == (1296, 1296)

    def test_transfer_moves_voting_power(self, system, locked):
        """Test voting power follows a transferred lock."""
        gauge = system.gauge
        gauge.vote("alice", "stable", [(str(USDC), 10000)])
        system.escrow.transfer_lock("alice", locked, "bob")
        assert gauge.user_info("alice", Time.next()) == Data()
        assert gauge.user_info("bob", Time.next()) == Data(80, 8, 1000)
        assert gauge.asset_info("stable", USDC, Time.next()) == Data()

    def test_two_voters(self, system, locked):
        """Test totals aggregate every voter."""
        system.escrow.create_lock("bob", Asset(UVE, 1000), 10 * WEEK)
        system.gauge.vote("alice", "stable", [(str(USDC), 10000)])
        system.gauge.vote("bob", "stable", [(str(USDC), 10000)])
        shares = system.gauge.query_user_shares("bob", [11])
        assert shares == [UserShare("stable", USDC, 11, 1080, 2160)]

    def test_blacklisted_voter_has_no_shares(self, system, env, locked):
        """Test blacklisting hides shares of periods already under way."""
        system.escrow.create_lock("bob", Asset(UVE, 1000), 10 * WEEK)
        system.gauge.vote("alice", "stable", [(str(USDC), 10000)])
        system.gauge.vote("bob", "stable", [(str(USDC), 10000)])
        env.advance_periods(1)
        system.escrow.update_blacklist("owner", append_addrs=["bob"])

        assert system.gauge.query_user_shares("bob", [11]) == []
        assert system.gauge.query_user_shares("alice", [11]) == [UserShare("stable", USDC, 11, 1080, 2160)]

    def test_vote_validation(self, system, locked):
        """Test rejected votes."""
        gauge = system.gauge
        with pytest.raises(ZeroVotingPowerError):
            gauge.vote("bob", "stable", [(str(USDC), 10000)])
        with pytest.raises(NotFoundError):
            gauge.vote("alice", "unknown", [(str(USDC), 10000)])
        with pytest.raises(DuplicatedVotesError):
            gauge.vote("alice", "stable", [(str(USDC), 5000), (str(USDC), 5000)])
        with pytest.raises(InvalidAssetError):
            gauge.vote("alice", "stable", [("native:dai", 10000)])
        with pytest.raises(BasicPointsError):
            gauge.vote("alice", "stable", [(str(USDC), 6000), (str(USDT), 5000)])
        assert gauge.voted_assets("stable") == []

    def test_update_vote_requires_escrow(self, system, locked):
        """Test only the escrow pushes lock updates."""
        info = system.escrow.lock_info(locked)
        with pytest.raises(AuthorizationError):
            system.gauge.update_vote("alice", locked, info)

    def test_update_config(self, system):
        """Test adding and removing gauges."""
        gauge = system.gauge
        gauge.update_config("owner", update_gauge=GaugeConfig("volatile", [UVE]))
        assert [g.name for g in gauge.gauges()] == ["stable", "volatile"]
        gauge.update_config("owner", remove_gauge="volatile")
        assert [g.name for g in gauge.gauges()] == ["stable"]
        with pytest.raises(NotFoundError):
            gauge.update_config("owner", remove_gauge="volatile")
        with pytest.raises(AuthorizationError):
            gauge.update_config("alice", remove_gauge="stable")

"""
Unit tests for the weighted period index.
"""

import pytest

from vescrow.core.assets import Asset, AssetInfo
from vescrow.core.bps import BasicPoints
from vescrow.core.math import FixedDecimal
from vescrow.escrow.state import End, LockInfo
from vescrow.gauge.period_index import Data, Line, Operation, PeriodIndex
from vescrow.storage.backend import MemoryBackend

FULL = BasicPoints.max()


class TestDataAndLine:
    """Test Data, Operation and Line."""

    def test_data(self):
        """Test voting power helpers."""
        assert not Data().has_vp()
        assert Data(fixed_amount=1).has_vp()
        assert Data(80, 8, 1000).total_vp() == 1080
        assert Data.from_dict(Data(80, 8, 1000).to_dict()) == Data(80, 8, 1000)

    def test_operation(self):
        """Test weighted add and saturating sub."""
        half = BasicPoints(5000)
        assert Operation.ADD.calc(10, 9, half) == 14
        assert Operation.SUB.calc(10, 9, half) == 6
        assert Operation.SUB.calc(3, 100, half) == 0

    def test_line_from_lock_info(self):
        """Test lines copy the lock snapshot."""
        info = LockInfo(
            token_id="1",
            owner="alice",
            period=10,
            asset=Asset.native("uve", 1000),
            coefficient=FixedDecimal.zero(),
            start=10,
            end=End.period(20),
            slope=8,
            fixed_amount=1000,
            voting_power=80,
        )
        line = Line.from_lock_info(info)
        assert line == Line(vp=80, slope=8, fixed=1000, start=10, end=20)
        assert line.slope_end() == 21
        assert Line(0, 0, 1900, 10, None).slope_end() is None


class TestPeriodIndex:
    """Test PeriodIndex class."""

    @pytest.fixture
    def index(self):
        """Create an index under a test namespace."""
        return PeriodIndex(MemoryBackend(), "test")

    @pytest.fixture
    def line(self):
        """A ten period lock snapshot taken at period 10."""
        return Line(vp=80, slope=8, fixed=1000, start=10, end=20)

    def test_add_line(self, index, line):
        """Test a line decays until its slope end."""
        data = index.add_line(11, "alice", FULL, line)
        assert data == Data(80, 8, 1000)
        assert index.get_latest_data(10, "alice") == Data()
        assert index.get_latest_data(16, "alice") == Data(40, 8, 1000)
        assert index.get_latest_data(21, "alice") == Data(0, 0, 1000)
        assert index.get_latest_data(40, "alice") == Data(0, 0, 1000)
        assert index.keys() == ["alice"]

    def test_weighted_line(self, index, line):
        """Test lines scaled by basic points."""
        index.add_line(11, "usdc", BasicPoints(6000), line)
        assert index.get_latest_data(11, "usdc") == Data(48, 4, 600)
        assert index.fetch_future_slope_changes("usdc", 11) == [(21, 4)]

    def test_remove_line(self, index, line):
        """Test removing a line restores the previous aggregate."""
        index.add_line(11, "alice", FULL, line)
        data = index.remove_line(13, "alice", FULL, line)
        assert data == Data(0, 0, 0)
        assert index.fetch_future_slope_changes("alice", 0) == []
        assert index.keys() == []
        assert index.get_latest_data(12, "alice") == Data(72, 8, 1000)

    def test_expired_line_adds_no_slope(self, index, line):
        """Test a line past its slope end only adds its fixed amount."""
        data = index.add_line(25, "alice", FULL, Line(vp=0, slope=8, fixed=1000, start=10, end=20))
        assert data == Data(0, 0, 1000)
        assert index.fetch_future_slope_changes("alice", 0) == []
        removed = index.remove_line(26, "alice", FULL, Line(vp=0, slope=8, fixed=1000, start=10, end=20))
        assert removed == Data()

    def test_get_data_mut_persists_folds(self, index, line):
        """Test writes persist the folded intermediate periods."""
        index.add_line(11, "alice", FULL, line)
        index.update_data(30, "alice")
        assert index.data.may_load(index.store, ("alice", 21)) == Data(0, 0, 1000)
        assert index.data.may_load(index.store, ("alice", 30)) == Data(0, 0, 1000)
        assert index.fetch_last_period(30, "alice") == (21, Data(0, 0, 1000))

    def test_change_weights(self, index):
        """Test moving a voter's weight between keys."""
        current = Data(80, 8, 1000)
        slopes = [(21, 8)]
        index.change_weights(11, "usdc", BasicPoints.zero(), BasicPoints(6000), current, slopes)
        index.change_weights(11, "usdt", BasicPoints.zero(), BasicPoints(4000), current, slopes)
        assert index.get_latest_data(11, "usdc") == Data(48, 4, 600)
        assert index.get_latest_data(11, "usdt") == Data(32, 3, 400)

        index.change_weights(11, "usdc", BasicPoints(6000), BasicPoints.zero(), current, slopes)
        index.change_weights(11, "usdt", BasicPoints(4000), FULL, current, slopes)
        assert index.get_latest_data(11, "usdc") == Data()
        assert index.get_latest_data(11, "usdt") == Data(80, 8, 1000)
        assert index.fetch_future_slope_changes("usdc", 11) == []
        assert index.fetch_future_slope_changes("usdt", 11) == [(21, 8)]
        assert index.keys() == ["usdt"]

    def test_unchanged_weights(self, index):
        """Test an unchanged weight only checkpoints the key."""
        data = index.change_weights(11, "usdc", BasicPoints(5000), BasicPoints(5000), Data(80, 8, 1000), [])
        assert data == Data()
        assert index.data.may_load(index.store, ("usdc", 11)) == Data()

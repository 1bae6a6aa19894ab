"""
Unit tests for asset types and the store-backed bank.
"""

import pytest

from vescrow.core.assets import Asset, AssetInfo, AssetKind, Assets
from vescrow.core.bank import StoreBank
from vescrow.errors.exceptions import InsufficientBalanceError, NotFoundError, ValidationError
from vescrow.storage.backend import MemoryBackend


class TestAssetInfo:
    """Test AssetInfo class."""

    def test_parse_and_format(self):
        """Test string round trip for both kinds."""
        native = AssetInfo.from_str("native:uusd")
        assert native == AssetInfo.native("uusd")
        assert native.is_native()
        assert str(AssetInfo.cw20("token0")) == "cw20:token0"
        assert AssetInfo.from_str("cw20:token0").kind == AssetKind.CW20

    def test_invalid(self):
        """Test malformed identifiers."""
        with pytest.raises(ValidationError):
            AssetInfo.from_str("uusd")
        with pytest.raises(ValidationError):
            AssetInfo.from_str("erc20:abc")
        with pytest.raises(ValidationError):
            AssetInfo.native("")

    def test_negative_amount_rejected(self):
        """Test that assets hold unsigned amounts."""
        with pytest.raises(ValidationError):
            Asset.native("uusd", -1)


class TestAssets:
    """Test Assets collection."""

    def test_add_merges(self):
        """Test that amounts of one token merge."""
        assets = Assets([Asset.native("a", 10), Asset.native("b", 5)])
        assets.add(Asset.native("a", 15))
        assert assets.amount_of(AssetInfo.native("a")) == 25
        assert len(assets) == 2

    def test_remove_drops_zero(self):
        """Test that emptied balances disappear."""
        assets = Assets([Asset.native("a", 10)])
        assets.remove(Asset.native("a", 10))
        assert assets.is_empty()

    def test_remove_errors(self):
        """Test over-withdrawal and unknown tokens."""
        assets = Assets([Asset.native("a", 10)])
        with pytest.raises(InsufficientBalanceError):
            assets.remove(Asset.native("a", 11))
        with pytest.raises(NotFoundError):
            assets.remove(Asset.native("b", 1))
        assert assets.amount_of(AssetInfo.native("a")) == 10

    def test_calc_share_amounts(self):
        """Test proportional shares round down and skip zeros."""
        assets = Assets([Asset.native("a", 50), Asset.native("b", 5)])
        shares = assets.calc_share_amounts(10, 100)
        assert shares == [Asset.native("a", 5)]
        assert assets.calc_share_amounts(1, 0) == []

    def test_copy_is_independent(self):
        """Test that copies do not share balances."""
        assets = Assets([Asset.native("a", 10)])
        copy = assets.copy()
        copy.add(Asset.native("a", 1))
        assert assets.amount_of(AssetInfo.native("a")) == 10

    def test_list_round_trip(self):
        """Test serialization to plain data."""
        assets = Assets([Asset.native("a", 10), Asset.cw20("t", 2 ** 100)])
        assert Assets.from_list(assets.to_list()) == assets


class TestStoreBank:
    """Test StoreBank class."""

    @pytest.fixture
    def bank(self):
        """Create a bank over a memory backend."""
        return StoreBank(MemoryBackend())

    def test_mint_and_transfer(self, bank):
        """Test balances move between addresses."""
        bank.mint("alice", Asset.native("uusd", 100))
        bank.transfer("alice", "bob", Asset.native("uusd", 40))
        assert bank.balance("alice", AssetInfo.native("uusd")) == 60
        assert bank.balance("bob", AssetInfo.native("uusd")) == 40

    def test_insufficient_balance(self, bank):
        """Test that overdrafts fail without side effects."""
        bank.mint("alice", Asset.native("uusd", 10))
        with pytest.raises(InsufficientBalanceError):
            bank.transfer("alice", "bob", Asset.native("uusd", 11))
        assert bank.balance("alice", AssetInfo.native("uusd")) == 10
        assert bank.balance("bob", AssetInfo.native("uusd")) == 0

    def test_transfer_many_is_atomic_inside_transaction(self, bank):
        """Test that a failing batch inside a transaction rolls back."""
        bank.mint("alice", Asset.native("a", 10))
        with pytest.raises(InsufficientBalanceError):
            with bank.store.transaction():
                bank.transfer_many("alice", "bob", [Asset.native("a", 5), Asset.native("b", 1)])
        assert bank.balance("alice", AssetInfo.native("a")) == 10

    def test_zero_transfer_is_noop(self, bank):
        """Test zero amounts need no balance."""
        bank.transfer("nobody", "bob", Asset.native("a", 0))
        assert bank.balance("bob", AssetInfo.native("a")) == 0

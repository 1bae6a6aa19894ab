"""
Unit tests for storage backends and typed maps.

Every test runs against both the memory and the SQLite backend.
"""

import pytest

from vescrow.errors.exceptions import NotFoundError, StorageError, ValidationError
from vescrow.storage.backend import MemoryBackend, SQLiteBackend, StorageConfig
from vescrow.storage.maps import BOOL, INT, STR, Bound, Item, Map
from vescrow.storage.period_map import PeriodMap


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Create a backend of each kind."""
    if request.param == "memory":
        backend = MemoryBackend()
    else:
        backend = SQLiteBackend(StorageConfig(database_path=str(tmp_path / "kv.db")))
    yield backend
    backend.close()


class TestBackend:
    """Test raw backend operations."""

    def test_get_set_delete(self, store):
        """Test basic key operations."""
        assert store.get(b"k") is None
        store.set(b"k", b"v")
        assert store.get(b"k") == b"v"
        assert store.has(b"k")
        store.delete(b"k")
        assert not store.has(b"k")

    def test_range_order(self, store):
        """Test ordered iteration in both directions."""
        for key in (b"b", b"a", b"c", b"d"):
            store.set(key, key)
        assert [k for k, _ in store.range(b"a", b"d")] == [b"a", b"b", b"c"]
        assert [k for k, _ in store.range(b"b", None, descending=True)] == [b"d", b"c", b"b"]

    def test_transaction_rollback(self, store):
        """Test that an error discards every write in the scope."""
        store.set(b"keep", b"1")
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.set(b"keep", b"2")
                with store.transaction():
                    store.set(b"new", b"x")
                raise RuntimeError("boom")
        assert store.get(b"keep") == b"1"
        assert store.get(b"new") is None

    def test_transaction_commit(self, store):
        """Test that a clean scope keeps its writes."""
        with store.transaction():
            store.set(b"a", b"1")
        assert store.get(b"a") == b"1"


class TestItemAndMap:
    """Test typed views."""

    def test_item(self, store):
        """Test single value storage."""
        item = Item("counter", INT)
        assert item.may_load(store) is None
        with pytest.raises(NotFoundError):
            item.load(store)
        assert item.update(store, lambda v: (v or 0) + 2 ** 100) == 2 ** 100
        assert item.load(store) == 2 ** 100

    def test_composite_map_range(self, store):
        """Test ranges over a composite key with bounds."""
        values = Map("values", (str, int), STR)
        for period in (1, 5, 9):
            values.save(store, ("alice", period), f"v{period}")
        values.save(store, ("alicia", 3), "other")

        items = list(values.range(store, ("alice",)))
        assert items == [(("alice", 1), "v1"), (("alice", 5), "v5"), (("alice", 9), "v9")]

        bounded = list(values.keys(store, ("alice",), min=Bound.exclusive_of(1), max=Bound.inclusive_of(5)))
        assert bounded == [("alice", 5)]

        latest = next(values.range(store, ("alice",), max=Bound.exclusive_of(9), descending=True))
        assert latest == (("alice", 5), "v5")

    def test_single_part_map(self, store):
        """Test scalar keys for single-part maps."""
        flags = Map("flags", (str,), BOOL)
        flags.save(store, "b", True)
        flags.save(store, "a", True)
        assert list(flags.keys(store)) == ["a", "b"]
        assert list(flags.prefix_keys(store, ())) == ["a", "b"]

    def test_namespaces_do_not_collide(self, store):
        """Test that maps with prefix-sharing names stay separate."""
        short = Map("a", (str,), STR)
        long = Map("ab", (str,), STR)
        short.save(store, "x", "short")
        long.save(store, "x", "long")
        assert list(short.range(store)) == [("x", "short")]

    def test_invalid_keys(self, store):
        """Test key validation."""
        values = Map("values", (str, int), STR)
        with pytest.raises(StorageError):
            values.save(store, "alice", "v")
        with pytest.raises(StorageError):
            values.save(store, ("alice", -1), "v")


class TestPeriodMap:
    """Test PeriodMap checkpoints."""

    def test_nearest_checkpoint(self, store):
        """Test reads resolve to the nearest earlier checkpoint."""
        votes = PeriodMap("votes", (str,), INT)
        votes.save(store, "alice", 3, 30)
        votes.save(store, "alice", 7, 70)
        assert votes.get_latest_data(store, "alice", 2) is None
        assert votes.get_latest_data(store, "alice", 5) == 30
        assert votes.get_latest_data(store, "alice", 100) == 70
        assert votes.fetch_first(store, "alice") == (3, 30)
        assert votes.fetch_last(store, "alice") == (7, 70)

    def test_monotonic_writes(self, store):
        """Test checkpoints cannot be placed before the latest one."""
        votes = PeriodMap("votes", (str,), INT)
        votes.save(store, "alice", 7, 70)
        votes.save(store, "alice", 7, 71)
        assert votes.load(store, "alice", 7) == 71
        with pytest.raises(ValidationError):
            votes.save(store, "alice", 6, 60)

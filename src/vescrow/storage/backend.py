"""
Key-value storage backends for vescrow.

Engines persist their state as ordered byte keys mapped to packed values.
Every public operation runs inside :meth:`StorageBackend.transaction`; an
exception raised inside the outermost transaction discards all writes made
since it started.
"""

import bisect
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from ..config import VescrowConfig, get_global_config
from ..errors.exceptions import StorageError


@dataclass
class StorageConfig:
    """SQLite storage configuration."""

    database_path: str = "vescrow.db"
    connection_timeout: float = 30.0
    synchronous: str = "NORMAL"  # OFF, NORMAL, FULL
    journal_mode: str = "WAL"  # DELETE, TRUNCATE, PERSIST, MEMORY, WAL, OFF


class StorageBackend(ABC):
    """Abstract ordered key-value store."""

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0
        self._logger = logging.getLogger(__name__)

    @abstractmethod
    def get(self, key: bytes) -> Optional[bytes]:
        """Return the value stored under ``key``."""
        pass

    @abstractmethod
    def set(self, key: bytes, value: bytes) -> None:
        """Store ``value`` under ``key``."""
        pass

    @abstractmethod
    def delete(self, key: bytes) -> None:
        """Remove ``key`` if present."""
        pass

    @abstractmethod
    def range(
        self, start: bytes, end: Optional[bytes], descending: bool = False
    ) -> Iterator[Tuple[bytes, bytes]]:
        """Iterate keys in ``[start, end)``; ``end=None`` is unbounded."""
        pass

    @abstractmethod
    def _begin(self) -> None:
        pass

    @abstractmethod
    def _commit(self) -> None:
        pass

    @abstractmethod
    def _rollback(self) -> None:
        pass

    @contextmanager
    def transaction(self):
        """All-or-nothing scope; nested scopes join the outermost one."""
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self._begin()
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outermost:
                    self._rollback()
                    self._logger.debug("Transaction rolled back")
                raise
            else:
                self._depth -= 1
                if outermost:
                    self._commit()

    def has(self, key: bytes) -> bool:
        return self.get(key) is not None

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class MemoryBackend(StorageBackend):
    """In-process store kept in a sorted key list."""

    def __init__(self):
        super().__init__()
        self._data: Dict[bytes, bytes] = {}
        self._keys: List[bytes] = []
        self._snapshot: Optional[Tuple[Dict[bytes, bytes], List[bytes]]] = None

    def get(self, key: bytes) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: bytes, value: bytes) -> None:
        with self._lock:
            if key not in self._data:
                bisect.insort(self._keys, key)
            self._data[key] = value

    def delete(self, key: bytes) -> None:
        with self._lock:
            if key in self._data:
                del self._data[key]
                index = bisect.bisect_left(self._keys, key)
                del self._keys[index]

    def range(
        self, start: bytes, end: Optional[bytes], descending: bool = False
    ) -> Iterator[Tuple[bytes, bytes]]:
        with self._lock:
            lo = bisect.bisect_left(self._keys, start)
            hi = len(self._keys) if end is None else bisect.bisect_left(self._keys, end)
            keys = self._keys[lo:hi]
            items = [(key, self._data[key]) for key in keys]
        if descending:
            items.reverse()
        return iter(items)

    def _begin(self) -> None:
        self._snapshot = (dict(self._data), list(self._keys))

    def _commit(self) -> None:
        self._snapshot = None

    def _rollback(self) -> None:
        if self._snapshot is not None:
            self._data, self._keys = self._snapshot
            self._snapshot = None

    def __len__(self) -> int:
        return len(self._keys)


class SQLiteBackend(StorageBackend):
    """SQLite store with one ordered key-value table."""

    def __init__(self, config: Optional[StorageConfig] = None):
        super().__init__()
        self.config = config or StorageConfig()
        self._connection: Optional[sqlite3.Connection] = None

        if self.config.database_path != ":memory:":
            Path(self.config.database_path).parent.mkdir(parents=True, exist_ok=True)

        self.connect()

    def connect(self) -> None:
        """Open the database and create the table."""
        with self._lock:
            if self._connection is not None:
                return

            try:
                self._connection = sqlite3.connect(
                    self.config.database_path,
                    timeout=self.config.connection_timeout,
                    isolation_level=None,  # transactions are explicit
                    check_same_thread=False,
                )
                self._connection.execute(f"PRAGMA synchronous = {self.config.synchronous}")
                self._connection.execute(f"PRAGMA journal_mode = {self.config.journal_mode}")
                self._connection.execute(
                    "CREATE TABLE IF NOT EXISTS kv (key BLOB PRIMARY KEY, value BLOB NOT NULL) WITHOUT ROWID"
                )
                self._logger.info(f"Connected to SQLite database: {self.config.database_path}")
            except sqlite3.Error as e:
                raise StorageError(f"Failed to connect to database: {e}", cause=e)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                try:
                    self._connection.close()
                    self._connection = None
                    self._logger.info("Disconnected from SQLite database")
                except sqlite3.Error as e:
                    self._logger.error(f"Error closing database connection: {e}")

    def _conn(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StorageError("Database not connected")
        return self._connection

    def get(self, key: bytes) -> Optional[bytes]:
        try:
            row = self._conn().execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Read failed: {e}", key=key.hex(), cause=e)
        return bytes(row[0]) if row else None

    def set(self, key: bytes, value: bytes) -> None:
        try:
            self._conn().execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
        except sqlite3.Error as e:
            raise StorageError(f"Write failed: {e}", key=key.hex(), cause=e)

    def delete(self, key: bytes) -> None:
        try:
            self._conn().execute("DELETE FROM kv WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StorageError(f"Delete failed: {e}", key=key.hex(), cause=e)

    def range(
        self, start: bytes, end: Optional[bytes], descending: bool = False
    ) -> Iterator[Tuple[bytes, bytes]]:
        order = "DESC" if descending else "ASC"
        if end is None:
            query = f"SELECT key, value FROM kv WHERE key >= ? ORDER BY key {order}"
            params: Tuple[bytes, ...] = (start,)
        else:
            query = f"SELECT key, value FROM kv WHERE key >= ? AND key < ? ORDER BY key {order}"
            params = (start, end)
        try:
            rows = self._conn().execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Range query failed: {e}", cause=e)
        return iter([(bytes(k), bytes(v)) for k, v in rows])

    def _begin(self) -> None:
        self._conn().execute("BEGIN")

    def _commit(self) -> None:
        self._conn().execute("COMMIT")

    def _rollback(self) -> None:
        self._conn().execute("ROLLBACK")


def create_backend(config: Optional[VescrowConfig] = None) -> StorageBackend:
    """Create the backend selected by ``config.storage_backend``."""
    config = config or get_global_config()
    if config.storage_backend == "sqlite":
        return SQLiteBackend(StorageConfig(database_path=config.database_path))
    return MemoryBackend()

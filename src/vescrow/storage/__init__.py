"""
Storage layer for vescrow.

Ordered key-value backends (in-memory and SQLite) plus typed ``Item``,
``Map`` and ``PeriodMap`` views with msgpack-encoded values.
"""

from .backend import MemoryBackend, SQLiteBackend, StorageBackend, StorageConfig, create_backend
from .maps import BOOL, INT, STR, Bound, Codec, Item, Map, model_codec
from .period_map import PeriodMap

__all__ = [
    "StorageBackend",
    "MemoryBackend",
    "SQLiteBackend",
    "StorageConfig",
    "create_backend",
    "Codec",
    "INT",
    "STR",
    "BOOL",
    "model_codec",
    "Bound",
    "Item",
    "Map",
    "PeriodMap",
]

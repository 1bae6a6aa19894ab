"""
Period-indexed checkpoints.

A :class:`PeriodMap` stores a value per key only in the periods where it
changed. Reading a period returns the nearest checkpoint at or before it.
Writes are monotonic per key: a checkpoint can be rewritten in its own
period but never placed before the latest one.
"""

from typing import Any, Iterator, Optional, Sequence, Tuple, TypeVar

from ..errors.exceptions import ValidationError
from .backend import StorageBackend
from .maps import Bound, Codec, Map

V = TypeVar("V")


class PeriodMap:
    """Checkpointed values keyed by ``(*key, period)``."""

    def __init__(self, namespace: str, key_types: Sequence[type], codec: Codec):
        self.key_types = tuple(key_types)
        self._map = Map(namespace, self.key_types + (int,), codec)

    def _prefix(self, key) -> Tuple[Any, ...]:
        return key if isinstance(key, tuple) else (key,)

    def save(self, store: StorageBackend, key, period: int, value) -> None:
        last = self.fetch_last(store, key)
        if last is not None and last[0] > period:
            raise ValidationError(
                f"Checkpoint for {key} at period {period} precedes latest period {last[0]}",
                field="period",
                value=period,
            )
        self._map.save(store, self._prefix(key) + (period,), value)

    def load(self, store: StorageBackend, key, period: int):
        return self._map.load(store, self._prefix(key) + (period,))

    def may_load(self, store: StorageBackend, key, period: int):
        return self._map.may_load(store, self._prefix(key) + (period,))

    def remove(self, store: StorageBackend, key, period: int) -> None:
        self._map.remove(store, self._prefix(key) + (period,))

    def fetch_last(
        self, store: StorageBackend, key, period: Optional[int] = None
    ) -> Optional[Tuple[int, Any]]:
        """Nearest ``(period, value)`` at or before ``period`` (latest when omitted)."""
        max_bound = None if period is None else Bound.inclusive_of(period)
        for full_key, value in self._map.range(store, self._prefix(key), max=max_bound, descending=True):
            return full_key[-1], value
        return None

    def fetch_first(self, store: StorageBackend, key) -> Optional[Tuple[int, Any]]:
        for full_key, value in self._map.range(store, self._prefix(key)):
            return full_key[-1], value
        return None

    def get_latest_data(self, store: StorageBackend, key, period: int, default=None):
        """Value in effect at ``period``, or ``default`` when there is none."""
        last = self.fetch_last(store, key, period)
        return default if last is None else last[1]

    def range(
        self,
        store: StorageBackend,
        key,
        min: Optional[Bound] = None,
        max: Optional[Bound] = None,
        descending: bool = False,
    ) -> Iterator[Tuple[int, Any]]:
        for full_key, value in self._map.range(store, self._prefix(key), min=min, max=max, descending=descending):
            yield full_key[-1], value

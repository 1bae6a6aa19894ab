"""
Typed views over a :class:`StorageBackend`.

Keys are namespaced and composite: the namespace and every key part but the
last are length-prefixed, the last part is stored raw so that ordered range
scans over it work. Integers are encoded as 8-byte big-endian values. Values
are packed with msgpack after being converted to plain data by a
:class:`Codec`.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, Optional, Sequence, Tuple, Type, TypeVar

import msgpack

from ..errors.exceptions import NotFoundError, StorageError
from .backend import StorageBackend

V = TypeVar("V")

KeyPart = Any


class Codec(Generic[V]):
    """Converts values to and from msgpack-serializable data."""

    def __init__(self, dump: Callable[[V], Any], load: Callable[[Any], V]):
        self._dump = dump
        self._load = load

    def encode(self, value: V) -> bytes:
        return msgpack.packb(self._dump(value), use_bin_type=True)

    def decode(self, data: bytes) -> V:
        try:
            return self._load(msgpack.unpackb(data, raw=False))
        except (msgpack.UnpackException, ValueError, KeyError, TypeError) as e:
            raise StorageError(f"Failed to decode stored value: {e}", cause=e)


# Amounts may exceed 64 bits, so integers travel as strings.
INT = Codec(str, int)
STR = Codec(lambda v: v, str)
BOOL = Codec(bool, bool)


def model_codec(cls: Type[V]) -> Codec[V]:
    """Codec for classes exposing ``to_dict`` / ``from_dict``."""
    return Codec(lambda v: v.to_dict(), cls.from_dict)


def _encode_part(part: KeyPart) -> bytes:
    if isinstance(part, bool):
        raise StorageError(f"Unsupported key part: {part!r}")
    if isinstance(part, int):
        if part < 0 or part >= 2**64:
            raise StorageError(f"Integer key part out of range: {part}")
        return part.to_bytes(8, "big")
    if isinstance(part, str):
        return part.encode("utf-8")
    if isinstance(part, bytes):
        return part
    raise StorageError(f"Unsupported key part: {part!r}")


def _decode_part(data: bytes, key_type: type) -> KeyPart:
    if key_type is int:
        return int.from_bytes(data, "big")
    if key_type is str:
        return data.decode("utf-8")
    return data


def _length_prefixed(data: bytes) -> bytes:
    if len(data) > 0xFFFF:
        raise StorageError("Key part too long")
    return len(data).to_bytes(2, "big") + data


def _prefix_end(prefix: bytes) -> Optional[bytes]:
    """Smallest key greater than every key starting with ``prefix``."""
    data = bytearray(prefix)
    while data:
        if data[-1] < 0xFF:
            data[-1] += 1
            return bytes(data)
        data.pop()
    return None


@dataclass(frozen=True)
class Bound:
    """Range limit on the last key part."""

    value: KeyPart
    inclusive: bool = True

    @classmethod
    def inclusive_of(cls, value: KeyPart) -> "Bound":
        return cls(value, True)

    @classmethod
    def exclusive_of(cls, value: KeyPart) -> "Bound":
        return cls(value, False)


class Item(Generic[V]):
    """Single value stored under a namespace."""

    def __init__(self, namespace: str, codec: Codec[V]):
        self.namespace = namespace
        self.codec = codec
        self._key = namespace.encode("utf-8")

    def save(self, store: StorageBackend, value: V) -> None:
        store.set(self._key, self.codec.encode(value))

    def may_load(self, store: StorageBackend) -> Optional[V]:
        data = store.get(self._key)
        return None if data is None else self.codec.decode(data)

    def load(self, store: StorageBackend) -> V:
        value = self.may_load(store)
        if value is None:
            raise NotFoundError(self.namespace)
        return value

    def exists(self, store: StorageBackend) -> bool:
        return store.has(self._key)

    def remove(self, store: StorageBackend) -> None:
        store.delete(self._key)

    def update(self, store: StorageBackend, action: Callable[[Optional[V]], V]) -> V:
        value = action(self.may_load(store))
        self.save(store, value)
        return value


class Map(Generic[V]):
    """Mapping from (possibly composite) keys to values under a namespace.

    ``key_types`` lists the type of every key part. Single-part maps take and
    return scalar keys; composite maps take and return tuples.
    """

    def __init__(self, namespace: str, key_types: Sequence[type], codec: Codec[V]):
        if not key_types:
            raise StorageError("Map requires at least one key part")
        self.namespace = namespace
        self.key_types = tuple(key_types)
        self.codec = codec
        self._namespace_prefix = _length_prefixed(namespace.encode("utf-8"))

    def _parts(self, key) -> Tuple[KeyPart, ...]:
        parts = key if isinstance(key, tuple) else (key,)
        if len(parts) != len(self.key_types):
            raise StorageError(f"{self.namespace}: expected {len(self.key_types)} key parts, got {len(parts)}")
        return parts

    def _prefix_bytes(self, prefix: Tuple[KeyPart, ...]) -> bytes:
        return self._namespace_prefix + b"".join(_length_prefixed(_encode_part(p)) for p in prefix)

    def key_bytes(self, key) -> bytes:
        parts = self._parts(key)
        return self._prefix_bytes(parts[:-1]) + _encode_part(parts[-1])

    def _decode_key(self, raw: bytes, prefix: Tuple[KeyPart, ...]):
        suffix = raw[len(self._prefix_bytes(prefix)):]
        parts = list(prefix)
        remaining = self.key_types[len(prefix):]
        for key_type in remaining[:-1]:
            size = int.from_bytes(suffix[:2], "big")
            parts.append(_decode_part(suffix[2:2 + size], key_type))
            suffix = suffix[2 + size:]
        parts.append(_decode_part(suffix, remaining[-1]))
        return parts[0] if len(parts) == 1 else tuple(parts)

    def save(self, store: StorageBackend, key, value: V) -> None:
        store.set(self.key_bytes(key), self.codec.encode(value))

    def may_load(self, store: StorageBackend, key) -> Optional[V]:
        data = store.get(self.key_bytes(key))
        return None if data is None else self.codec.decode(data)

    def load(self, store: StorageBackend, key) -> V:
        value = self.may_load(store, key)
        if value is None:
            raise NotFoundError(f"{self.namespace} {key}")
        return value

    def has(self, store: StorageBackend, key) -> bool:
        return store.has(self.key_bytes(key))

    def remove(self, store: StorageBackend, key) -> None:
        store.delete(self.key_bytes(key))

    def update(self, store: StorageBackend, key, action: Callable[[Optional[V]], V]) -> V:
        value = action(self.may_load(store, key))
        self.save(store, key, value)
        return value

    def range(
        self,
        store: StorageBackend,
        prefix: Tuple[KeyPart, ...] = (),
        min: Optional[Bound] = None,
        max: Optional[Bound] = None,
        descending: bool = False,
    ) -> Iterator[Tuple[Any, V]]:
        """Iterate ``(key, value)`` pairs under ``prefix``.

        Bounds apply to the last key part and require ``prefix`` to fix every
        other part.
        """
        if len(prefix) >= len(self.key_types):
            raise StorageError(f"{self.namespace}: prefix must leave at least one key part open")
        if (min is not None or max is not None) and len(prefix) != len(self.key_types) - 1:
            raise StorageError(f"{self.namespace}: bounds need a prefix covering all but the last key part")

        base = self._prefix_bytes(prefix)
        if min is None:
            start = base
        elif min.inclusive:
            start = base + _encode_part(min.value)
        else:
            start = base + _encode_part(min.value) + b"\x00"

        if max is None:
            end = _prefix_end(base)
        elif max.inclusive:
            end = base + _encode_part(max.value) + b"\x00"
        else:
            end = base + _encode_part(max.value)

        for raw_key, raw_value in store.range(start, end, descending):
            yield self._decode_key(raw_key, prefix), self.codec.decode(raw_value)

    def keys(self, store: StorageBackend, prefix: Tuple[KeyPart, ...] = (), **kwargs) -> Iterator[Any]:
        for key, _ in self.range(store, prefix, **kwargs):
            yield key

    def prefix_keys(self, store: StorageBackend, prefix: Tuple[KeyPart, ...]) -> Iterator[KeyPart]:
        """Iterate the last key part of entries under a full prefix."""
        for key, _ in self.range(store, prefix):
            yield key[-1] if isinstance(key, tuple) else key

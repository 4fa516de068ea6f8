"""Bloom filters stored whole under a key."""

import hashlib
import math
import struct
from typing import Iterable, List, Optional

from .collection import Collection
from .errors import AlreadyExistsError, InvalidArgumentError, NotFoundError
from .locks import DEFAULT_LOCKS, KeyLocks, LockType
from .page import PageIndex
from .row import DataType, Row
from .store import Store

__all__ = ["BloomFilter", "BloomFilterService"]

_HEADER = struct.Struct("<QQ")
_LN2 = math.log(2)


class BloomFilter:
    """A bit array probed by ``k`` hashes of each value."""

    def __init__(self, n: int, p: float) -> None:
        if n < 1:
            raise InvalidArgumentError("n must be at least 1")
        if not 0.0 < p < 1.0:
            raise InvalidArgumentError("p must lie strictly between 0 and 1")
        m = max(1, math.ceil(-n * math.log(p) / (_LN2 * _LN2)))
        k = max(1, math.ceil(_LN2 * m / n))
        self._init(m, k, bytearray((m + 7) // 8))

    def _init(self, m: int, k: int, bits: bytearray) -> None:
        self.m = m
        self.k = k
        self._bits = bits

    def _positions(self, value: bytes) -> Iterable[int]:
        digest = hashlib.blake2b(bytes(value), digest_size=16).digest()
        first = int.from_bytes(digest[:8], "little")
        second = int.from_bytes(digest[8:], "little") | 1
        return ((first + i * second) % self.m for i in range(self.k))

    def add(self, value: bytes) -> None:
        """Record ``value`` in the filter."""
        for pos in self._positions(value):
            self._bits[pos >> 3] |= 1 << (pos & 7)

    def check(self, value: bytes) -> bool:
        """False if ``value`` was never added; true if it probably was."""
        return all(self._bits[pos >> 3] & (1 << (pos & 7)) for pos in self._positions(value))

    def to_bytes(self) -> bytes:
        return _HEADER.pack(self.m, self.k) + bytes(self._bits)

    @classmethod
    def from_bytes(cls, data: bytes) -> "BloomFilter":
        data = bytes(data)
        if len(data) < _HEADER.size:
            raise ValueError("bloom filter data is truncated")
        m, k = _HEADER.unpack_from(data)
        bits = bytearray(data[_HEADER.size:])
        if m < 1 or k < 1 or len(bits) != (m + 7) // 8:
            raise ValueError("malformed bloom filter data")
        bloom = cls.__new__(cls)
        bloom._init(m, k, bits)
        return bloom


class BloomFilterService:
    """Create, fill and query Bloom filters addressed by key."""

    def __init__(self, store: Store, locks: Optional[KeyLocks] = None) -> None:
        self._store = store
        self._collection = Collection(store, DataType.BLOOM_FILTER)
        self._page = PageIndex(store)
        self._locks = locks if locks is not None else DEFAULT_LOCKS

    def _load(self, key: bytes, batch=None) -> BloomFilter:
        row = self._collection.get_row_by_id(key, key, batch)
        if row is None:
            raise NotFoundError("not found bloom filter, please create it")
        return BloomFilter.from_bytes(row.value)

    def create(self, key: bytes, n: int, p: float) -> None:
        """Create an empty filter sized for ``n`` values at false-positive rate ``p``."""
        with self._locks.locker(LockType.BLOOM_FILTER, key), self._store.new_batch() as batch:
            if self._collection.exist_row_by_id(key, key):
                raise AlreadyExistsError("bloom filter exist, please delete it or change other")
            bloom = BloomFilter(n, p)
            self._collection.upsert_row(Row(key=key, id=key, value=bloom.to_bytes()), batch)
            self._page.add(DataType.BLOOM_FILTER, key, batch)
            batch.commit()

    def delete(self, key: bytes) -> None:
        """Remove the filter."""
        with self._locks.locker(LockType.BLOOM_FILTER, key), self._store.new_batch() as batch:
            self._collection.del_row_by_id(key, key, batch)
            self._page.delete(DataType.BLOOM_FILTER, key, batch)
            batch.commit()

    def add(self, key: bytes, values: Iterable[bytes]) -> None:
        """Record each of ``values`` in the filter."""
        with self._locks.locker(LockType.BLOOM_FILTER, key), self._store.new_batch() as batch:
            bloom = self._load(key, batch)
            for value in values:
                bloom.add(value)
            self._collection.upsert_row(Row(key=key, id=key, value=bloom.to_bytes()), batch)
            batch.commit()

    def exist(self, key: bytes, values: Iterable[bytes]) -> List[bool]:
        """Whether each of ``values`` was probably added."""
        bloom = self._load(key)
        return [bloom.check(value) for value in values]
"""HyperLogLog cardinality sketches stored under a key."""

import hashlib
import math
from collections import Counter
from typing import Iterable, Optional

from .collection import Collection
from .errors import AlreadyExistsError, NotFoundError
from .locks import DEFAULT_LOCKS, KeyLocks, LockType
from .page import PageIndex
from .row import DataType, Row
from .store import Store

__all__ = ["HyperLogLog", "HyperLogLogService"]

_MIN_PRECISION = 4
_MAX_PRECISION = 18


class HyperLogLog:
    """A dense sketch with ``2**precision`` registers and a 64-bit hash."""

    def __init__(self, precision: int = 16) -> None:
        if not _MIN_PRECISION <= precision <= _MAX_PRECISION:
            raise ValueError(
                f"precision must be between {_MIN_PRECISION} and {_MAX_PRECISION}"
            )
        self.precision = precision
        self._registers = bytearray(1 << precision)

    def insert(self, value: bytes) -> bool:
        """Add ``value``; return whether the sketch changed."""
        digest = hashlib.blake2b(bytes(value), digest_size=8).digest()
        hashed = int.from_bytes(digest, "big")
        width = 64 - self.precision
        index = hashed >> width
        rest = hashed & ((1 << width) - 1)
        rank = width - rest.bit_length() + 1
        if rank > self._registers[index]:
            self._registers[index] = rank
            return True
        return False

    def estimate(self) -> int:
        """Estimated number of distinct values inserted."""
        m = len(self._registers)
        counts = Counter(self._registers)
        harmonic = sum(count * 2.0 ** -rank for rank, count in counts.items())
        alpha = 0.7213 / (1 + 1.079 / m)
        estimate = alpha * m * m / harmonic
        zeros = counts.get(0, 0)
        if estimate <= 2.5 * m and zeros:
            estimate = m * math.log(m / zeros)
        return int(estimate)

    def to_bytes(self) -> bytes:
        return bytes([self.precision]) + bytes(self._registers)

    @classmethod
    def from_bytes(cls, data: bytes) -> "HyperLogLog":
        data = bytes(data)
        if not data:
            raise ValueError("hyperloglog data is empty")
        sketch = cls(data[0])
        if len(data) - 1 != len(sketch._registers):
            raise ValueError("malformed hyperloglog data")
        sketch._registers = bytearray(data[1:])
        return sketch


class HyperLogLogService:
    """Create, fill and count HyperLogLog sketches addressed by key."""

    def __init__(self, store: Store, locks: Optional[KeyLocks] = None) -> None:
        self._store = store
        self._collection = Collection(store, DataType.HYPER_LOG_LOG)
        self._page = PageIndex(store)
        self._locks = locks if locks is not None else DEFAULT_LOCKS

    def _load(self, key: bytes, batch=None) -> HyperLogLog:
        row = self._collection.get_row_by_id(key, key, batch)
        if row is None:
            raise NotFoundError("not found hyper log log, please create it")
        return HyperLogLog.from_bytes(row.value)

    def create(self, key: bytes) -> None:
        """Create an empty sketch."""
        with self._locks.locker(LockType.HYPER_LOG_LOG, key), self._store.new_batch() as batch:
            if self._collection.exist_row_by_id(key, key):
                raise AlreadyExistsError("hyper log log exist, please delete it or change other")
            self._collection.upsert_row(
                Row(key=key, id=key, value=HyperLogLog().to_bytes()), batch
            )
            self._page.add(DataType.HYPER_LOG_LOG, key, batch)
            batch.commit()

    def delete(self, key: bytes) -> None:
        """Remove the sketch."""
        with self._locks.locker(LockType.HYPER_LOG_LOG, key), self._store.new_batch() as batch:
            self._collection.del_row_by_id(key, key, batch)
            self._page.delete(DataType.HYPER_LOG_LOG, key, batch)
            batch.commit()

    def add(self, key: bytes, values: Iterable[bytes]) -> None:
        """Insert each of ``values`` into the sketch."""
        with self._locks.locker(LockType.HYPER_LOG_LOG, key), self._store.new_batch() as batch:
            sketch = self._load(key, batch)
            for value in values:
                sketch.insert(value)
            self._collection.upsert_row(Row(key=key, id=key, value=sketch.to_bytes()), batch)
            batch.commit()

    def count(self, key: bytes) -> int:
        """Estimated number of distinct values added."""
        return self._load(key).estimate()
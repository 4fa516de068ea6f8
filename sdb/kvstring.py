"""Plain byte-string values addressed by key."""

import re
from typing import Iterable, List, Optional

from .collection import Collection
from .errors import InvalidArgumentError
from .locks import DEFAULT_LOCKS, KeyLocks, LockType
from .page import PageIndex
from .row import DataType, Row
from .store import Batch, Store

__all__ = ["StringService"]

_INTEGER = re.compile(rb"[+-]?[0-9]+")


class StringService:
    """Set, read, delete and increment string values."""

    def __init__(self, store: Store, locks: Optional[KeyLocks] = None) -> None:
        self._store = store
        self._collection = Collection(store, DataType.STRING)
        self._page = PageIndex(store)
        self._locks = locks if locks is not None else DEFAULT_LOCKS

    def _put(self, key: bytes, value: bytes, batch: Batch) -> None:
        self._collection.upsert_row(Row(key=key, id=key, value=value), batch)
        self._page.add(DataType.STRING, key, batch)

    def set(self, key: bytes, value: bytes) -> None:
        """Store ``value`` under ``key``, replacing any earlier value."""
        with self._store.new_batch() as batch:
            self._put(key, value, batch)
            batch.commit()

    def mset(self, keys: Iterable[bytes], values: Iterable[bytes]) -> None:
        """Store each value under the key at the same position, all at once."""
        keys, values = list(keys), list(values)
        if len(keys) != len(values):
            raise InvalidArgumentError("keys and values differ in length")
        with self._store.new_batch() as batch:
            for key, value in zip(keys, values):
                self._put(key, value, batch)
            batch.commit()

    def setnx(self, key: bytes, value: bytes) -> bool:
        """Store ``value`` only if ``key`` has none; return whether it was stored."""
        with self._store.new_batch() as batch:
            if self._collection.exist_row_by_id(key, key):
                return False
            self._put(key, value, batch)
            batch.commit()
            return True

    def get(self, key: bytes) -> Optional[bytes]:
        """The value of ``key``, or ``None`` if it has none."""
        row = self._collection.get_row_by_id(key, key)
        return None if row is None else row.value

    def mget(self, keys: Iterable[bytes]) -> List[Optional[bytes]]:
        """The value of each key, ``None`` where a key has none."""
        return [self.get(key) for key in keys]

    def delete(self, key: bytes) -> None:
        """Remove the value of ``key``."""
        with self._store.new_batch() as batch:
            self._collection.del_row_by_id(key, key, batch)
            self._page.delete(DataType.STRING, key, batch)
            batch.commit()

    def incr(self, key: bytes, delta: int) -> int:
        """Add ``delta`` to the decimal integer under ``key`` (missing counts as 0)."""
        with self._locks.locker(LockType.STRING, key), self._store.new_batch() as batch:
            row = self._collection.get_row_by_id(key, key, batch)
            current = 0
            if row is not None:
                if not _INTEGER.fullmatch(row.value):
                    raise InvalidArgumentError(f"value of {key!r} is not an integer")
                current = int(row.value)
            result = current + int(delta)
            self._put(key, str(result).encode(), batch)
            batch.commit()
            return result
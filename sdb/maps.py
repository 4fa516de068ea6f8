"""Maps from byte keys to byte values, stored under an outer key."""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .collection import Collection
from .locks import DEFAULT_LOCKS, KeyLocks, LockType
from .page import PageIndex
from .row import DataType, Row
from .store import Store

__all__ = ["Pair", "MapService"]


@dataclass(frozen=True)
class Pair:
    key: bytes
    value: bytes


class MapService:
    """Put, remove and read entries of maps."""

    def __init__(self, store: Store, locks: Optional[KeyLocks] = None) -> None:
        self._store = store
        self._collection = Collection(store, DataType.MAP)
        self._page = PageIndex(store)
        self._locks = locks if locks is not None else DEFAULT_LOCKS

    def push(self, key: bytes, pairs: Iterable[Pair]) -> None:
        """Put each pair into the map, replacing entries with the same key."""
        with self._locks.locker(LockType.MAP, key), self._store.new_batch() as batch:
            for pair in pairs:
                self._collection.upsert_row(Row(key=key, id=pair.key, value=pair.value), batch)
                self._page.add(DataType.MAP, key, batch)
            batch.commit()

    def pop(self, key: bytes, keys: Iterable[bytes]) -> None:
        """Remove the entries of ``keys``; absent ones are ignored."""
        with self._locks.locker(LockType.MAP, key), self._store.new_batch() as batch:
            for entry_key in keys:
                self._collection.del_row_by_id(key, entry_key, batch)
            if not self._collection.page(key, 0, 1, batch):
                self._page.delete(DataType.MAP, key, batch)
            batch.commit()

    def exist(self, key: bytes, keys: Iterable[bytes]) -> List[bool]:
        """Whether each of ``keys`` has an entry."""
        return [self._collection.exist_row_by_id(key, entry_key) for entry_key in keys]

    def delete(self, key: bytes) -> None:
        """Remove the whole map."""
        with self._locks.locker(LockType.MAP, key), self._store.new_batch() as batch:
            self._collection.del_all(key, batch)
            self._page.delete(DataType.MAP, key, batch)
            batch.commit()

    def count(self, key: bytes) -> int:
        """Number of entries."""
        return self._collection.count(key)

    def members(self, key: bytes) -> List[Pair]:
        """All entries in key order."""
        return [Pair(key=row.id, value=row.value) for row in self._collection.page(key)]
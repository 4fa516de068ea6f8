"""Sets of distinct byte values."""

from typing import Iterable, List, Optional

from .collection import Collection
from .locks import DEFAULT_LOCKS, KeyLocks, LockType
from .page import PageIndex
from .row import DataType, Row
from .store import Store

__all__ = ["SetService"]


class SetService:
    """Add, remove and test members of sets."""

    def __init__(self, store: Store, locks: Optional[KeyLocks] = None) -> None:
        self._store = store
        self._collection = Collection(store, DataType.SET)
        self._page = PageIndex(store)
        self._locks = locks if locks is not None else DEFAULT_LOCKS

    def push(self, key: bytes, values: Iterable[bytes]) -> None:
        """Add each of ``values``; values already present stay once."""
        with self._locks.locker(LockType.SET, key), self._store.new_batch() as batch:
            for value in values:
                self._collection.upsert_row(Row(key=key, id=value, value=value), batch)
                self._page.add(DataType.SET, key, batch)
            batch.commit()

    def pop(self, key: bytes, values: Iterable[bytes]) -> None:
        """Remove each of ``values``; absent ones are ignored."""
        with self._locks.locker(LockType.SET, key), self._store.new_batch() as batch:
            for value in values:
                self._collection.del_row_by_id(key, value, batch)
            if not self._collection.page(key, 0, 1, batch):
                self._page.delete(DataType.SET, key, batch)
            batch.commit()

    def exist(self, key: bytes, values: Iterable[bytes]) -> List[bool]:
        """Whether each of ``values`` is a member."""
        return [self._collection.exist_row_by_id(key, value) for value in values]

    def delete(self, key: bytes) -> None:
        """Remove the whole set."""
        with self._locks.locker(LockType.SET, key), self._store.new_batch() as batch:
            self._collection.del_all(key, batch)
            self._page.delete(DataType.SET, key, batch)
            batch.commit()

    def count(self, key: bytes) -> int:
        """Number of members."""
        return self._collection.count(key)

    def members(self, key: bytes) -> List[bytes]:
        """All members in byte order."""
        return [row.value for row in self._collection.page(key)]
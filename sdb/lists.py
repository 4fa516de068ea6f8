"""Lists kept in push order, allowing repeated values."""

from typing import Callable, Iterable, List, Optional, Tuple

from .collection import Collection
from .locks import DEFAULT_LOCKS, KeyLocks, LockType
from .page import PageIndex
from .row import DataType, Index, Row
from .store import Store
from .util import next_ordering_key

__all__ = ["ListService"]

_MAX_INT64 = (1 << 63) - 1
_SCORE = b"score"
_VALUE = b"value"


def _score(number: int) -> bytes:
    return f"{number:64d}".encode()


def _indexes(score: bytes, value: bytes) -> Tuple[Index, ...]:
    return (Index(_SCORE, score), Index(_VALUE, value))


class ListService:
    """Push to either end, remove by value and read ranges of lists."""

    def __init__(self, store: Store, locks: Optional[KeyLocks] = None) -> None:
        self._store = store
        self._collection = Collection(store, DataType.LIST)
        self._page = PageIndex(store)
        self._locks = locks if locks is not None else DEFAULT_LOCKS

    def _push(self, key: bytes, values: Iterable[bytes], order: Callable[[], int]) -> None:
        with self._locks.locker(LockType.LIST, key), self._store.new_batch() as batch:
            for value in values:
                value = bytes(value)
                score = _score(order())
                self._collection.upsert_row(
                    Row(
                        key=key,
                        id=value + b":" + score,
                        value=value,
                        indexes=_indexes(score, value),
                    ),
                    batch,
                )
                self._page.add(DataType.LIST, key, batch)
            batch.commit()

    def rpush(self, key: bytes, values: Iterable[bytes]) -> None:
        """Append ``values`` to the end, in order."""
        self._push(key, values, next_ordering_key)

    def lpush(self, key: bytes, values: Iterable[bytes]) -> None:
        """Prepend each of ``values`` in turn to the front."""
        self._push(key, values, lambda: -(_MAX_INT64 - next_ordering_key()))

    def pop(self, key: bytes, values: Iterable[bytes]) -> None:
        """Remove every occurrence of each of ``values``."""
        with self._locks.locker(LockType.LIST, key), self._store.new_batch() as batch:
            for value in values:
                for row in self._collection.index_value_page(key, _VALUE, value):
                    self._collection.del_row_by_id(key, row.id, batch)
            if not self._collection.page(key, 0, 1, batch):
                self._page.delete(DataType.LIST, key, batch)
            batch.commit()

    def range(self, key: bytes, offset: int = 0, limit: int = 0) -> List[bytes]:
        """Values from ``offset``; a negative offset counts from the end backwards."""
        return [row.value for row in self._collection.index_page(key, _SCORE, offset, limit)]

    def exist(self, key: bytes, values: Iterable[bytes]) -> List[bool]:
        """Whether each of ``values`` occurs in the list."""
        return [
            bool(self._collection.index_value_page(key, _VALUE, value, 0, 1))
            for value in values
        ]

    def delete(self, key: bytes) -> None:
        """Remove the whole list."""
        with self._locks.locker(LockType.LIST, key), self._store.new_batch() as batch:
            self._collection.del_all(key, batch)
            self._page.delete(DataType.LIST, key, batch)
            batch.commit()

    def count(self, key: bytes) -> int:
        """Number of elements in the list."""
        return self._collection.count(key)

    def members(self, key: bytes) -> List[bytes]:
        """All values in list order."""
        return self.range(key)
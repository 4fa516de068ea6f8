"""Sets of values ordered by a score."""

import math
import struct
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .collection import Collection
from .locks import DEFAULT_LOCKS, KeyLocks, LockType
from .page import PageIndex
from .row import DataType, Index, Row
from .store import Store

__all__ = ["ScoredValue", "SortedSetService"]

_SCORE = b"score"
_VALUE = b"value"
_DOUBLE = struct.Struct("<d")


@dataclass(frozen=True)
class ScoredValue:
    value: bytes
    score: float


def _format_score(score: float) -> bytes:
    if math.isnan(score):
        return b"NaN"
    if math.isinf(score):
        return b"+Inf" if score > 0 else b"-Inf"
    return f"{score:f}".encode()


def _encode(item: ScoredValue) -> bytes:
    return _DOUBLE.pack(float(item.score)) + bytes(item.value)


def _decode(raw: bytes) -> ScoredValue:
    if len(raw) < _DOUBLE.size:
        raise ValueError("malformed scored value")
    return ScoredValue(value=raw[_DOUBLE.size:], score=_DOUBLE.unpack_from(raw)[0])


def _indexes(score: bytes, value: bytes) -> Tuple[Index, ...]:
    return (Index(_SCORE, score), Index(_VALUE, value))


class SortedSetService:
    """Add, remove and read ranges of scored values.

    Order follows the decimal text of the score, so it matches numeric order
    for non-negative scores below ten.
    """

    def __init__(self, store: Store, locks: Optional[KeyLocks] = None) -> None:
        self._store = store
        self._collection = Collection(store, DataType.SORTED_SET)
        self._page = PageIndex(store)
        self._locks = locks if locks is not None else DEFAULT_LOCKS

    def push(self, key: bytes, tuples: Iterable[ScoredValue]) -> None:
        """Add each scored value; a value already present takes the new score."""
        with self._locks.locker(LockType.SORTED_SET, key), self._store.new_batch() as batch:
            for item in tuples:
                value = bytes(item.value)
                self._collection.upsert_row(
                    Row(
                        key=key,
                        id=value,
                        value=_encode(item),
                        indexes=_indexes(_format_score(float(item.score)), value),
                    ),
                    batch,
                )
                self._page.add(DataType.SORTED_SET, key, batch)
            batch.commit()

    def pop(self, key: bytes, values: Iterable[bytes]) -> None:
        """Remove each of ``values``; absent ones are ignored."""
        with self._locks.locker(LockType.SORTED_SET, key), self._store.new_batch() as batch:
            for value in values:
                for row in self._collection.index_value_page(key, _VALUE, value):
                    self._collection.del_row_by_id(key, row.id, batch)
            if not self._collection.page(key, 0, 1, batch):
                self._page.delete(DataType.SORTED_SET, key, batch)
            batch.commit()

    def range(self, key: bytes, offset: int = 0, limit: int = 0) -> List[ScoredValue]:
        """Scored values by score from ``offset``; a negative offset walks backwards."""
        return [
            _decode(row.value)
            for row in self._collection.index_page(key, _SCORE, offset, limit)
        ]

    def exist(self, key: bytes, values: Iterable[bytes]) -> List[bool]:
        """Whether each of ``values`` is a member."""
        return [bool(self._collection.index_value_page(key, _VALUE, value)) for value in values]

    def delete(self, key: bytes) -> None:
        """Remove the whole sorted set."""
        with self._locks.locker(LockType.SORTED_SET, key), self._store.new_batch() as batch:
            self._collection.del_all(key, batch)
            self._page.delete(DataType.SORTED_SET, key, batch)
            batch.commit()

    def count(self, key: bytes) -> int:
        """Number of members."""
        return self._collection.count(key)

    def members(self, key: bytes) -> List[ScoredValue]:
        """All scored values ordered by score."""
        return self.range(key)
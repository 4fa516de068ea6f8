"""Bitsets stored in fixed-size chunks of bits."""

from typing import Dict, Iterable, List, Optional

from .collection import Collection
from .errors import InvalidArgumentError
from .locks import DEFAULT_LOCKS, KeyLocks, LockType
from .page import PageIndex
from .row import DataType, Row
from .store import Batch, Store
from .util import uint32_to_bytes

__all__ = ["BitsetService", "CHUNK_BITS"]

CHUNK_BITS = 4096
_CHUNK_BYTES = CHUNK_BITS // 8
_MAX_BIT = 0xFFFFFFFF


def _check_bit(bit: int) -> int:
    if not 0 <= bit <= _MAX_BIT:
        raise InvalidArgumentError(f"bit {bit} does not fit in uint32")
    return bit


def _is_set(chunk: bytearray, offset: int) -> bool:
    return bool(chunk[offset >> 3] & (1 << (offset & 7)))


def _set_to(chunk: bytearray, offset: int, value: bool) -> None:
    mask = 1 << (offset & 7)
    if value:
        chunk[offset >> 3] |= mask
    else:
        chunk[offset >> 3] &= ~mask & 0xFF


class BitsetService:
    """Set, read and count bits of bitsets addressed by key."""

    def __init__(self, store: Store, locks: Optional[KeyLocks] = None) -> None:
        self._store = store
        self._collection = Collection(store, DataType.BITSET)
        self._page = PageIndex(store)
        self._locks = locks if locks is not None else DEFAULT_LOCKS

    def _load(
        self, key: bytes, bits: Iterable[int], batch: Optional[Batch] = None
    ) -> Dict[int, bytearray]:
        chunks: Dict[int, bytearray] = {}
        for bit in bits:
            chunk_id = bit // CHUNK_BITS
            if chunk_id not in chunks:
                row = self._collection.get_row_by_id(key, uint32_to_bytes(chunk_id), batch)
                if row is None:
                    chunks[chunk_id] = bytearray(_CHUNK_BYTES)
                else:
                    chunks[chunk_id] = bytearray(row.value.ljust(_CHUNK_BYTES, b"\0"))
        return chunks

    def _write(self, key: bytes, bits: List[int], value: bool) -> None:
        with self._locks.locker(LockType.BITSET, key), self._store.new_batch() as batch:
            chunks = self._load(key, bits, batch)
            for bit in bits:
                _set_to(chunks[bit // CHUNK_BITS], bit % CHUNK_BITS, value)
            for chunk_id, chunk in chunks.items():
                self._collection.upsert_row(
                    Row(key=key, id=uint32_to_bytes(chunk_id), value=bytes(chunk)), batch
                )
            batch.commit()

    def _read(self, key: bytes, bits: List[int]) -> List[bool]:
        chunks = self._load(key, bits)
        return [_is_set(chunks[bit // CHUNK_BITS], bit % CHUNK_BITS) for bit in bits]

    def delete(self, key: bytes) -> None:
        """Remove the whole bitset."""
        with self._locks.locker(LockType.BITSET, key), self._store.new_batch() as batch:
            self._collection.del_all(key, batch)
            self._page.delete(DataType.BITSET, key, batch)
            batch.commit()

    def set_range(self, key: bytes, start: int, end: int, value: bool) -> None:
        """Set bits ``start`` up to but not including ``end`` to ``value``."""
        _check_bit(start)
        _check_bit(end)
        self._write(key, list(range(start, end)), bool(value))

    def mset(self, key: bytes, bits: Iterable[int], value: bool) -> None:
        """Set each of ``bits`` to ``value``."""
        self._write(key, [_check_bit(bit) for bit in bits], bool(value))

    def get_range(self, key: bytes, start: int, end: int) -> List[bool]:
        """Return bits ``start`` up to but not including ``end``."""
        _check_bit(start)
        _check_bit(end)
        if end < start:
            raise InvalidArgumentError("end must not be less than start")
        return self._read(key, list(range(start, end)))

    def mget(self, key: bytes, bits: Iterable[int]) -> List[bool]:
        """Return the value of each of ``bits`` in the given order."""
        return self._read(key, [_check_bit(bit) for bit in bits])

    def count(self, key: bytes) -> int:
        """Number of set bits in the whole bitset."""
        return sum(
            int.from_bytes(row.value, "little").bit_count()
            for row in self._collection.page(key)
        )

    def count_range(self, key: bytes, start: int, end: int) -> int:
        """Number of set bits from ``start`` up to but not including ``end``."""
        _check_bit(start)
        _check_bit(end)
        return sum(self._read(key, list(range(start, end))))
"""Striped per-key locks for write operations on each data type."""

import enum
import threading
from typing import Dict, List, Optional, Union

__all__ = ["LockType", "KeyLocks", "crc16_ibm", "DEFAULT_LOCKS"]


class LockType(enum.IntEnum):
    STRING = 0x0
    LIST = 0x1
    SET = 0x2
    SORTED_SET = 0x3
    BLOOM_FILTER = 0x4
    HYPER_LOG_LOG = 0x5
    BITSET = 0x6
    MAP = 0x7
    GEO_HASH = 0x8


def _make_table() -> List[int]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            crc = (crc >> 1) ^ 0xA001 if crc & 1 else crc >> 1
        table.append(crc)
    return table


_TABLE = _make_table()


def crc16_ibm(data: bytes) -> int:
    """CRC-16 with the reflected IBM polynomial, initial value zero."""
    crc = 0
    for byte in bytes(data):
        crc = _TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc


class KeyLocks:
    """A fixed number of locks per data type, chosen by the key's checksum."""

    DEFAULT_COUNT = 16

    def __init__(self, counts: Optional[Dict[LockType, int]] = None) -> None:
        counts = counts or {}
        self._lockers: Dict[LockType, List[threading.Lock]] = {}
        for lock_type in LockType:
            count = counts.get(lock_type, self.DEFAULT_COUNT)
            if count < 1:
                raise ValueError(f"lock count for {lock_type.name} must be positive")
            self._lockers[lock_type] = [threading.Lock() for _ in range(count)]

    def locker(self, lock_type: Union[LockType, int], key: bytes) -> threading.Lock:
        """Return the lock guarding ``key`` for ``lock_type``."""
        stripes = self._lockers[LockType(lock_type)]
        return stripes[crc16_ibm(key) % len(stripes)]


DEFAULT_LOCKS = KeyLocks()
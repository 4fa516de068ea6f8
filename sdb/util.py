"""Byte encodings, logging and ordering keys."""

import logging
import struct
import sys
import threading
import time

__all__ = [
    "int32_to_bytes",
    "uint32_to_bytes",
    "uint64_to_bytes",
    "bytes_to_uint64",
    "get_logger",
    "Snowflake",
    "next_ordering_key",
]

_UINT32 = struct.Struct("<I")
_UINT64 = struct.Struct("<Q")


def int32_to_bytes(value: int) -> bytes:
    """Encode a signed 32-bit integer as four little-endian bytes."""
    if not -(1 << 31) <= value < (1 << 31):
        raise ValueError(f"{value} does not fit in int32")
    return _UINT32.pack(value & 0xFFFFFFFF)


def uint32_to_bytes(value: int) -> bytes:
    """Encode an unsigned 32-bit integer as four little-endian bytes."""
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"{value} does not fit in uint32")
    return _UINT32.pack(value)


def uint64_to_bytes(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as eight little-endian bytes."""
    if not 0 <= value <= 0xFFFFFFFFFFFFFFFF:
        raise ValueError(f"{value} does not fit in uint64")
    return _UINT64.pack(value)


def bytes_to_uint64(data: bytes) -> int:
    """Decode the first eight little-endian bytes of ``data``."""
    if len(data) < 8:
        raise ValueError(f"need 8 bytes, got {len(data)}")
    return _UINT64.unpack_from(data)[0]


class _StdoutHandler(logging.Handler):
    """A handler that always writes to the current ``sys.stdout``."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            stream = sys.stdout
            stream.write(self.format(record) + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)


def get_logger(name: str) -> logging.Logger:
    """Return a logger writing ``name:  <time> <file:line>: message`` to stdout."""
    logger = logging.getLogger(name)
    if not any(isinstance(h, _StdoutHandler) for h in logger.handlers):
        handler = _StdoutHandler()
        handler.setFormatter(
            logging.Formatter(
                f"{name}:  %(asctime)s.%(msecs)03d %(filename)s:%(lineno)d: %(message)s",
                datefmt="%Y/%m/%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


class Snowflake:
    """Time-ordered 63-bit identifiers: 41 bits of milliseconds, 10 of node, 12 of step."""

    EPOCH_MS = 1288834974657
    NODE_BITS = 10
    STEP_BITS = 12

    def __init__(self, node: int) -> None:
        max_node = (1 << self.NODE_BITS) - 1
        if not 0 <= node <= max_node:
            raise ValueError(f"node number must be between 0 and {max_node}")
        self.node = node
        self._lock = threading.Lock()
        self._time = 0
        self._step = 0

    @classmethod
    def _now(cls) -> int:
        return time.time_ns() // 1_000_000 - cls.EPOCH_MS

    def generate(self) -> int:
        """Return the next identifier; identifiers from one generator strictly increase."""
        step_mask = (1 << self.STEP_BITS) - 1
        with self._lock:
            now = max(self._now(), self._time)
            if now == self._time:
                self._step = (self._step + 1) & step_mask
                if self._step == 0:
                    while now <= self._time:
                        now = self._now()
            else:
                self._step = 0
            self._time = now
            return (
                (now << (self.NODE_BITS + self.STEP_BITS))
                | (self.node << self.STEP_BITS)
                | self._step
            )


_ORDERING = Snowflake(1)


def next_ordering_key() -> int:
    """Return a process-wide increasing ordering key."""
    return _ORDERING.generate()
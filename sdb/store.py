"""Storage engines, the committed write log and read-your-writes batches."""

import enum
import os
import threading
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

import lmdb
from sortedcontainers import SortedDict

from .config import Config
from .util import bytes_to_uint64, get_logger, uint64_to_bytes

__all__ = [
    "Op",
    "LogEntry",
    "MemoryEngine",
    "LmdbEngine",
    "Store",
    "Batch",
    "open_store",
]

_logger = get_logger("store")
_LAST_APPLY_INDEX_KEY = b"last_apply_index_key"
_DISK_ENGINES = ("lmdb", "pebble", "badger", "level")


class Op(enum.Enum):
    SET = "set"
    DEL = "del"


@dataclass(frozen=True)
class LogEntry:
    op: Op
    key: bytes
    value: bytes = b""


class MemoryEngine:
    """An ordered in-memory key-value engine."""

    def __init__(self) -> None:
        self._data: SortedDict = SortedDict()
        self._lock = threading.RLock()
        self._closed = False

    def _check(self) -> None:
        if self._closed:
            raise ValueError("engine is closed")

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            self._check()
            return self._data.get(bytes(key))

    def scan(self, prefix: bytes, reverse: bool = False) -> Iterator[Tuple[bytes, bytes]]:
        prefix = bytes(prefix)
        with self._lock:
            self._check()
            items = []
            for key in self._data.irange(minimum=prefix):
                if not key.startswith(prefix):
                    break
                items.append((key, self._data[key]))
        if reverse:
            items.reverse()
        return iter(items)

    def write(self, entries: Iterable[LogEntry]) -> None:
        with self._lock:
            self._check()
            for entry in entries:
                if entry.op is Op.SET:
                    self._data[bytes(entry.key)] = bytes(entry.value)
                else:
                    self._data.pop(bytes(entry.key), None)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._data.clear()


class LmdbEngine:
    """An ordered on-disk engine stored in an LMDB environment."""

    def __init__(self, path: str, map_size: int = 1 << 30) -> None:
        os.makedirs(path, exist_ok=True)
        self.path = path
        self._env = lmdb.open(path, map_size=map_size, sync=True)
        self._closed = False
        _logger.info("db init %s complete", path)

    def _check(self) -> None:
        if self._closed:
            raise ValueError("engine is closed")

    def get(self, key: bytes) -> Optional[bytes]:
        self._check()
        with self._env.begin() as txn:
            value = txn.get(bytes(key))
        return None if value is None else bytes(value)

    def scan(self, prefix: bytes, reverse: bool = False) -> Iterator[Tuple[bytes, bytes]]:
        self._check()
        prefix = bytes(prefix)
        items = []
        with self._env.begin() as txn:
            cursor = txn.cursor()
            positioned = cursor.set_range(prefix) if prefix else cursor.first()
            if positioned:
                for key, value in cursor:
                    if not key.startswith(prefix):
                        break
                    items.append((bytes(key), bytes(value)))
        if reverse:
            items.reverse()
        return iter(items)

    def write(self, entries: Iterable[LogEntry]) -> None:
        self._check()
        with self._env.begin(write=True) as txn:
            for entry in entries:
                if entry.op is Op.SET:
                    txn.put(bytes(entry.key), bytes(entry.value))
                else:
                    txn.delete(bytes(entry.key))

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._env.close()


class Store:
    """Applies committed write logs to an engine and records the last applied index."""

    def __init__(self, engine) -> None:
        self.engine = engine
        self._lock = threading.Lock()
        raw = engine.get(_LAST_APPLY_INDEX_KEY)
        self._last_applied = bytes_to_uint64(raw) if raw else 0

    @property
    def last_applied(self) -> int:
        """Index of the last write log applied to the engine."""
        return self._last_applied

    def new_batch(self) -> "Batch":
        return Batch(self)

    def apply(self, entries: Iterable[LogEntry]) -> None:
        """Apply one write log atomically; an empty log changes nothing."""
        entries = list(entries)
        if not entries:
            return
        with self._lock:
            index = self._last_applied + 1
            marker = LogEntry(Op.SET, _LAST_APPLY_INDEX_KEY, uint64_to_bytes(index))
            self.engine.write([*entries, marker])
            self._last_applied = index

    def close(self) -> None:
        self.engine.close()
        _logger.info("stop store finished")

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *args) -> None:
        self.close()


class Batch:
    """Buffered writes over a store; reads see the batch's own pending writes."""

    def __init__(self, store: Store) -> None:
        self._store = store
        self._pending: dict = {}
        self._log: List[LogEntry] = []
        self._closed = False

    def _check(self) -> None:
        if self._closed:
            raise ValueError("batch is closed")

    def get(self, key: bytes) -> Optional[bytes]:
        self._check()
        key = bytes(key)
        if key in self._pending:
            return self._pending[key]
        return self._store.engine.get(key)

    def set(self, key: bytes, value: bytes) -> None:
        self._check()
        key, value = bytes(key), bytes(value or b"")
        self._log.append(LogEntry(Op.SET, key, value))
        self._pending[key] = value

    def delete(self, key: bytes) -> None:
        self._check()
        key = bytes(key)
        self._log.append(LogEntry(Op.DEL, key))
        self._pending[key] = None

    def iterate(
        self, prefix: bytes, offset: int = 0, limit: int = 0
    ) -> Iterator[Tuple[bytes, bytes]]:
        """Yield ``(key, value)`` under ``prefix``.

        A non-negative ``offset`` skips that many entries in ascending order; a
        negative one walks in descending order skipping ``-offset - 1`` entries.
        A ``limit`` of zero means no limit.
        """
        self._check()
        prefix = bytes(prefix)
        merged = dict(self._store.engine.scan(prefix))
        for key, value in self._pending.items():
            if key.startswith(prefix):
                if value is None:
                    merged.pop(key, None)
                else:
                    merged[key] = value
        keys = sorted(merged)
        if offset < 0:
            keys.reverse()
            skip = -offset - 1
        else:
            skip = offset
        keys = keys[skip:]
        if limit > 0:
            keys = keys[:limit]
        return iter([(key, merged[key]) for key in keys])

    def commit(self) -> None:
        """Apply the batch's writes to the store."""
        self._check()
        self._store.apply(self._log)
        self._log = []
        self._pending = {}

    def close(self) -> None:
        """Discard anything not committed."""
        self._closed = True
        self._log = []
        self._pending = {}

    def __enter__(self) -> "Batch":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def open_store(config: Config) -> Store:
    """Open the store named by ``config.store.engine`` under ``config.store.path``."""
    engine_name = config.store.engine
    if engine_name == "memory":
        return Store(MemoryEngine())
    if engine_name in _DISK_ENGINES:
        return Store(LmdbEngine(os.path.join(config.store.path, engine_name)))
    raise ValueError(f"not match store engine: {engine_name}")
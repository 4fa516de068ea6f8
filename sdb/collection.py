"""Rows with secondary indexes, grouped by data type and key.

A row lives under ``{dataType}/{key}/id/{id}/``; each of its indexes under
``{dataType}/{key}/idx_{name}/{value}/{id}/``, whose value is the row key.
Reads through an index therefore come back ordered by index value, then id.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional, Union

from .errors import InvalidArgumentError
from .row import (
    DataType,
    Row,
    decode_row,
    encode_row,
    index_key,
    index_key_prefix,
    index_key_value_prefix,
    row_key,
    row_key_prefix,
)
from .store import Batch, Store

__all__ = ["Collection"]


class Collection:
    """Access to the rows of one data type in a store."""

    def __init__(self, store: Store, data_type: Union[DataType, int]) -> None:
        self.store = store
        self.data_type = DataType(data_type)

    @contextmanager
    def _reader(self, batch: Optional[Batch]) -> Iterator[Batch]:
        if batch is not None:
            yield batch
        else:
            with self.store.new_batch() as fresh:
                yield fresh

    def del_row_by_id(self, key: bytes, id_: bytes, batch: Batch) -> None:
        """Delete the row ``id_`` of ``key`` and its indexes; a missing row is ignored."""
        self.del_row(self.get_row_by_id(key, id_, batch), batch)

    def del_row(self, row: Optional[Row], batch: Batch) -> None:
        """Delete ``row`` and its index entries; ``None`` is ignored."""
        if row is None:
            return
        for index in row.indexes:
            batch.delete(index_key(self.data_type, row.key, index.name, index.value, row.id))
        batch.delete(row_key(self.data_type, row.key, row.id))

    def upsert_row(self, row: Row, batch: Batch) -> None:
        """Insert ``row`` or replace the row with the same key and id."""
        if not row.key:
            raise InvalidArgumentError("key is empty")
        if not row.id:
            raise InvalidArgumentError("id is empty")
        self.del_row(self.get_row_by_id(row.key, row.id, batch), batch)
        target = row_key(self.data_type, row.key, row.id)
        for index in row.indexes:
            batch.set(index_key(self.data_type, row.key, index.name, index.value, row.id), target)
        batch.set(target, encode_row(row))

    def del_all(self, key: bytes, batch: Batch) -> None:
        """Delete every row of ``key`` together with its indexes."""
        for _, raw in batch.iterate(row_key_prefix(self.data_type, key)):
            self.del_row(decode_row(raw), batch)

    def get_row_by_id(
        self, key: bytes, id_: bytes, batch: Optional[Batch] = None
    ) -> Optional[Row]:
        """Return the row ``id_`` of ``key``, or ``None`` if there is none."""
        with self._reader(batch) as reader:
            return decode_row(reader.get(row_key(self.data_type, key, id_)))

    def exist_row_by_id(self, key: bytes, id_: bytes) -> bool:
        return self.get_row_by_id(key, id_) is not None

    def count(self, key: bytes) -> int:
        """Number of rows stored under ``key``."""
        with self._reader(None) as reader:
            return sum(1 for _ in reader.iterate(row_key_prefix(self.data_type, key)))

    def page(
        self,
        key: bytes,
        offset: int = 0,
        limit: int = 0,
        batch: Optional[Batch] = None,
    ) -> List[Row]:
        """Rows of ``key`` in id order; a negative offset walks backwards, limit 0 means all."""
        with self._reader(batch) as reader:
            return [
                row
                for _, raw in reader.iterate(row_key_prefix(self.data_type, key), offset, limit)
                if (row := decode_row(raw)) is not None
            ]

    def _rows_by_index(self, reader: Batch, prefix: bytes, offset: int, limit: int) -> List[Row]:
        rows = []
        for _, target in reader.iterate(prefix, offset, limit):
            row = decode_row(reader.get(target))
            if row is not None:
                rows.append(row)
        return rows

    def index_page(
        self, key: bytes, index_name: bytes, offset: int = 0, limit: int = 0
    ) -> List[Row]:
        """Rows of ``key`` ordered by the value of index ``index_name``."""
        with self._reader(None) as reader:
            prefix = index_key_prefix(self.data_type, key, index_name)
            return self._rows_by_index(reader, prefix, offset, limit)

    def index_value_page(
        self,
        key: bytes,
        index_name: bytes,
        index_value: bytes,
        offset: int = 0,
        limit: int = 0,
    ) -> List[Row]:
        """Rows of ``key`` whose index ``index_name`` equals ``index_value``."""
        with self._reader(None) as reader:
            prefix = index_key_value_prefix(self.data_type, key, index_name, index_value)
            return self._rows_by_index(reader, prefix, offset, limit)
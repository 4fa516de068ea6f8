"""The index of existing keys per data type."""

from typing import List, Union

from .collection import Collection
from .row import DataType, Row
from .store import Batch, Store
from .util import int32_to_bytes

__all__ = ["PageIndex"]


def _type_key(data_type: Union[DataType, int]) -> bytes:
    return int32_to_bytes(int(DataType(data_type)))


class PageIndex:
    """Records which keys exist for each data type."""

    def __init__(self, store: Store) -> None:
        self._collection = Collection(store, DataType.PAGE)

    def add(self, data_type: Union[DataType, int], key: bytes, batch: Batch) -> None:
        self._collection.upsert_row(Row(key=_type_key(data_type), id=key), batch)

    def delete(self, data_type: Union[DataType, int], key: bytes, batch: Batch) -> None:
        self._collection.del_row_by_id(_type_key(data_type), key, batch)

    def list(
        self,
        data_type: Union[DataType, int],
        key: bytes = b"",
        offset: int = 0,
        limit: int = 0,
    ) -> List[bytes]:
        """Keys of ``data_type``; with a ``key``, just that key if it exists."""
        if not key:
            rows = self._collection.page(_type_key(data_type), offset, limit)
        else:
            row = self._collection.get_row_by_id(_type_key(data_type), key)
            rows = [] if row is None else [row]
        return [row.id for row in rows]
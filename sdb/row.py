"""Rows, their binary form and the key layout used in the store.

A row is stored under ``{dataType}/{key}/id/{id}/``; each of its indexes is
stored under ``{dataType}/{key}/idx_{name}/{value}/{id}/`` pointing at the row key.
"""

import enum
from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple, Union

__all__ = [
    "DataType",
    "Index",
    "Row",
    "encode_row",
    "decode_row",
    "row_key",
    "row_key_prefix",
    "index_key",
    "index_key_prefix",
    "index_key_value_prefix",
]


class DataType(enum.IntEnum):
    STRING = 0
    LIST = 1
    SET = 2
    SORTED_SET = 3
    BLOOM_FILTER = 4
    HYPER_LOG_LOG = 5
    BITSET = 6
    MAP = 7
    GEO_HASH = 8
    PAGE = 9


@dataclass(frozen=True)
class Index:
    name: bytes
    value: bytes


@dataclass(frozen=True)
class Row:
    key: bytes
    id: bytes
    value: bytes = b""
    indexes: Tuple[Index, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", bytes(self.key))
        object.__setattr__(self, "id", bytes(self.id))
        object.__setattr__(self, "value", bytes(self.value or b""))
        object.__setattr__(self, "indexes", tuple(self.indexes or ()))


def _varint(number: int) -> bytes:
    out = bytearray()
    while True:
        low = number & 0x7F
        number >>= 7
        if number:
            out.append(low | 0x80)
        else:
            out.append(low)
            return bytes(out)


def _read_varint(raw: bytes, pos: int) -> Tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(raw) or shift > 63:
            raise ValueError("malformed varint")
        byte = raw[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7


def _field(number: int, data: bytes, *, keep_empty: bool = False) -> bytes:
    if not data and not keep_empty:
        return b""
    return _varint(number << 3 | 2) + _varint(len(data)) + data


def _fields(raw: bytes) -> Iterator[Tuple[int, bytes]]:
    pos = 0
    while pos < len(raw):
        tag, pos = _read_varint(raw, pos)
        number, wire_type = tag >> 3, tag & 7
        if wire_type == 0:
            _, pos = _read_varint(raw, pos)
            continue
        if wire_type != 2:
            raise ValueError(f"unsupported wire type {wire_type}")
        length, pos = _read_varint(raw, pos)
        end = pos + length
        if end > len(raw):
            raise ValueError("truncated field")
        yield number, raw[pos:end]
        pos = end


def encode_row(row: Row) -> bytes:
    """Serialise a row into its wire form."""
    parts = [_field(1, row.key), _field(2, row.id)]
    for index in row.indexes:
        body = _field(1, index.name) + _field(2, index.value)
        parts.append(_field(3, body, keep_empty=True))
    parts.append(_field(4, row.value))
    return b"".join(parts)


def decode_row(raw: Optional[bytes]) -> Optional[Row]:
    """Deserialise a row; empty or missing input gives ``None``."""
    if not raw:
        return None
    key = id_ = value = b""
    indexes = []
    for number, data in _fields(bytes(raw)):
        if number == 1:
            key = data
        elif number == 2:
            id_ = data
        elif number == 3:
            parts = dict(_fields(data))
            indexes.append(Index(name=parts.get(1, b""), value=parts.get(2, b"")))
        elif number == 4:
            value = data
    return Row(key=key, id=id_, value=value, indexes=tuple(indexes))


def _tag(data_type: Union[DataType, int]) -> bytes:
    return str(int(data_type)).encode()


def row_key(data_type: Union[DataType, int], key: bytes, id_: bytes) -> bytes:
    return _tag(data_type) + b"/" + key + b"/id/" + id_ + b"/"


def row_key_prefix(data_type: Union[DataType, int], key: bytes) -> bytes:
    return _tag(data_type) + b"/" + key + b"/id/"


def index_key(
    data_type: Union[DataType, int],
    key: bytes,
    index_name: bytes,
    index_value: bytes,
    id_: bytes,
) -> bytes:
    return index_key_value_prefix(data_type, key, index_name, index_value) + id_ + b"/"


def index_key_prefix(data_type: Union[DataType, int], key: bytes, index_name: bytes) -> bytes:
    return _tag(data_type) + b"/" + key + b"/idx_" + index_name + b"/"


def index_key_value_prefix(
    data_type: Union[DataType, int], key: bytes, index_name: bytes, index_value: bytes
) -> bytes:
    return index_key_prefix(data_type, key, index_name) + index_value + b"/"
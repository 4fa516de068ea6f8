"""Points indexed by geohash, queried by cell and by neighbouring cells."""

import math
import struct
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

from .collection import Collection
from .errors import AlreadyExistsError, InvalidArgumentError, NotFoundError
from .locks import DEFAULT_LOCKS, KeyLocks, LockType
from .page import PageIndex
from .row import DataType, Index, Row
from .store import Store

__all__ = [
    "Box",
    "Point",
    "geohash_encode",
    "geohash_neighbors",
    "distance",
    "GeoHashService",
]

_BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
_EARTH_RADIUS_KM = 6378.1370
_HASH = b"hash"
_BOX = b"box"
_COORDS = struct.Struct("<dd")


@dataclass(frozen=True)
class Box:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @property
    def height(self) -> float:
        return self.max_lat - self.min_lat

    @property
    def width(self) -> float:
        return self.max_lng - self.min_lng


@dataclass(frozen=True)
class Point:
    latitude: float
    longitude: float
    id: bytes = b""
    distance: int = 0


def geohash_encode(latitude: float, longitude: float, precision: int) -> Tuple[str, Box]:
    """Geohash of ``precision`` characters and the cell it names."""
    if precision < 0:
        raise InvalidArgumentError("precision must not be negative")
    lat_lo, lat_hi = -90.0, 90.0
    lng_lo, lng_hi = -180.0, 180.0
    even = True
    chars = []
    for _ in range(precision):
        code = 0
        for _ in range(5):
            if even:
                mid = (lng_lo + lng_hi) / 2
                if longitude >= mid:
                    code = code << 1 | 1
                    lng_lo = mid
                else:
                    code <<= 1
                    lng_hi = mid
            else:
                mid = (lat_lo + lat_hi) / 2
                if latitude >= mid:
                    code = code << 1 | 1
                    lat_lo = mid
                else:
                    code <<= 1
                    lat_hi = mid
            even = not even
        chars.append(_BASE32[code])
    return "".join(chars), Box(lat_lo, lat_hi, lng_lo, lng_hi)


def geohash_neighbors(latitude: float, longitude: float, precision: int) -> List[str]:
    """The cell of the point followed by its eight surrounding cells."""
    center, box = geohash_encode(latitude, longitude, precision)
    mid_lat = (box.min_lat + box.max_lat) / 2
    mid_lng = (box.min_lng + box.max_lng) / 2
    hashes = [center]
    for dlat, dlng in ((1, 0), (-1, 0), (0, -1), (0, 1), (1, -1), (-1, -1), (1, 1), (-1, 1)):
        lat = min(90.0, max(-90.0, mid_lat + dlat * box.height))
        lng = (mid_lng + dlng * box.width + 180.0) % 360.0 - 180.0
        hashes.append(geohash_encode(lat, lng, precision)[0])
    return hashes


def distance(one, two) -> int:
    """Great-circle distance in whole metres between two points."""
    d2r = math.pi / 180
    d_lng = (one.longitude - two.longitude) * d2r
    d_lat = (one.latitude - two.latitude) * d2r
    a = math.sin(d_lat / 2.0) ** 2 + math.cos(one.latitude * d2r) * math.cos(
        two.latitude * d2r
    ) * math.sin(d_lng / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return int(_EARTH_RADIUS_KM * c * 1000)


def _marshal_box(box: Box) -> bytes:
    return (
        f"{box.min_lat:32.32f}:{box.max_lat:32.32f}:{box.min_lng:32.32f}:{box.max_lng:32.32f}"
    ).encode()


def _encode_point(point: Point) -> bytes:
    return _COORDS.pack(float(point.latitude), float(point.longitude)) + bytes(point.id)


def _decode_point(raw: bytes) -> Point:
    if len(raw) < _COORDS.size:
        raise ValueError("malformed point")
    latitude, longitude = _COORDS.unpack_from(raw)
    return Point(latitude=latitude, longitude=longitude, id=raw[_COORDS.size:])


class GeoHashService:
    """Sets of points under a key, bucketed by a geohash of fixed precision."""

    def __init__(self, store: Store, locks: Optional[KeyLocks] = None) -> None:
        self._store = store
        self._collection = Collection(store, DataType.GEO_HASH)
        self._page = PageIndex(store)
        self._locks = locks if locks is not None else DEFAULT_LOCKS

    def _precision(self, key: bytes, batch=None) -> int:
        row = self._collection.get_row_by_id(key, key, batch)
        if row is None or not row.value:
            raise NotFoundError("not found geo hash, please create it")
        return int(row.value)

    def _with_distances(self, rows, latitude: float, longitude: float) -> List[Point]:
        origin = Point(latitude=latitude, longitude=longitude)
        return [
            replace(point, distance=distance(point, origin))
            for point in map(_decode_point, (row.value for row in rows))
        ]

    def create(self, key: bytes, precision: int) -> None:
        """Create an empty point set hashing at ``precision`` characters."""
        if precision < 0:
            raise InvalidArgumentError("precision must not be negative")
        with self._locks.locker(LockType.GEO_HASH, key), self._store.new_batch() as batch:
            if self._collection.exist_row_by_id(key, key):
                raise AlreadyExistsError("geo hash exist, please delete it or change other")
            self._collection.upsert_row(
                Row(key=key, id=key, value=str(int(precision)).encode()), batch
            )
            self._page.add(DataType.GEO_HASH, key, batch)
            batch.commit()

    def delete(self, key: bytes) -> None:
        """Remove the point set and its settings."""
        with self._locks.locker(LockType.GEO_HASH, key), self._store.new_batch() as batch:
            for row in self._collection.page(key):
                self._collection.del_row_by_id(key, row.id, batch)
            self._page.delete(DataType.GEO_HASH, key, batch)
            batch.commit()

    def add(self, key: bytes, points: Iterable[Point]) -> None:
        """Add points; a point with an existing id replaces it."""
        with self._locks.locker(LockType.GEO_HASH, key), self._store.new_batch() as batch:
            precision = self._precision(key, batch)
            for point in points:
                if bytes(point.id) == bytes(key):
                    raise InvalidArgumentError(
                        "id can not be equals to key, please change other id"
                    )
                cell, box = geohash_encode(point.latitude, point.longitude, precision)
                self._collection.upsert_row(
                    Row(
                        key=key,
                        id=point.id,
                        value=_encode_point(point),
                        indexes=(Index(_HASH, cell.encode()), Index(_BOX, _marshal_box(box))),
                    ),
                    batch,
                )
            batch.commit()

    def pop(self, key: bytes, ids: Iterable[bytes]) -> None:
        """Remove the points with the given ids; absent ones are ignored."""
        with self._locks.locker(LockType.GEO_HASH, key), self._store.new_batch() as batch:
            if not self._collection.exist_row_by_id(key, key):
                raise NotFoundError("not found geo hash, please create it")
            for id_ in ids:
                self._collection.del_row_by_id(key, id_, batch)
            batch.commit()

    def get_boxes(self, key: bytes, latitude: float, longitude: float) -> List[Point]:
        """Points in the same cell as the location, nearest first."""
        precision = self._precision(key)
        _, box = geohash_encode(latitude, longitude, precision)
        rows = self._collection.index_value_page(key, _BOX, _marshal_box(box))
        points = self._with_distances(rows, latitude, longitude)
        return sorted(points, key=lambda point: point.distance)

    def get_neighbors(self, key: bytes, latitude: float, longitude: float) -> List[Point]:
        """Points in the location's cell and the eight around it, nearest first."""
        precision = self._precision(key)
        points: List[Point] = []
        for cell in geohash_neighbors(latitude, longitude, precision):
            rows = self._collection.index_value_page(key, _HASH, cell.encode())
            points.extend(self._with_distances(rows, latitude, longitude))
        return sorted(points, key=lambda point: point.distance)

    def count(self, key: bytes) -> int:
        """Number of points stored."""
        return max(0, self._collection.count(key) - 1)

    def members(self, key: bytes) -> List[Point]:
        """All points, ordered by geohash then id."""
        return [_decode_point(row.value) for row in self._collection.index_page(key, _HASH)]
"""The request dispatcher: named methods taking and returning field mappings."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from .bitsets import BitsetService
from .bloom import BloomFilterService
from .errors import InvalidArgumentError, SdbError
from .geo import GeoHashService, Point
from .hyperloglog import HyperLogLogService
from .kvstring import StringService
from .lists import ListService
from .locks import KeyLocks
from .maps import MapService, Pair
from .page import PageIndex
from .pubsub import PubSub
from .row import DataType
from .sets import SetService
from .sortedsets import ScoredValue, SortedSetService
from .store import Store

__all__ = ["UnknownMethodError", "Node", "SDB"]


class UnknownMethodError(SdbError, LookupError):
    """The requested method does not exist."""

    default_message = "unknown method"


@dataclass(frozen=True)
class Node:
    id: int
    address: str
    leader: bool


def _to_bytes(value: Any, name: str) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return value.encode()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise InvalidArgumentError(f"{name}: expected bytes, got {value!r}")


def _to_int(value: Any, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{name}: expected an integer, got {value!r}")
    return value


def _to_float(value: Any, name: str) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(f"{name}: expected a number, got {value!r}")
    return float(value)


def _to_bool(value: Any, name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise InvalidArgumentError(f"{name}: expected a boolean, got {value!r}")
    return value


def _to_pair(item: Any) -> Pair:
    if isinstance(item, Pair):
        return item
    if isinstance(item, Mapping):
        return Pair(key=_to_bytes(item.get("key"), "key"), value=_to_bytes(item.get("value"), "value"))
    raise InvalidArgumentError(f"pairs: expected a pair, got {item!r}")


def _to_scored(item: Any) -> ScoredValue:
    if isinstance(item, ScoredValue):
        return item
    if isinstance(item, Mapping):
        return ScoredValue(
            value=_to_bytes(item.get("value"), "value"),
            score=_to_float(item.get("score"), "score"),
        )
    raise InvalidArgumentError(f"tuples: expected a scored value, got {item!r}")


def _to_point(item: Any) -> Point:
    if isinstance(item, Point):
        return item
    if isinstance(item, Mapping):
        return Point(
            latitude=_to_float(item.get("latitude"), "latitude"),
            longitude=_to_float(item.get("longitude"), "longitude"),
            id=_to_bytes(item.get("id"), "id"),
        )
    raise InvalidArgumentError(f"points: expected a point, got {item!r}")


def _to_data_type(value: Any) -> DataType:
    try:
        if isinstance(value, str):
            return DataType[value.upper()]
        return DataType(_to_int(value, "data_type"))
    except (KeyError, ValueError) as exc:
        raise InvalidArgumentError(f"data_type: unknown data type {value!r}") from exc


class _Request:
    """Typed access to the fields of a request payload; missing fields take zero values."""

    def __init__(self, payload: Optional[Mapping[str, Any]]) -> None:
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise InvalidArgumentError("payload must be a mapping")
        self._payload = payload

    def get_bytes(self, name: str) -> bytes:
        return _to_bytes(self._payload.get(name), name)

    def get_int(self, name: str) -> int:
        return _to_int(self._payload.get(name), name)

    def get_float(self, name: str) -> float:
        return _to_float(self._payload.get(name), name)

    def get_bool(self, name: str) -> bool:
        return _to_bool(self._payload.get(name), name)

    def get_list(self, name: str, convert: Callable[[Any], Any]) -> List[Any]:
        items = self._payload.get(name) or ()
        if isinstance(items, (str, bytes, bytearray, Mapping)):
            raise InvalidArgumentError(f"{name}: expected a list")
        return [convert(item) for item in items]

    def get_bytes_list(self, name: str) -> List[bytes]:
        return self.get_list(name, lambda item: _to_bytes(item, name))

    def get_int_list(self, name: str) -> List[int]:
        return self.get_list(name, lambda item: _to_int(item, name))

    @property
    def key(self) -> bytes:
        return self.get_bytes("key")


def _ok(_result: Any = None) -> Dict[str, Any]:
    return {"success": True}


class SDB:
    """Every data structure of one store behind a single ``handle`` entry point."""

    def __init__(
        self,
        store: Store,
        locks: Optional[KeyLocks] = None,
        pubsub: Optional[PubSub] = None,
        node_id: int = 1,
        address: str = "",
    ) -> None:
        self._store = store
        self._node_id = node_id
        self._address = address
        self.strings = StringService(store, locks)
        self.lists = ListService(store, locks)
        self.sets = SetService(store, locks)
        self.sorted_sets = SortedSetService(store, locks)
        self.maps = MapService(store, locks)
        self.bitsets = BitsetService(store, locks)
        self.blooms = BloomFilterService(store, locks)
        self.hyperloglogs = HyperLogLogService(store, locks)
        self.geo = GeoHashService(store, locks)
        self.page = PageIndex(store)
        self.pubsub = pubsub if pubsub is not None else PubSub()
        self._methods = self._routes()

    def _routes(self) -> Dict[str, Callable[[_Request], Dict[str, Any]]]:
        s, l, st, z = self.strings, self.lists, self.sets, self.sorted_sets
        m, bs, bf, hll, gh = self.maps, self.bitsets, self.blooms, self.hyperloglogs, self.geo
        return {
            "Set": lambda r: _ok(s.set(r.key, r.get_bytes("value"))),
            "MSet": lambda r: _ok(s.mset(r.get_bytes_list("keys"), r.get_bytes_list("values"))),
            "SetNX": lambda r: _ok(s.setnx(r.key, r.get_bytes("value"))),
            "Get": lambda r: {"value": s.get(r.key)},
            "MGet": lambda r: {"values": s.mget(r.get_bytes_list("keys"))},
            "Del": lambda r: _ok(s.delete(r.key)),
            "Incr": lambda r: _ok(s.incr(r.key, r.get_int("delta"))),
            "LRPush": lambda r: _ok(l.rpush(r.key, r.get_bytes_list("values"))),
            "LLPush": lambda r: _ok(l.lpush(r.key, r.get_bytes_list("values"))),
            "LPop": lambda r: _ok(l.pop(r.key, r.get_bytes_list("values"))),
            "LRange": lambda r: {
                "values": l.range(r.key, r.get_int("offset"), r.get_int("limit"))
            },
            "LExist": lambda r: {"exists": l.exist(r.key, r.get_bytes_list("values"))},
            "LDel": lambda r: _ok(l.delete(r.key)),
            "LCount": lambda r: {"count": l.count(r.key)},
            "LMembers": lambda r: {"values": l.members(r.key)},
            "SPush": lambda r: _ok(st.push(r.key, r.get_bytes_list("values"))),
            "SPop": lambda r: _ok(st.pop(r.key, r.get_bytes_list("values"))),
            "SExist": lambda r: {"exists": st.exist(r.key, r.get_bytes_list("values"))},
            "SDel": lambda r: _ok(st.delete(r.key)),
            "SCount": lambda r: {"count": st.count(r.key)},
            "SMembers": lambda r: {"values": st.members(r.key)},
            "ZPush": lambda r: _ok(z.push(r.key, r.get_list("tuples", _to_scored))),
            "ZPop": lambda r: _ok(z.pop(r.key, r.get_bytes_list("values"))),
            "ZRange": lambda r: {
                "tuples": z.range(r.key, r.get_int("offset"), r.get_int("limit"))
            },
            "ZExist": lambda r: {"exists": z.exist(r.key, r.get_bytes_list("values"))},
            "ZDel": lambda r: _ok(z.delete(r.key)),
            "ZCount": lambda r: {"count": z.count(r.key)},
            "ZMembers": lambda r: {"tuples": z.members(r.key)},
            "BFCreate": lambda r: _ok(bf.create(r.key, r.get_int("n"), r.get_float("p"))),
            "BFDel": lambda r: _ok(bf.delete(r.key)),
            "BFAdd": lambda r: _ok(bf.add(r.key, r.get_bytes_list("values"))),
            "BFExist": lambda r: {"exists": bf.exist(r.key, r.get_bytes_list("values"))},
            "HLLCreate": lambda r: _ok(hll.create(r.key)),
            "HLLDel": lambda r: _ok(hll.delete(r.key)),
            "HLLAdd": lambda r: _ok(hll.add(r.key, r.get_bytes_list("values"))),
            "HLLCount": lambda r: {"count": hll.count(r.key)},
            "BSDel": lambda r: _ok(bs.delete(r.key)),
            "BSSetRange": lambda r: _ok(
                bs.set_range(r.key, r.get_int("start"), r.get_int("end"), r.get_bool("value"))
            ),
            "BSMSet": lambda r: _ok(bs.mset(r.key, r.get_int_list("bits"), r.get_bool("value"))),
            "BSGetRange": lambda r: {
                "values": bs.get_range(r.key, r.get_int("start"), r.get_int("end"))
            },
            "BSMGet": lambda r: {"values": bs.mget(r.key, r.get_int_list("bits"))},
            "BSCount": lambda r: {"count": bs.count(r.key)},
            "BSCountRange": lambda r: {
                "count": bs.count_range(r.key, r.get_int("start"), r.get_int("end"))
            },
            "MPush": lambda r: _ok(m.push(r.key, r.get_list("pairs", _to_pair))),
            "MPop": lambda r: _ok(m.pop(r.key, r.get_bytes_list("keys"))),
            "MExist": lambda r: {"exists": m.exist(r.key, r.get_bytes_list("keys"))},
            "MDel": lambda r: _ok(m.delete(r.key)),
            "MCount": lambda r: {"count": m.count(r.key)},
            "MMembers": lambda r: {"pairs": m.members(r.key)},
            "GHCreate": lambda r: _ok(gh.create(r.key, r.get_int("precision"))),
            "GHDel": lambda r: _ok(gh.delete(r.key)),
            "GHAdd": lambda r: _ok(gh.add(r.key, r.get_list("points", _to_point))),
            "GHPop": lambda r: _ok(gh.pop(r.key, r.get_bytes_list("ids"))),
            "GHGetBoxes": lambda r: {
                "points": gh.get_boxes(r.key, r.get_float("latitude"), r.get_float("longitude"))
            },
            "GHGetNeighbors": lambda r: {
                "points": gh.get_neighbors(
                    r.key, r.get_float("latitude"), r.get_float("longitude")
                )
            },
            "GHCount": lambda r: {"count": gh.count(r.key)},
            "GHMembers": lambda r: {"points": gh.members(r.key)},
            "PList": lambda r: {
                "keys": self.page.list(
                    _to_data_type(r._payload.get("data_type")),
                    r.key,
                    r.get_int("offset"),
                    r.get_int("limit"),
                )
            },
            "Publish": lambda r: {
                "success": self.pubsub.publish(r.get_bytes("topic"), r.get_bytes("payload"))
            },
            "Subscribe": lambda r: {"subscription": self.pubsub.subscribe(r.get_bytes("topic"))},
            "CInfo": lambda r: {"nodes": self.cluster_info()},
        }

    def handle(self, method: str, payload: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Run ``method`` with the fields of ``payload`` and return the response fields."""
        route = self._methods.get(method)
        if route is None:
            raise UnknownMethodError(f"unknown method: {method}")
        return route(_Request(payload))

    def cluster_info(self) -> List[Node]:
        """The nodes of the cluster; a single node leads itself."""
        return [Node(id=self._node_id, address=self._address, leader=True)]

    def close(self) -> None:
        """Close the underlying store."""
        self._store.close()
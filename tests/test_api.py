import pytest

from sdb.api import SDB, Node, UnknownMethodError
from sdb.errors import AlreadyExistsError, InvalidArgumentError, NotFoundError
from sdb.maps import Pair
from sdb.pubsub import Message
from sdb.store import MemoryEngine, Store


@pytest.fixture
def db():
    sdb = SDB(Store(MemoryEngine()), node_id=7, address="localhost:9000")
    yield sdb
    sdb.close()


def test_set_then_get(db):
    assert db.handle("Set", {"key": b"hello", "value": b"world"}) == {"success": True}
    assert db.handle("Get", {"key": "hello"}) == {"value": b"world"}


def test_mset_and_mget_with_missing(db):
    db.handle("MSet", {"keys": [b"1", b"2", b"3"], "values": [b"4", b"5", b"6"]})
    result = db.handle("MGet", {"keys": [b"1", b"2", b"3", b"100"]})
    assert result["values"] == [b"4", b"5", b"6", None]


def test_setnx_keeps_existing(db):
    db.handle("Set", {"key": b"1", "value": b"4"})
    db.handle("SetNX", {"key": b"1", "value": b"11"})
    assert db.handle("Get", {"key": b"1"})["value"] == b"4"


def test_incr_accumulates(db):
    db.handle("Incr", {"key": b"abc", "delta": 10})
    db.handle("Incr", {"key": b"abc", "delta": 1})
    assert db.handle("Get", {"key": b"abc"})["value"] == b"11"


def test_unknown_method(db):
    with pytest.raises(UnknownMethodError):
        db.handle("Nope", {})


def test_bad_field_type(db):
    with pytest.raises(InvalidArgumentError):
        db.handle("Set", {"key": 5, "value": b"v"})


def test_empty_key_rejected(db):
    with pytest.raises(InvalidArgumentError):
        db.handle("Set", {"value": b"v"})


def test_list_push_both_ends(db):
    db.handle("LRPush", {"key": b"h", "values": [b"a", b"b"]})
    db.handle("LLPush", {"key": b"h", "values": [b"c"]})
    assert db.handle("LMembers", {"key": b"h"})["values"] == [b"c", b"a", b"b"]
    assert db.handle("LCount", {"key": b"h"})["count"] == 3
    assert db.handle("LExist", {"key": b"h", "values": [b"a", b"z"]})["exists"] == [True, False]


def test_set_operations(db):
    db.handle("SPush", {"key": b"s", "values": [b"x", b"y", b"x"]})
    assert db.handle("SCount", {"key": b"s"})["count"] == 2
    db.handle("SPop", {"key": b"s", "values": [b"x"]})
    assert db.handle("SMembers", {"key": b"s"})["values"] == [b"y"]


def test_sorted_set_orders_by_score(db):
    db.handle(
        "ZPush",
        {"key": b"z", "tuples": [{"value": b"aaa", "score": 1.0}, {"value": b"eee", "score": 0.7}]},
    )
    members = db.handle("ZMembers", {"key": b"z"})["tuples"]
    assert [t.value for t in members] == [b"eee", b"aaa"]


def test_map_round_trip(db):
    db.handle("MPush", {"key": b"m", "pairs": [{"key": b"k1", "value": b"v1"}]})
    assert db.handle("MMembers", {"key": b"m"})["pairs"] == [Pair(b"k1", b"v1")]
    assert db.handle("MExist", {"key": b"m", "keys": [b"k1", b"k2"]})["exists"] == [True, False]


def test_bitset_mset_mget(db):
    db.handle("BSMSet", {"key": b"hello", "bits": [1, 2, 3], "value": True})
    result = db.handle("BSMGet", {"key": b"hello", "bits": [4, 1, 2, 3, 5]})
    assert result["values"] == [False, True, True, True, False]
    assert db.handle("BSCount", {"key": b"hello"})["count"] == 3


def test_bloom_filter_requires_create(db):
    with pytest.raises(NotFoundError):
        db.handle("BFExist", {"key": b"bf", "values": [b"aaa"]})
    db.handle("BFCreate", {"key": b"bf", "n": 10000, "p": 0.05})
    db.handle("BFAdd", {"key": b"bf", "values": [b"aaa"]})
    assert db.handle("BFExist", {"key": b"bf", "values": [b"aaa"]})["exists"] == [True]


def test_hyperloglog_create_twice(db):
    db.handle("HLLCreate", {"key": b"h"})
    with pytest.raises(AlreadyExistsError):
        db.handle("HLLCreate", {"key": b"h"})


def test_geo_hash_points(db):
    db.handle("GHCreate", {"key": b"gh1", "precision": 2})
    db.handle(
        "GHAdd",
        {
            "key": b"gh1",
            "points": [
                {"latitude": 11.11, "longitude": 22.11, "id": b"p1"},
                {"latitude": 11.22, "longitude": 22.22, "id": b"p2"},
            ],
        },
    )
    assert db.handle("GHCount", {"key": b"gh1"})["count"] == 2
    points = db.handle("GHGetBoxes", {"key": b"gh1", "latitude": 11.11, "longitude": 22.11})["points"]
    assert points[0].id == b"p1"
    assert points[0].distance == 0


def test_page_list_by_name(db):
    db.handle("Set", {"key": b"hello", "value": b"world"})
    assert db.handle("PList", {"data_type": "STRING"})["keys"] == [b"hello"]
    assert db.handle("PList", {"data_type": 0, "key": b"missing"})["keys"] == []


def test_page_list_bad_type(db):
    with pytest.raises(InvalidArgumentError):
        db.handle("PList", {"data_type": "NOPE"})


def test_publish_subscribe(db):
    sub = db.handle("Subscribe", {"topic": b"hhh"})["subscription"]
    assert db.handle("Publish", {"topic": b"hhh", "payload": b"payload0"}) == {"success": True}
    assert sub.get(timeout=1) == Message(b"hhh", b"payload0")
    sub.close()


def test_cluster_info(db):
    assert db.handle("CInfo")["nodes"] == [Node(id=7, address="localhost:9000", leader=True)]
    assert db.cluster_info()[0].leader is True
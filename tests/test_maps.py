import pytest

from sdb.errors import InvalidArgumentError
from sdb.maps import MapService, Pair
from sdb.page import PageIndex
from sdb.row import DataType
from sdb.store import MemoryEngine, Store


@pytest.fixture
def store():
    s = Store(MemoryEngine())
    yield s
    s.close()


@pytest.fixture
def maps(store):
    return MapService(store)


PAIRS = [Pair(("k" + str(i)).encode(), ("v" + str(i + 1)).encode()) for i in range(100)]


def test_push_and_members(maps):
    pairs = [Pair(b"h1", b"h2"), Pair(b"h3", b"h4")]
    maps.push(b"h2", pairs)
    assert maps.members(b"h2") == pairs


def test_members_in_key_order(maps):
    maps.push(b"h", PAIRS)
    members = maps.members(b"h")
    assert [p.key for p in members] == sorted(p.key for p in PAIRS)
    assert {p.key: p.value for p in members} == {p.key: p.value for p in PAIRS}


def test_push_replaces_value(maps):
    maps.push(b"h", [Pair(b"a", b"1")])
    maps.push(b"h", [Pair(b"a", b"2")])
    assert maps.members(b"h") == [Pair(b"a", b"2")]
    assert maps.count(b"h") == 1


def test_pop_and_exist(maps):
    maps.push(b"h", PAIRS)
    popped = [p.key for p in PAIRS[::2]]
    maps.pop(b"h", popped)
    assert maps.count(b"h") == len(PAIRS) - len(popped)
    assert maps.exist(b"h", [b"k1", b"k2", b"k3000", b"k4000", b"k5"]) == [
        True,
        False,
        False,
        False,
        True,
    ]


def test_pop_last_removes_page_entry(store, maps):
    maps.push(b"h2", [Pair(b"h1", b"h2"), Pair(b"h3", b"h4")])
    assert PageIndex(store).list(DataType.MAP) == [b"h2"]
    maps.pop(b"h2", [b"h1", b"h3"])
    assert maps.members(b"h2") == []
    assert PageIndex(store).list(DataType.MAP) == []


def test_delete(store, maps):
    maps.push(b"h", PAIRS)
    maps.delete(b"h")
    assert maps.count(b"h") == 0
    assert PageIndex(store).list(DataType.MAP) == []


def test_empty_entry_key_rejected(maps):
    with pytest.raises(InvalidArgumentError):
        maps.push(b"h", [Pair(b"", b"v")])
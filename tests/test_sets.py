import pytest

from sdb.errors import InvalidArgumentError
from sdb.page import PageIndex
from sdb.row import DataType
from sdb.sets import SetService
from sdb.store import MemoryEngine, Store


@pytest.fixture
def store():
    s = Store(MemoryEngine())
    yield s
    s.close()


@pytest.fixture
def sets(store):
    return SetService(store)


VALUES = [("h" + str(i)).encode() for i in range(20)]


def test_push_and_members_sorted(sets):
    sets.push(b"h", [b"h2", b"h1", b"h10"])
    assert sets.members(b"h") == sorted([b"h2", b"h1", b"h10"])


def test_push_deduplicates(sets):
    sets.push(b"h", [b"a", b"a", b"b"])
    sets.push(b"h", [b"b"])
    assert sets.count(b"h") == 2
    assert sets.members(b"h") == [b"a", b"b"]


def test_keys_are_independent(sets):
    sets.push(b"h", VALUES)
    sets.push(b"h1", VALUES[:3])
    assert sets.count(b"h") == len(VALUES)
    assert sets.members(b"h1") == sorted(VALUES[:3])


def test_pop(sets):
    sets.push(b"h", VALUES)
    popped = VALUES[::2]
    sets.pop(b"h", popped)
    assert set(sets.members(b"h")) == set(VALUES) - set(popped)
    assert sets.exist(b"h", [VALUES[0], VALUES[1]]) == [False, True]


def test_pop_last_removes_page_entry(store, sets):
    sets.push(b"h", [b"a"])
    assert PageIndex(store).list(DataType.SET) == [b"h"]
    sets.pop(b"h", [b"a"])
    assert PageIndex(store).list(DataType.SET) == []


def test_exist_missing_key(sets):
    assert sets.exist(b"none", [b"a", b"b"]) == [False, False]


def test_delete(store, sets):
    sets.push(b"h", VALUES)
    sets.delete(b"h")
    assert sets.members(b"h") == []
    assert sets.count(b"h") == 0
    assert PageIndex(store).list(DataType.SET) == []


def test_empty_value_rejected(sets):
    with pytest.raises(InvalidArgumentError):
        sets.push(b"h", [b""])
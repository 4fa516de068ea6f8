import pytest

from sdb.config import Config, StoreConfig
from sdb.store import LmdbEngine, LogEntry, MemoryEngine, Op, Store, open_store


@pytest.fixture(params=["memory", "lmdb"])
def engine(request, tmp_path):
    if request.param == "memory":
        eng = MemoryEngine()
    else:
        eng = LmdbEngine(str(tmp_path / "db"), map_size=1 << 24)
    yield eng
    eng.close()


def _fill(store, keys):
    with store.new_batch() as batch:
        for key in keys:
            batch.set(key, key + b"-v")
        batch.commit()


def test_engine_write_get_delete(engine):
    engine.write([LogEntry(Op.SET, b"a", b"1"), LogEntry(Op.SET, b"b", b"2")])
    assert engine.get(b"a") == b"1"
    engine.write([LogEntry(Op.DEL, b"a")])
    assert engine.get(b"a") is None
    assert engine.get(b"b") == b"2"


def test_engine_scan_prefix_and_reverse(engine):
    engine.write([LogEntry(Op.SET, k, k) for k in (b"p/b", b"p/a", b"q/x", b"p/c", b"o")])
    assert [k for k, _ in engine.scan(b"p/")] == [b"p/a", b"p/b", b"p/c"]
    assert [k for k, _ in engine.scan(b"p/", True)] == [b"p/c", b"p/b", b"p/a"]
    assert list(engine.scan(b"z")) == []


def test_engine_closed_raises():
    eng = MemoryEngine()
    eng.close()
    with pytest.raises(ValueError):
        eng.get(b"a")


def test_batch_reads_own_writes(engine):
    store = Store(engine)
    batch = store.new_batch()
    batch.set(b"k", b"v")
    assert batch.get(b"k") == b"v"
    assert engine.get(b"k") is None
    batch.delete(b"k")
    assert batch.get(b"k") is None


def test_commit_applies_and_close_discards(engine):
    store = Store(engine)
    with store.new_batch() as batch:
        batch.set(b"kept", b"1")
        batch.commit()
    with store.new_batch() as batch:
        batch.set(b"dropped", b"2")
    assert engine.get(b"kept") == b"1"
    assert engine.get(b"dropped") is None


@pytest.mark.parametrize(
    "offset,limit,expected",
    [
        (0, 0, [b"p/a", b"p/b", b"p/c"]),
        (1, 1, [b"p/b"]),
        (-1, 2, [b"p/c", b"p/b"]),
        (-2, 0, [b"p/b", b"p/a"]),
        (5, 0, []),
        (-5, 0, []),
    ],
)
def test_iterate_offset_limit(engine, offset, limit, expected):
    store = Store(engine)
    _fill(store, [b"p/a", b"p/b", b"p/c", b"q/x"])
    with store.new_batch() as batch:
        assert [k for k, _ in batch.iterate(b"p/", offset, limit)] == expected


def test_iterate_merges_pending(engine):
    store = Store(engine)
    _fill(store, [b"p/a", b"p/b"])
    with store.new_batch() as batch:
        batch.delete(b"p/a")
        batch.set(b"p/c", b"new")
        assert list(batch.iterate(b"p/")) == [(b"p/b", b"p/b-v"), (b"p/c", b"new")]


def test_apply_counts_logs(engine):
    store = Store(engine)
    store.apply([])
    assert store.last_applied == 0
    _fill(store, [b"a"])
    _fill(store, [b"b"])
    assert store.last_applied == 2


def test_last_applied_survives_reopen(tmp_path):
    path = str(tmp_path / "db")
    store = Store(LmdbEngine(path, map_size=1 << 24))
    _fill(store, [b"a"])
    store.close()
    reopened = Store(LmdbEngine(path, map_size=1 << 24))
    assert reopened.last_applied == 1
    assert reopened.engine.get(b"a") == b"a-v"
    reopened.close()


def test_batch_use_after_close_raises(engine):
    batch = Store(engine).new_batch()
    batch.close()
    with pytest.raises(ValueError):
        batch.set(b"a", b"b")


def test_open_store_memory_and_disk(tmp_path):
    with open_store(Config(store=StoreConfig(engine="memory"))) as store:
        _fill(store, [b"x"])
        assert store.engine.get(b"x") == b"x-v"
    with open_store(Config(store=StoreConfig(engine="lmdb", path=str(tmp_path)))) as store:
        _fill(store, [b"y"])
        assert store.engine.get(b"y") == b"y-v"
    assert (tmp_path / "lmdb").is_dir()


def test_open_store_unknown_engine():
    with pytest.raises(ValueError, match="not match store engine"):
        open_store(Config(store=StoreConfig(engine="nope")))
# sdb

sdb is a small database that stores data structures on top of an ordered
key-value engine. Every structure keeps its rows and secondary indexes in
one keyspace, so all of them share a single storage layer and write path.
It can be embedded in a Python process or run as an HTTP server.

Supported structures (each a service class over a `sdb.store.Store`):

- strings (`sdb.kvstring.StringService`): `set`, `mset`, `setnx`, `get`,
  `mget`, `delete`, `incr`
- lists (`sdb.lists.ListService`): `rpush`, `lpush`, `pop` by value,
  `range` by offset and limit (a negative offset reads from the tail
  backwards), `exist`, `delete`, `count`, `members`
- sets (`sdb.sets.SetService`) and maps (`sdb.maps.MapService`): `push`,
  `pop`, `exist`, `delete`, `count`, `members`
- sorted sets (`sdb.sortedsets.SortedSetService`): members ordered by the
  decimal text of their score, which matches numeric order for
  non-negative scores below ten
- bitsets (`sdb.bitsets.BitsetService`): set and read single bits or
  ranges, count set bits
- Bloom filters (`sdb.bloom.BloomFilterService`) and HyperLogLog sketches
  (`sdb.hyperloglog.HyperLogLogService`)
- geohash point sets (`sdb.geo.GeoHashService`): add and remove points,
  find points in the same cell or in the nine surrounding cells, nearest
  first
- publish / subscribe on named topics (`sdb.pubsub.PubSub`)
- a per-type index of existing keys (`sdb.page.PageIndex`)

Errors derive from `sdb.errors.SdbError`: `NotFoundError`,
`AlreadyExistsError` and `InvalidArgumentError`.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Using it from Python

`sdb.api.SDB` puts every structure of one store behind a single
`handle(method, payload)` entry point. Payload fields that are missing take
zero values:

```python
from sdb.api import SDB
from sdb.store import MemoryEngine, Store

db = SDB(Store(MemoryEngine()))
db.handle("Set", {"key": b"hello", "value": b"world"})
print(db.handle("Get", {"key": b"hello"}))   # {'value': b'world'}
db.handle("LRPush", {"key": b"l", "values": [b"a", b"b"]})
print(db.handle("LRange", {"key": b"l", "offset": -1, "limit": 1}))
db.close()
```

The method names are `Set`, `MSet`, `SetNX`, `Get`, `MGet`, `Del`, `Incr`;
`LRPush`, `LLPush`, `LPop`, `LRange`, `LExist`, `LDel`, `LCount`,
`LMembers`; `SPush`, `SPop`, `SExist`, `SDel`, `SCount`, `SMembers`;
`ZPush`, `ZPop`, `ZRange`, `ZExist`, `ZDel`, `ZCount`, `ZMembers`;
`MPush`, `MPop`, `MExist`, `MDel`, `MCount`, `MMembers`; `BSDel`,
`BSSetRange`, `BSMSet`, `BSGetRange`, `BSMGet`, `BSCount`, `BSCountRange`;
`BFCreate`, `BFDel`, `BFAdd`, `BFExist`; `HLLCreate`, `HLLDel`, `HLLAdd`,
`HLLCount`; `GHCreate`, `GHDel`, `GHAdd`, `GHPop`, `GHGetBoxes`,
`GHGetNeighbors`, `GHCount`, `GHMembers`; `PList`; `Publish`, `Subscribe`;
and `CInfo`. An unknown name raises `sdb.api.UnknownMethodError`.

The services can also be used directly, for example
`sdb.sets.SetService(store)`. Stores are opened with
`sdb.store.open_store(config)` or built from an engine:
`sdb.store.MemoryEngine()` keeps data in memory and
`sdb.store.LmdbEngine(path)` keeps it on disk.

The building blocks work on their own as well: `sdb.bloom.BloomFilter`,
`sdb.hyperloglog.HyperLogLog`, `sdb.geo.geohash_encode`,
`sdb.geo.geohash_neighbors`, `sdb.geo.distance`,
`sdb.ratelimit.RateLimiter` and `sdb.pubsub.PubSub` for in-process topics.

## Running the server

```
sdb --config configs/config.yml
```

`--config` defaults to `configs/config.yml`. The server runs until it
receives SIGHUP, SIGINT, SIGTERM or SIGQUIT, then stops serving and closes
the store. The configuration file is YAML:

```yaml
store:
  engine: lmdb        # "memory", or one of lmdb, pebble, badger, level
  path: ./data
server:
  http_port: 8000
  rate: 30000         # requests per second; 0 or absent means no limit
cluster:
  node_id: 1
  address: localhost:9000
```

Every disk engine name (`lmdb`, `pebble`, `badger`, `level`) stores data
in an LMDB environment under `<path>/<engine>`. Any other engine name is
rejected.

### HTTP interface

- `POST /v1/<Method>` takes a JSON object of request fields and answers
  with the response fields as JSON. Byte fields travel as strings whose
  code points are the byte values (latin-1). Failures answer
  `{"error": ..., "code": ...}` with status 400 (invalid argument), 404
  (not found or unknown method), 409 (already exists) or 500; calls over
  the configured rate answer 429.
- `POST /v1/Subscribe` with `{"topic": ...}` streams one JSON message per
  line until either side closes.
- `GET /metrics` reports request, error and subscription counters as text.
- Any other path answers 502.

`sdb.client.Client(host, port, timeout)` calls the server by method name
(its default port is 10000, so pass the configured `http_port`):

```python
from sdb.client import Client

with Client(port=8000) as client:
    client.call("Set", key=b"hello", value=b"world")
    print(client.call("Get", key=b"hello"))
```

For `Subscribe`, `call` returns an iterator over received messages.
`sdb.client.run_benchmark(client, rounds, concurrency)` sends random
`Set` and `Get` calls and returns the request count, failures and elapsed
seconds.

## What it does not do

- There is no gRPC interface; `server.grpc_port` is accepted in the
  configuration but not used.
- There is no clustering or replication. The server is always a single
  node: `CInfo` lists just that node as leader, `/join` and `/delete`
  requests are refused with status 500, and the `cluster` settings other
  than `node_id` and `address` are read but have no effect.
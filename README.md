# dashdotcache

An in-memory key-value cache server. It keeps values with optional expiry
times and lets one key depend on another: once a parent key is deleted or
expires, its children stop being readable too.

## Features

- Values with an optional TTL, which can be set, changed or cleared later
- Parent-child dependencies between keys, with cycle detection
- Optional limits on estimated memory use (`Config.max_memory`) and on the
  number of keys (`Config.max_keys`)
- Sampled cleanup of expired entries (`Cache.cleanup_expired`)
- Prometheus-style metrics: hits, misses, sets, deletes and estimated memory use
- A JSON HTTP API, plus a line-based TCP listener on the Redis port

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running the server

```
dashdotcache
```

By default the HTTP API listens on `127.0.0.1:8080` and the TCP listener on
`127.0.0.1:6379`. Both can be moved:

```
dashdotcache --http-host 0.0.0.0 --http-port 9000 --resp-host 0.0.0.0 --resp-port 7000
```

The command runs until one of the two servers stops, then shuts the other
down and reports how the first one ended.

## HTTP API

Request bodies are JSON and must be sent with `Content-Type: application/json`.

| Method | Path                   | Body / query                                    | Answer |
|--------|------------------------|-------------------------------------------------|--------|
| GET    | `/keys/{key}`          |                                                 | JSON string, or 404 |
| POST   | `/keys/{key}`          | `{"value": "...", "ttl": 10, "parent": "p", "nx": false, "xx": false}` | `OK` or `Key unchanged` |
| DELETE | `/keys/{key}`          |                                                 | `Deleted 1 key(s)`, or 404 |
| GET    | `/keys/{key}/ttl`      |                                                 | JSON integer (`-1`: no expiry), or 404 |
| GET    | `/keys/{key}/info`     |                                                 | JSON object |
| POST   | `/keys/{key}/expire`   | `{"seconds": 30}`                               | `Expiry set`, or 404 |
| POST   | `/keys/{key}/persist`  |                                                 | `Key persisted`, or 404 |
| POST   | `/keys/{key}/parent`   | `{"parent": "p"}`                               | `Parent set`, or 404 |
| GET    | `/keys/{key}/children` | `{"depth": 2}` (depth defaults to 1)            | JSON list of keys |
| GET    | `/keys`                | `?pattern=user*&limit=10`                       | JSON list of keys |
| DELETE | `/keys`                | `{"keys": ["a", "b"]}`                          | `Deleted N key(s)` |
| POST   | `/keys/exists`         | `{"keys": ["a", "b"]}`                          | JSON integer |
| POST   | `/ping`                | `{"message": "hi"}` or `null`                   | the message, or `PONG` |
| POST   | `/flush`               |                                                 | `All keys flushed` |
| GET    | `/metrics`             |                                                 | Prometheus text |

A key pattern is either `*`, a prefix ending in `*`, or an exact key.

The `ttl` and `seconds` fields are whole seconds. `nx` writes only if the key
is new, `xx` only if it already exists; when the condition fails the answer
is `Key unchanged`. A write that the cache refuses (unknown parent, a
dependency cycle, a limit reached) is answered with 400 and `SET failed`.
The info object holds `key`, `exists`, `ttl`, `value`, `parent` and
`children_count`.

The application itself comes from `dashdotcache.http_api.create_app(executor)`,
a Starlette app, so it can be mounted or served by any ASGI server;
`dashdotcache.http_api.run(executor, host, port)` serves it with uvicorn.

## Using the cache as a library

```python
from dashdotcache.cache import Cache, Config, SetOptions

cache = Cache(Config())
cache.set("parent", "p", SetOptions())
cache.set("child", "c", SetOptions(ttl=30.0, parent="parent"))

cache.get("child")                     # "c"
cache.children_recursive("parent", 5)  # [("child", 1)]
cache.delete("parent")
cache.get("child")                     # None: its parent is gone
```

Used directly, the cache accepts strings, integers, floats, bytes, dicts,
lists and sets as values. Other methods include `ttl`, `expire`, `persist`,
`delete_many`, `exists`, `exists_many`, `keys`, `parent`, `set_parent`,
`flush_all` and `memory_usage`; `cache.stats.render()` gives the metrics text.

Failed writes raise a subclass of `dashdotcache.errors.CacheError`:
`DependenciesDisabledError`, `ParentNotFoundError`, `DependencyCycleError`,
`MemoryLimitExceededError` or `KeyLimitExceededError`.

Commands can also go through `dashdotcache.executor.CommandExecutor`, whose
`execute` takes a command object (`Get`, `Set`, `Del`, `Expire`, `TtlQuery`,
`Persist`, `Exists`, `Ping`, `ListKeys`, `FlushAll`, `SetParent`,
`GetParent`, `GetChildren`, `GetInfo`) and returns a `CommandResponse` with a
`ResponseKind` and its data. That is the layer the HTTP API uses.

## What it does not do

- The TCP listener does not understand the Redis protocol: it answers every
  line it receives with `+PONG` and ignores the contents.
- `/dash` serves only a short notice; there is no dashboard.
- Everything lives in memory; nothing is written to disk, and a restart
  starts empty.
- Expired entries are dropped when they are read or when
  `Cache.cleanup_expired` is called; the server does not run that cleanup on
  a timer, and `Config.ttl_cleanup_interval` is not used by anything.
# mediarpc

Building blocks for the JSON-RPC side of a media server. The package needs only the standard library.

## Modules

- `mediarpc.request_cache`
  - `RequestCache(timeout)` stores a copy of each response under a session id and a request id. Every entry is dropped `timeout` milliseconds after it is added.
  - A retried request can therefore be answered from the cache.
  - `get_cached_response` returns a copy of the response. It raises `CacheError` with "Session not cached" or "Request not cached" when there is no entry.
  - `clear()` empties the cache, and `len()` counts the entries.
  - `CacheEntry` is a single entry with its expiry timer.
- `mediarpc.resources`
  - `check_resources(limit_percent)` compares the threads and open files of the current process with the soft `RLIMIT_NPROC` and `RLIMIT_NOFILE` limits. The counts are read from `/proc/self`.
  - It raises `ResourceLimitError` when usage goes above `limit_percent` of a limit.
  - An unlimited limit is not checked.
  - `DEFAULT_RESOURCE_LIMIT_PERCENT` is `0.80`.
  - `check_threads`, `check_open_files`, `get_max_threads`, `get_max_open_files`, `get_number_of_threads`, `get_number_of_open_files` and `stat_field` are also available.
- `mediarpc.ptree`
  - `PropertyTree` is an ordered tree of string values. Its keys may repeat, and children with an empty key form arrays.
  - It has dotted-path `get` / `put` / `get_child` / `put_child`, `add_child`, `erase`, `count` and `items`.
  - It converts with `to_python()` and `PropertyTree.from_python()`.
  - `read_json`, `read_ini`, `read_info` and `read_xml` read files and raise `ParserError` on failure.
  - `merge_property_trees(merged, second)` merges `second` into `merged` in place. Values and arrays are replaced, and objects are merged key by key.
- `mediarpc.config`
  - `load_config(config, file_name, modules_config_path)` loads the main file. It then loads every module file found below the module directories and places each one under `modules.<subdirs>.<name>`.
  - If the main file cannot be read, `load_config` prints the error to stderr and exits with status 1.
  - A module file that fails to load is reported and skipped.
  - `load_file`, `diff_path_to_key`, `load_modules_config` and `load_modules_config_from_dir` are the steps it uses.
  - Unknown file types raise `ParseError`.
- `mediarpc.rpc`
  - `parse_request` parses a request and raises `CallError` with `ErrorCode.PARSE_ERROR` on bad JSON.
  - `serialize_response` writes compact JSON.
  - `require_params` checks that params are present.
  - `get_or_create_session_id` returns `(session_id, found)`.
  - `response_session_id` returns the session id of a response, and `inject_session_id` adds one to a request.
  - `ping` answers `{"value": "pong"}` and echoes the session id when one is given.
- `mediarpc.transaction`
  - `run_transaction(params, process)` runs the `operations` of a batch in order.
    - Operation `i` must have id `i`.
    - Each one gets the session id of the transaction.
    - Strings of the form `"newref:<index>"` are replaced by the `value` of the result of an earlier operation.
    - `process(request)` returns `(response, keep_going)`, and the batch stops when `keep_going` is false.
  - `inject_refs` and `insert_result` are the helpers that resolve these references.
  - `CachingHooks(cache)` puts a `RequestCache` around a request handler.
    - `pre_process(request)` returns a cached response, or `None`.
    - `post_process(request, response)` caches the response the first time it is seen.

## Installation

```
pip install .
```

## Examples

```python
from mediarpc.request_cache import RequestCache, CacheError

cache = RequestCache(20000)  # milliseconds
cache.add_response("session-1", "7", {"jsonrpc": "2.0", "id": 7, "result": {}})

try:
    cached = cache.get_cached_response("session-1", "7")
except CacheError:
    cached = None
```

```python
from mediarpc.ptree import PropertyTree
from mediarpc.config import load_config

config = PropertyTree()
load_config(config, "/etc/media/server.conf.json", "")
period = config.get("mediaServer.resources.garbageCollectorPeriod", 240)
```

Configuration file names have the form `<name>.conf.<json|ini|info|xml>`. The key `configPath` is set to the directory of the file that was loaded. If no module path is given, module files are read from the `modules` directory next to the main file. Several module directories can be given, separated by `:`.

```python
from mediarpc.transaction import run_transaction

def process(request):
    return {"result": {"value": "obj-" + request["id"]}}, True

reply = run_transaction(
    {"sessionId": "s1", "operations": [
        {"id": 0, "method": "create", "params": {}},
        {"id": 1, "method": "invoke", "params": {"object": "newref:0"}},
    ]},
    process,
)
```

## What this package does not do

This package has no server and no command to start one. It includes no WebSocket or other transport. It registers no method dispatcher. It does not create, invoke, subscribe to or release media objects, and it does not manage sessions. Apart from `ping`, those RPC methods are left to the application that uses these helpers.

## Tests

```
pip install .[test]
pytest
```
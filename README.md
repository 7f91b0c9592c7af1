# leaf

Building blocks for game servers made of cooperating modules, each with its
own loop. The package has no dependencies outside the standard library.

## Modules

- `leaf.chanrpc` – a queue-based RPC `Server` and `Client`. Functions are
  registered with `Server.register(id, f, ret)`, where `ret` is a `Ret`
  (`NONE`, `ONE` or `MANY`). The thread that owns the server takes calls from
  `server.chan_call` and runs them with `server.exec(...)`. Clients call
  synchronously (`call0`, `call1`, `call_n`), fire and forget with
  `Server.go`, or call asynchronously with `async_call`, whose results arrive
  on `client.chan_async_ret` and are handled by `client.cb(...)`. Failures
  raise `ChanRPCError`.
- `leaf.tasks` – `Spawner.go(f, cb)` runs `f` in a thread and queues `cb`
  on `chan_cb` for the owning thread to run with `Spawner.cb`; `close()`
  waits for all of them. `new_linear_context()` gives a `LinearContext` whose
  jobs run one at a time in submission order.
- `leaf.modules` – subclass `Module` (`on_init`, `run(close_sig)`,
  `on_destroy`), then `register` modules and call `init()` to initialise them
  in order and start each `run` in a thread; `destroy()` signals, joins and
  destroys them in reverse order. `Registry` does the same for a private set.
- `leaf.logger` – `Logger(level, pathname, stream)` with `debug`, `release`,
  `error` and `fatal` (which logs, then raises `SystemExit(1)`). Messages go
  to a stream (standard output by default) or, with a `pathname`, to daily
  `YYYY-MM-DD.log` files, errors also to `YYYY-MM-DD.err.log`. Module-level
  `debug`, `release`, `error`, `fatal` and `close` use a default logger that
  `export` replaces; `refresh_log` starts a thread that moves the default
  logger to new files after midnight and removes old ones.
- `leaf.applog` – `AppLog(path_fmt, max_files)` writes records as sorted
  `key=value` lines (`wa_format`) or JSON lines (`json_format`,
  `json_struct_format`) to a `TimeRotateFile`, or prints them when `path_fmt`
  is empty. `GameRecordLog` and `EventLog` are record dataclasses;
  `game_record(body)` stamps a fresh UUID into `log_id` and writes it to the
  process-wide log from `game_logger()`.
- `leaf.rotating` – `TimeRotateFile(path_fmt, max_file_cnt)`, a buffered file
  whose name follows `%Y %m %d %H %M` in the pattern (Asia/Shanghai time),
  flushed by a background thread, removing the oldest matching files beyond
  the limit. Usable as a context manager.
- `leaf.guid` – the `UUID` value type, `from_string`, `from_bytes`, their
  `_or_nil` forms, `scan` and `NullUUID` for database values, and the
  predefined namespaces. `leaf.guidgen` – `Generator` and `new_v1` to
  `new_v5`.
- `leaf.conv` – loose conversions (`to_string`, `to_int`, `to_int64`,
  `to_float`, `to_bool`, `to_json`, ...), environment expansion
  (`env_string`, `get_file_path`) and base64 helpers for query maps
  (`from_b64`, `from_b64_map`, `to_b64_map`).
- `leaf.fileutil` – `path_exists`, `tail_file`, `get_dir_path` and
  `get_ip`, which picks a client IP from proxy headers or the peer address.
- `leaf.conf` – `Config` and the shared `settings` instance.

## Install

    pip install .

For the tests:

    pip install ".[test]"
    pytest

## Examples

```python
import threading

from leaf.chanrpc import Ret, Server

server = Server(10)
server.register("add", lambda a, b: a + b, Ret.ONE)

def serve():
    while True:
        server.exec(server.chan_call.get())

threading.Thread(target=serve, daemon=True).start()

client = server.open(10)
print(client.call1("add", 1, 2))  # 3

client.async_call("add", 1, 2, callback=lambda value, err: print(value), ret=Ret.ONE)
client.cb(client.chan_async_ret.get())  # prints 3
```

```python
from leaf.tasks import Spawner

spawner = Spawner(10)
result = []
spawner.go(lambda: result.append(1 + 1), lambda: print(result[0]))
spawner.close()  # prints 2
```

```python
from leaf.guid import NAMESPACE_DNS
from leaf.guidgen import new_v5

print(new_v5(NAMESPACE_DNS, "www.example.com"))
# 2ed6657d-e927-568b-95e1-2665a8aea6a2
```

## What it does not do

The package has no networking: there is no TCP or WebSocket server, no
connection gate, no cluster links and no console server or console commands.
It has no command-line program. Modules, RPC servers and loggers are driven
from your own code.
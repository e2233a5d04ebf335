# xredis

A small in-memory key-value server that speaks a subset of the RESP
wire protocol. Simple Redis clients, `redis-cli` among them, can send it
commands.

## Running the server

```
pip install .
xredis
```

Options:

| Option | Default | Meaning |
|--------|---------|---------|
| `--host` | all addresses | address to listen on |
| `--port` | `6379` | TCP port to listen on |

At startup the server prints a banner and restores its state from
`xredis_dump.db` in the working directory, if that file exists. Entries
from the file are added to the empty store. If the file exists but cannot
be decoded, the command logs the error and exits with status 1; it does
the same if the port cannot be bound. Ctrl-C stops the server.

The `SAVE` command writes the whole store, expiration times included, to
`xredis_dump.db` in the working directory. The file is JSON.

## Supported commands

| Command | Reply |
|---------|-------|
| `PING` | `PONG` |
| `ECHO value` | the value |
| `SET key value` | `OK` |
| `SET key value EX seconds` / `PX milliseconds` | `OK`; the key expires that long from now |
| `SET key value EXAT unix-seconds` / `PXAT unix-milliseconds` | `OK`; the key expires at that time |
| `GET key` | the stored value, a list, or nil |
| `DEL key` | `1` if the key existed, otherwise `0` |
| `EXISTS key` | `1` or `0` |
| `INCR key` / `DECR key` | the new value, as a bulk string |
| `LPUSH key value` / `RPUSH key value` | `OK` |
| `SAVE` | `OK` |

Command names are not case-sensitive; the `SET` expiration modes are and
must be written in upper case. Every string is replied to as a bulk
string.

Keys that do not exist count as `0` for `INCR` and `DECR`, and as an empty
list for `LPUSH` and `RPUSH`. `INCR`, `DECR`, `LPUSH` and `RPUSH` keep the
key's expiration time. An expired key is removed the next time it is
accessed.

When a command fails, the reply is a RESP error:

- `ERR FAILED-DESERIALIZING`: the request is not valid RESP
- `ERR UNEXPECTED-ARGUMENT-TYPE`: the request is not a non-empty array of strings
- `ERR INVALID-COMMAND`: unknown command name
- `ERR INVALID-ARGUMENTS-NUMBER`: wrong number of arguments
- `ERR UNRECOGNIZED-TIMEOUT-MODE` / `ERR INVALID-TIMEOUT-VALUE`: bad `SET` expiration
- `ERR VALUE-NOT-NUMERIC-OR-MAX-REACHED`: `INCR`/`DECR` on a non-integer, or past the signed 64-bit range
- `ERR VALUE-NOT-A-LIST`: `LPUSH`/`RPUSH` on a key that holds a string

## Using it as a library

```python
from xredis.resp import RespString, deserialize
from xredis.store import XRedis, StoreError
from xredis.commands import handle_request

store = XRedis()
store.set("greeting", RespString("hello"))
print(store.get("greeting"))          # RespString(str='hello')

reply = handle_request(store, b"*2\r\n$4\r\nINCR\r\n$7\r\ncounter\r\n")
print(reply)                          # b'$1\r\n1\r\n'

store.set("name", RespString("text"))
try:
    store.increment("name")
except StoreError as exc:
    print(exc)                        # ERR VALUE-NOT-NUMERIC-OR-MAX-REACHED
```

- `xredis.resp` holds the wire types `RespString`, `RespInt`, `RespError`,
  `RespArray` and `RespNil`, each with `serialize()`, and
  `deserialize(data)`, which returns a value and the number of bytes it
  used, or raises `RespDecodeError`.
- `xredis.store` holds `XRedis`, a thread-safe store with `set`,
  `set_with_expiration` (taking a `datetime`), `get`, `exists`, `delete`,
  `increment`, `decrement`, `lpush`, `rpush`, `serialize` and `load`.
  Failed operations raise `StoreError`.
- `xredis.commands` holds `handle_request(store, data)` and
  `expiration_time(mode, value)`, with the `ExpirationMode` enum.
- `xredis.server` holds `load_stored_state(store, path)`, `serve(store,
  host, port)`, which returns a bound `socketserver` server to run with
  `serve_forever()`, and `main`, the `xredis` command.

## Limits

- Each read of up to 1024 bytes from a connection is handled as one
  request. Pipelined requests in one read are not all answered, and a
  request longer than 1024 bytes is not read whole.
- Only the commands above exist; there is no way to read part of a list,
  list keys, or authenticate.
- State is written to disk only by `SAVE`; nothing is saved on shutdown.
  Expired keys are dropped only when accessed.

## Tests

```
pip install .[test]
pytest
```
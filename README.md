# iosched

`iosched` runs non-blocking Berkeley socket operations on a `poll`-based
event loop. You register sockets with a `Triggers` object and start
operations such as `accept`, `connect`, `recvmsg` and `sendmsg` on them.
`accept`, `recvmsg` and `sendmsg` are first tried straight away. If the
attempt would block, the operation is queued until `poll` reports that the
socket is ready. `connect` always waits for the socket to become writable.
Each operation returns a `concurrent.futures.Future`. The future holds the
result, or an `OSError` that carries the error number.

`Triggers.wait()` runs one round of the loop and returns how many sockets had
events. If nothing is waiting, it returns 0 straight away.
`Triggers.wait_for(ms)` does the same but gives up after `ms` milliseconds.

The package needs a POSIX system, because it uses `select.poll` and `fcntl`.
It depends on nothing outside the standard library.

## Installing

```
pip install .
```

## Modules

- `iosched.socket_handle.SocketHandle` owns one socket.
  - `SocketHandle()` owns nothing.
  - `SocketHandle(fd)` takes over an existing descriptor.
  - `SocketHandle(domain, type, protocol)` opens a new socket.
  - `SocketHandle.from_socket(sock)` wraps a `socket.socket`.
  - The handle closes its socket on `close()` or when used as a context
    manager.
  - It records the last error seen on the socket (`set_error`, `get_error`).
  - Handles compare by descriptor.
- `iosched.socket_address` holds socket addresses.
  - `SocketAddress(family, address)` stores an `AF_INET`, `AF_INET6` or
    `AF_UNIX` address. It is false when it has no address.
  - `make_address(address, family=None)` builds one. It infers the family
    from the shape of the address when `family` is not given.
- `iosched.socket_option.SocketOption` holds the raw bytes of an option value.
  `SocketOption.from_int(1)` builds one and `to_int()` reads it back.
- `iosched.socket_message` holds the parts of a message.
  - `MessageBuffer` collects byte views over your buffers. After a partial
    transfer of `n` bytes, `buffers += n` drops the buffers that are used up
    and trims the first one that is only partly used.
  - `SocketMessage` holds the buffers, `control` data as
    `(level, type, data)` tuples, an optional `address`, and `flags`.
  - `advance_buffer(buffer, n)` returns a view of `buffer` that skips its
    first `n` bytes.
- `iosched.sync_operations` runs operations on a `SocketHandle` directly.
  Failures raise `OSError`.
- `iosched.async_operations` runs operations on a `SocketDialog`. `accept`,
  `connect`, `recvmsg` and `sendmsg` return futures. The other operations run
  at once.
- `iosched.api` has the same operations and picks the implementation from the
  argument: synchronous for a `SocketHandle`, asynchronous for a
  `SocketDialog`.
- `iosched.execution_trigger.ExecutionTrigger` is the event an operation
  waits for: `READ`, `WRITE`, or `EAGER` to complete at once.
- `iosched.task_queue` provides `Task`, `TaskQueue` and `run_queue`, the FIFO
  queues that the multiplexer runs ready work from.
- `iosched.poll_multiplexer.PollMultiplexer` keeps the `poll` interest list
  and a read queue and a write queue for each socket.
- `iosched.executor.Executor` extends `PollMultiplexer`.
  - `Executor.push` makes a handle non-blocking.
  - `Executor.emplace` opens a new non-blocking socket.
  - `Executor.set` starts an operation and returns its future.
- `iosched.socket_dialog.SocketDialog` pairs a socket with a weak reference
  to its executor. It is false once the executor is gone or the socket is
  closed.
- `iosched.triggers.Triggers` is the entry point.
  - It owns an `Executor`.
  - It creates dialogs with `emplace(domain, type, protocol)` or
    `push(handle)`. `push` accepts a `SocketHandle`, a `socket.socket` or a
    descriptor.
  - It runs the loop with `wait()` or `wait_for(ms)`.

## Example

```python
import socket

from iosched import api
from iosched.socket_address import make_address
from iosched.socket_option import SocketOption
from iosched.triggers import Triggers

triggers = Triggers()
server = triggers.emplace(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
api.setsockopt(server, socket.SOL_SOCKET, socket.SO_REUSEADDR, SocketOption.from_int(1))
api.bind(server, make_address(("127.0.0.1", 8080)))
api.listen(server, socket.SOMAXCONN)

future = api.accept(server)
while not future.done():
    triggers.wait()

client, peer = future.result()   # a SocketDialog and a SocketAddress
```

## Echo server

The package includes a TCP echo server. It accepts connections and sends
every byte a client sends back to that client:

```
iosched-echo --host 127.0.0.1 --port 8080
```

Both options default to the values shown. You can also start the server from
Python:

- `iosched.echo.run_server(host, port)` runs the server until there is
  nothing left to wait for.
- `iosched.echo.make_server(triggers, host, port)` sets up a listening server
  on an existing `Triggers` object and returns the server's dialog.

## What it does not do

- `poll` is the only event mechanism. There is no epoll, kqueue or Windows
  support.
- The only command is the echo server. The package has no client program.

## Running the tests

```
pip install .[test]
pytest
```
"""Socket operations on a :class:`SocketDialog` that complete through its executor.

Operations that wait for the socket (accept, connect, recvmsg, sendmsg)
return a :class:`concurrent.futures.Future`; the others run at once and
behave like their counterparts in :mod:`iosched.sync_operations`.
"""

from __future__ import annotations

import errno
import itertools
import socket as _socket
from concurrent.futures import Future
from typing import Any

from . import sync_operations as _sync
from .errors import error_message
from .execution_trigger import ExecutionTrigger
from .executor import Executor
from .socket_address import SocketAddress
from .socket_dialog import SocketDialog
from .socket_handle import SocketHandle
from .socket_option import SocketOption

__all__ = [
    "accept",
    "bind",
    "connect",
    "fcntl",
    "get_executor",
    "getpeername",
    "getsockname",
    "getsockopt",
    "handle_connect_error",
    "listen",
    "recvmsg",
    "sendmsg",
    "set_error_if_not_blocked",
    "setsockopt",
    "shutdown",
]

_MSG_NOSIGNAL = getattr(_socket, "MSG_NOSIGNAL", 0)
_BLOCKED = frozenset({errno.EWOULDBLOCK, errno.EAGAIN})
_CONNECT_PENDING = frozenset(
    {errno.EINPROGRESS, errno.EAGAIN, errno.EALREADY, errno.EISCONN}
)

# One in every 256 operations skips the eager attempt so that operations
# already waiting on the multiplexer get a turn.
_fairness = itertools.count(1)


def _eager_turn() -> bool:
    return next(_fairness) % 256 != 0


def get_executor(dialog: SocketDialog) -> Executor:
    """Return the dialog's executor; raise ValueError if it is gone."""
    executor = dialog.executor
    if executor is None:
        raise ValueError(error_message("Invalid executor in dialog."))
    return executor


def handle_connect_error(dialog: SocketDialog, error: int) -> None:
    """Record a connect error unless it means the connection is under way."""
    if error in _CONNECT_PENDING:
        return
    dialog.socket.set_error(error)


def set_error_if_not_blocked(handle: SocketHandle, error: int) -> bool:
    """Record ``error`` unless it is a would-block error; return whether recorded."""
    if error in _BLOCKED:
        return False
    handle.set_error(error)
    return True


def accept(dialog: SocketDialog) -> Future:
    """Accept a connection; the future holds ``(SocketDialog, SocketAddress)``."""
    executor = get_executor(dialog)
    socket = dialog.socket

    if executor.is_eager("accept") and _eager_turn():
        try:
            sock, addr = _sync.accept(socket)
        except OSError as exc:
            if set_error_if_not_blocked(socket, exc.errno or errno.EIO):
                return executor.set(socket, ExecutionTrigger.EAGER, None)
        else:
            result = (SocketDialog(executor, executor.push(sock)), addr)
            return executor.set(socket, ExecutionTrigger.EAGER, lambda: result)

    def _accept() -> tuple[SocketDialog, SocketAddress]:
        sock, addr = _sync.accept(socket)
        return SocketDialog(executor, executor.push(sock)), addr

    return executor.set(socket, ExecutionTrigger.READ, _accept)


def bind(dialog: SocketDialog, address: Any) -> None:
    """Bind the dialog's socket to a local address."""
    _sync.bind(dialog.socket, address)


def connect(dialog: SocketDialog, address: Any) -> Future:
    """Connect to ``address``; the future holds 0 once the socket is connected."""
    executor = get_executor(dialog)
    socket = dialog.socket
    try:
        _sync.connect(socket, address)
    except OSError as exc:
        handle_connect_error(dialog, exc.errno or errno.EIO)
    return executor.set(socket, ExecutionTrigger.WRITE, lambda: 0)


def fcntl(dialog: SocketDialog, cmd: int, *args: Any) -> Any:
    """Run a file control command on the dialog's socket."""
    return _sync.fcntl(dialog.socket, cmd, *args)


def getpeername(dialog: SocketDialog) -> SocketAddress:
    """Return the address of the connected peer."""
    return _sync.getpeername(dialog.socket)


def getsockname(dialog: SocketDialog) -> SocketAddress:
    """Return the local address of the dialog's socket."""
    return _sync.getsockname(dialog.socket)


def getsockopt(
    dialog: SocketDialog, level: int, optname: int, buflen: int = 4
) -> SocketOption:
    """Read a socket option of at most ``buflen`` bytes."""
    return _sync.getsockopt(dialog.socket, level, optname, buflen)


def listen(dialog: SocketDialog, backlog: int) -> None:
    """Mark the dialog's socket as accepting connections."""
    _sync.listen(dialog.socket, backlog)


def recvmsg(dialog: SocketDialog, message: Any, flags: int) -> Future:
    """Receive into ``message``; the future holds the byte count (0 at end of stream)."""
    executor = get_executor(dialog)
    socket = dialog.socket

    if executor.is_eager("recvmsg") and _eager_turn():
        try:
            length = _sync.recvmsg(socket, message, flags)
        except OSError as exc:
            if set_error_if_not_blocked(socket, exc.errno or errno.EIO):
                return executor.set(socket, ExecutionTrigger.EAGER, None)
        else:
            return executor.set(socket, ExecutionTrigger.EAGER, lambda: length)

    return executor.set(
        socket,
        ExecutionTrigger.READ,
        lambda: _sync.recvmsg(socket, message, flags),
    )


def sendmsg(dialog: SocketDialog, message: Any, flags: int) -> Future:
    """Send ``message``; the future holds the number of bytes sent."""
    executor = get_executor(dialog)
    socket = dialog.socket
    flags |= _MSG_NOSIGNAL

    if executor.is_eager("sendmsg") and _eager_turn():
        try:
            length = _sync.sendmsg(socket, message, flags)
        except OSError as exc:
            if set_error_if_not_blocked(socket, exc.errno or errno.EIO):
                return executor.set(socket, ExecutionTrigger.EAGER, None)
        else:
            return executor.set(socket, ExecutionTrigger.EAGER, lambda: length)

    return executor.set(
        socket,
        ExecutionTrigger.WRITE,
        lambda: _sync.sendmsg(socket, message, flags),
    )


def setsockopt(dialog: SocketDialog, level: int, optname: int, option: Any) -> None:
    """Set a socket option on the dialog's socket."""
    _sync.setsockopt(dialog.socket, level, optname, option)


def shutdown(dialog: SocketDialog, how: int) -> None:
    """Shut down reading, writing or both on the dialog's socket."""
    _sync.shutdown(dialog.socket, how)
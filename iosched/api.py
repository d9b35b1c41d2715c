"""Socket operations that work on handles and on dialogs alike.

Given a :class:`SocketHandle`, an operation runs at once as in
:mod:`iosched.sync_operations`. Given a :class:`SocketDialog`, the
operations that wait for the socket return a future completed by the
dialog's executor, as in :mod:`iosched.async_operations`.
"""

from __future__ import annotations

import struct
from types import ModuleType
from typing import Any

from . import async_operations as _async
from . import sync_operations as _sync
from .socket_dialog import SocketDialog
from .socket_handle import SocketHandle

__all__ = [
    "accept",
    "bind",
    "connect",
    "fcntl",
    "getpeername",
    "getsockname",
    "getsockopt",
    "listen",
    "recvmsg",
    "sendmsg",
    "setsockopt",
    "shutdown",
]

_INT_SIZE = struct.calcsize("i")


def _operations(socket: Any) -> ModuleType:
    if isinstance(socket, SocketDialog):
        return _async
    if isinstance(socket, SocketHandle):
        return _sync
    raise TypeError(
        f"expected a SocketHandle or a SocketDialog, not {type(socket).__name__}"
    )


def accept(socket: Any) -> Any:
    """Accept a connection on a listening socket."""
    return _operations(socket).accept(socket)


def bind(socket: Any, address: Any) -> None:
    """Bind the socket to a local address."""
    _operations(socket).bind(socket, address)


def connect(socket: Any, address: Any) -> Any:
    """Connect the socket to a remote address."""
    return _operations(socket).connect(socket, address)


def fcntl(socket: Any, cmd: int, *args: Any) -> Any:
    """Run a file control command on the socket."""
    return _operations(socket).fcntl(socket, cmd, *args)


def getpeername(socket: Any) -> Any:
    """Return the address of the connected peer."""
    return _operations(socket).getpeername(socket)


def getsockname(socket: Any) -> Any:
    """Return the local address of the socket."""
    return _operations(socket).getsockname(socket)


def getsockopt(socket: Any, level: int, optname: int, buflen: int = _INT_SIZE) -> Any:
    """Read a socket option of at most ``buflen`` bytes."""
    return _operations(socket).getsockopt(socket, level, optname, buflen)


def listen(socket: Any, backlog: int) -> None:
    """Mark the socket as accepting connections."""
    _operations(socket).listen(socket, backlog)


def recvmsg(socket: Any, message: Any, flags: int) -> Any:
    """Receive into the message's buffers."""
    return _operations(socket).recvmsg(socket, message, flags)


def sendmsg(socket: Any, message: Any, flags: int) -> Any:
    """Send the message's buffers."""
    return _operations(socket).sendmsg(socket, message, flags)


def setsockopt(socket: Any, level: int, optname: int, option: Any) -> None:
    """Set a socket option."""
    _operations(socket).setsockopt(socket, level, optname, option)


def shutdown(socket: Any, how: int) -> None:
    """Shut down reading, writing or both."""
    _operations(socket).shutdown(socket, how)
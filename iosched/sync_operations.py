"""Blocking-style socket operations on a :class:`SocketHandle`.

Every operation raises :class:`OSError` when the system call fails; a
socket in non-blocking mode raises :class:`BlockingIOError` when it would
block. Interrupted calls are retried.

Messages for :func:`sendmsg` and :func:`recvmsg` are objects with the
attributes ``buffers`` (buffer objects, writable for receiving),
``control`` (ancillary data as ``(level, type, data)`` tuples), ``address``
(a :class:`SocketAddress` or None) and ``flags``.
"""

from __future__ import annotations

import fcntl as _fcntl
import socket
import struct
from typing import Any

from .socket_address import SocketAddress
from .socket_handle import SocketHandle
from .socket_option import SocketOption

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


def _to_address(family: int, raw: Any) -> SocketAddress:
    if raw is None or raw in ("", b""):
        return SocketAddress(family)
    return SocketAddress(family, raw)


def _raw_address(address: Any) -> Any:
    if isinstance(address, SocketAddress):
        if address.address is None:
            raise ValueError("the socket address is empty")
        return address.address
    return address


def _ancillary_space(control: Any) -> int:
    cmsg_space = getattr(socket, "CMSG_SPACE", None)
    entries = list(control or ())
    if not entries or cmsg_space is None:
        return 0
    return sum(cmsg_space(len(data)) for _, _, data in entries)


def accept(handle: SocketHandle) -> tuple[SocketHandle, SocketAddress]:
    """Accept a connection; return the new handle and the peer address."""
    conn, raw = handle._require_socket().accept()
    return SocketHandle.from_socket(conn), _to_address(conn.family, raw)


def bind(handle: SocketHandle, address: Any) -> None:
    """Bind the socket to a local address."""
    handle._require_socket().bind(_raw_address(address))


def connect(handle: SocketHandle, address: Any) -> None:
    """Connect the socket to a remote address."""
    handle._require_socket().connect(_raw_address(address))


def fcntl(handle: SocketHandle, cmd: int, *args: Any) -> Any:
    """Run a file control command on the socket's descriptor."""
    fd = handle._require_socket().fileno()
    return _fcntl.fcntl(fd, cmd, *args)


def getpeername(handle: SocketHandle) -> SocketAddress:
    """Return the address of the connected peer."""
    sock = handle._require_socket()
    return _to_address(sock.family, sock.getpeername())


def getsockname(handle: SocketHandle) -> SocketAddress:
    """Return the local address of the socket."""
    sock = handle._require_socket()
    return _to_address(sock.family, sock.getsockname())


def getsockopt(
    handle: SocketHandle, level: int, optname: int, buflen: int = _INT_SIZE
) -> SocketOption:
    """Read a socket option of at most ``buflen`` bytes."""
    value = handle._require_socket().getsockopt(level, optname, buflen)
    return SocketOption(value, buflen)


def listen(handle: SocketHandle, backlog: int) -> None:
    """Mark the socket as accepting connections."""
    handle._require_socket().listen(backlog)


def recvmsg(handle: SocketHandle, message: Any, flags: int) -> int:
    """Receive into the message's buffers and return the byte count.

    The entries already in ``message.control`` reserve room for ancillary
    data and are replaced by what arrives. ``message.flags`` is set to the
    flags of the received message, and the sender's address is stored in
    ``message.address`` when that attribute is not None.
    """
    sock = handle._require_socket()
    buffers = list(message.buffers)
    nbytes, ancdata, msg_flags, raw = sock.recvmsg_into(
        buffers, _ancillary_space(message.control), flags
    )
    message.control = list(ancdata)
    message.flags = msg_flags
    if message.address is not None and raw:
        message.address = _to_address(sock.family, raw)
    return nbytes


def sendmsg(handle: SocketHandle, message: Any, flags: int) -> int:
    """Send the message's buffers and return the number of bytes sent."""
    sock = handle._require_socket()
    buffers = list(message.buffers)
    control = list(message.control or ())
    address = message.address
    if address:
        return sock.sendmsg(buffers, control, flags, _raw_address(address))
    return sock.sendmsg(buffers, control, flags)


def setsockopt(handle: SocketHandle, level: int, optname: int, option: Any) -> None:
    """Set a socket option from a :class:`SocketOption`, int or bytes."""
    if isinstance(option, SocketOption):
        option = bytes(option)
    handle._require_socket().setsockopt(level, optname, option)


def shutdown(handle: SocketHandle, how: int) -> None:
    """Shut down reading, writing or both on the socket."""
    handle._require_socket().shutdown(how)
"""A thread-safe owner of a native socket descriptor."""

from __future__ import annotations

import errno
import functools
import socket
import threading
from typing import Any

from .errors import error_message, raise_system_error

__all__ = ["INVALID_SOCKET", "SocketHandle"]

INVALID_SOCKET = -1
"""The descriptor value of a handle that owns no socket."""


@functools.total_ordering
class SocketHandle:
    """Sole owner of a socket; closing the handle closes the socket.

    ``SocketHandle()`` owns nothing, ``SocketHandle(fd)`` takes over an
    existing descriptor and ``SocketHandle(domain, type, protocol)`` opens a
    new socket. Handles compare and order by descriptor, also against plain
    integers. The handle also records the last error seen on the socket.
    """

    __slots__ = ("_sock", "_error", "_lock", "__weakref__")

    def __init__(self, *args: Any) -> None:
        self._lock = threading.Lock()
        self._error = 0
        self._sock: socket.socket | None = None
        if not args:
            return
        if len(args) == 1:
            fd = args[0]
            if not isinstance(fd, int) or isinstance(fd, bool):
                raise TypeError(f"a socket descriptor must be an int, not {fd!r}")
            if fd == INVALID_SOCKET:
                return
            try:
                self._sock = socket.socket(fileno=fd)
            except ValueError:
                raise_system_error(error_message("invalid socket descriptor."), errno.EBADF)
            except OSError as exc:
                raise_system_error(
                    error_message("invalid socket descriptor."), exc.errno or errno.EBADF
                )
            return
        if len(args) == 3:
            domain, kind, protocol = args
            self._sock = socket.socket(domain, kind, protocol)
            return
        raise TypeError(
            "SocketHandle takes no arguments, a descriptor, "
            f"or (domain, type, protocol); got {len(args)} arguments"
        )

    @classmethod
    def from_socket(cls, sock: socket.socket) -> "SocketHandle":
        """Take ownership of an open :class:`socket.socket`."""
        if not isinstance(sock, socket.socket):
            raise TypeError(f"expected a socket.socket, not {sock!r}")
        handle = cls()
        handle._sock = sock
        return handle

    def _require_socket(self) -> socket.socket:
        with self._lock:
            sock = self._sock
        if sock is None or sock.fileno() == INVALID_SOCKET:
            raise_system_error(error_message("invalid socket handle."), errno.EBADF)
        return sock

    def fileno(self) -> int:
        """Return the native descriptor, or ``INVALID_SOCKET``."""
        with self._lock:
            sock = self._sock
        return INVALID_SOCKET if sock is None else sock.fileno()

    def __int__(self) -> int:
        return self.fileno()

    def __bool__(self) -> bool:
        return self.fileno() != INVALID_SOCKET

    @staticmethod
    def _key(other: object) -> int | None:
        if isinstance(other, SocketHandle):
            return other.fileno()
        if isinstance(other, int) and not isinstance(other, bool):
            return other
        return None

    def __eq__(self, other: object) -> bool:
        key = self._key(other)
        if key is None:
            return NotImplemented
        return self.fileno() == key

    def __lt__(self, other: object) -> bool:
        key = self._key(other)
        if key is None:
            return NotImplemented
        return self.fileno() < key

    def __hash__(self) -> int:
        return hash(self.fileno())

    def set_error(self, error: int) -> None:
        """Record ``error`` as the last error on the socket."""
        with self._lock:
            self._error = int(error)

    def get_error(self) -> int:
        """Return the last recorded error number, 0 if there is none."""
        with self._lock:
            return self._error

    def swap(self, other: "SocketHandle") -> None:
        """Exchange the sockets and errors of two handles."""
        if other is self:
            return
        first, second = sorted((self, other), key=id)
        with first._lock, second._lock:
            self._sock, other._sock = other._sock, self._sock
            self._error, other._error = other._error, self._error

    def close(self) -> None:
        """Close the socket; the handle then owns nothing."""
        with self._lock:
            sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()

    def __enter__(self) -> "SocketHandle":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass

    def __repr__(self) -> str:
        return f"SocketHandle(fd={self.fileno()}, error={self.get_error()})"
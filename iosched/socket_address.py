"""Socket addresses for the families the library supports."""

from __future__ import annotations

import functools
import ipaddress
import os
import socket
from typing import Any

__all__ = ["SocketAddress", "make_address"]

_AF_UNIX = getattr(socket, "AF_UNIX", None)
_FAMILIES = {socket.AF_UNSPEC, socket.AF_INET, socket.AF_INET6}
if _AF_UNIX is not None:
    _FAMILIES.add(_AF_UNIX)


def _check_port(port: Any) -> int:
    if not isinstance(port, int) or isinstance(port, bool):
        raise ValueError(f"port must be an integer, not {port!r}")
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port {port} out of range")
    return port


def _check_host(host: Any) -> str:
    if not isinstance(host, str):
        raise ValueError(f"host must be a string, not {host!r}")
    return host


def _normalise(family: int, address: Any) -> Any:
    if family == socket.AF_INET:
        if not isinstance(address, tuple) or len(address) != 2:
            raise ValueError("an AF_INET address is a (host, port) tuple")
        return (_check_host(address[0]), _check_port(address[1]))
    if family == socket.AF_INET6:
        if not isinstance(address, tuple) or not 2 <= len(address) <= 4:
            raise ValueError(
                "an AF_INET6 address is a (host, port[, flowinfo[, scope_id]]) tuple"
            )
        host, port, *rest = address
        rest += [0] * (2 - len(rest))
        for field in rest:
            if not isinstance(field, int) or isinstance(field, bool) or field < 0:
                raise ValueError(f"invalid AF_INET6 field {field!r}")
        return (_check_host(host), _check_port(port), rest[0], rest[1])
    if _AF_UNIX is not None and family == _AF_UNIX:
        if not isinstance(address, (str, bytes)):
            raise ValueError("an AF_UNIX address is a path")
        return address
    raise ValueError(f"address family {family!r} does not take an address")


def _host_bytes(host: str) -> bytes:
    try:
        return ipaddress.ip_address(host.split("%", 1)[0]).packed
    except ValueError:
        return host.encode()


@functools.total_ordering
class SocketAddress:
    """An address of family ``AF_INET``, ``AF_INET6`` or ``AF_UNIX``.

    With no address it stands for empty storage of ``family``, which is
    false in a boolean context.
    """

    __slots__ = ("_family", "_address")

    def __init__(self, family: int = socket.AF_UNSPEC, address: Any = None) -> None:
        if family not in _FAMILIES:
            raise ValueError(f"unsupported address family {family!r}")
        self._family = family
        self._address = None if address is None else _normalise(family, address)

    @property
    def family(self) -> int:
        """The address family."""
        return self._family

    @property
    def address(self) -> Any:
        """The address in the form the :mod:`socket` module uses, or None."""
        return self._address

    def _sort_key(self) -> tuple:
        address = self._address
        if address is None:
            return (int(self._family), 0, b"", ())
        if isinstance(address, tuple):
            return (int(self._family), 1, _host_bytes(address[0]), address[1:])
        return (int(self._family), 1, os.fsencode(address), ())

    def __bool__(self) -> bool:
        return self._address is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SocketAddress):
            return NotImplemented
        return self._family == other._family and self._address == other._address

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SocketAddress):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __hash__(self) -> int:
        return hash((int(self._family), self._address))

    def __repr__(self) -> str:
        return f"SocketAddress({self._family!r}, {self._address!r})"


def make_address(address: Any = None, family: int | None = None) -> SocketAddress:
    """Build a :class:`SocketAddress`, inferring the family when not given.

    A 2-tuple is ``AF_INET``, a 3- or 4-tuple is ``AF_INET6`` and a path is
    ``AF_UNIX``. With no address the result is empty.
    """
    if address is None:
        return SocketAddress(socket.AF_UNSPEC if family is None else family)
    if family is None:
        if isinstance(address, tuple) and len(address) == 2:
            family = socket.AF_INET
        elif isinstance(address, tuple) and len(address) in (3, 4):
            family = socket.AF_INET6
        elif isinstance(address, (str, bytes)) and _AF_UNIX is not None:
            family = _AF_UNIX
        else:
            raise ValueError(f"cannot infer an address family for {address!r}")
    return SocketAddress(family, address)
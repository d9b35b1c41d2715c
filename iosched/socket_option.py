"""A byte-level wrapper for socket option values."""

from __future__ import annotations

import functools
import struct
import sys
from typing import Iterator

__all__ = ["SocketOption"]

_INT = struct.Struct("i")


@functools.total_ordering
class SocketOption:
    """The raw bytes of a socket option value.

    ``capacity`` is the largest size the value may have; it defaults to the
    size of ``data``. Options are ordered first by size, then by their bytes.
    """

    __slots__ = ("_data", "_capacity")

    def __init__(self, data: bytes = b"", capacity: int | None = None) -> None:
        data = bytes(data)
        if capacity is None:
            capacity = len(data)
        if capacity < 0:
            raise ValueError("capacity must not be negative")
        if len(data) > capacity:
            raise ValueError(
                f"option of {len(data)} bytes exceeds capacity of {capacity}"
            )
        self._data = data
        self._capacity = capacity

    @classmethod
    def from_int(cls, value: int) -> "SocketOption":
        """Build an option holding a native C ``int``."""
        return cls(_INT.pack(value), _INT.size)

    def to_int(self) -> int:
        """Read the option as a signed native-endian integer."""
        if not self._data:
            raise ValueError("empty option has no integer value")
        return int.from_bytes(self._data, sys.byteorder, signed=True)

    @property
    def capacity(self) -> int:
        """The largest size the option value may have."""
        return self._capacity

    def __bytes__(self) -> bytes:
        return self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[int]:
        return iter(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SocketOption):
            return NotImplemented
        return self._data == other._data

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SocketOption):
            return NotImplemented
        return (len(self._data), self._data) < (len(other._data), other._data)

    def __hash__(self) -> int:
        return hash(self._data)

    def __repr__(self) -> str:
        return f"SocketOption({self._data!r}, capacity={self._capacity})"
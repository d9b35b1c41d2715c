"""Scatter/gather buffers and the messages sent and received with them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from .socket_address import SocketAddress

__all__ = ["MessageBuffer", "SocketMessage", "advance_buffer"]


def _byte_view(buffer: Any) -> memoryview:
    view = memoryview(buffer)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


def advance_buffer(buffer: Any, length: int) -> memoryview:
    """Return a byte view of ``buffer`` with its first ``length`` bytes skipped.

    When ``length`` covers the whole buffer the result is empty.
    """
    if length < 0:
        raise ValueError("cannot advance a buffer by a negative length")
    view = _byte_view(buffer)
    if len(view) <= length:
        return view[:0]
    return view[length:]


class MessageBuffer:
    """An ordered collection of byte views for scatter/gather I/O.

    The views refer to the caller's buffers, so data received into a
    message lands in the objects that were appended.
    """

    __slots__ = ("_buffers",)

    def __init__(self, buffers: Iterable[Any] = ()) -> None:
        self._buffers: list[memoryview] = []
        for buffer in buffers:
            self.append(buffer)

    def append(self, buffer: Any) -> None:
        """Add a bytes-like object to the end of the collection."""
        self._buffers.append(_byte_view(buffer))

    def __iter__(self) -> Iterator[memoryview]:
        return iter(self._buffers)

    def __len__(self) -> int:
        return len(self._buffers)

    def __bool__(self) -> bool:
        return bool(self._buffers)

    def __getitem__(self, index: int) -> memoryview:
        return self._buffers[index]

    def __iadd__(self, length: int) -> "MessageBuffer":
        """Skip ``length`` bytes after a partial send or receive.

        Buffers that are used up are dropped; the first buffer that is only
        partly used is trimmed at the front.
        """
        if length < 0:
            raise ValueError("cannot advance by a negative length")
        remaining = length
        kept: list[memoryview] = []
        for buffer in self._buffers:
            if remaining and remaining >= len(buffer):
                remaining -= len(buffer)
                continue
            if remaining:
                kept.append(advance_buffer(buffer, remaining))
                remaining = 0
            else:
                kept.append(buffer)
        self._buffers = kept
        return self

    def __repr__(self) -> str:
        return f"MessageBuffer(<{len(self._buffers)} buffers>)"


@dataclass
class SocketMessage:
    """A message: its buffers, ancillary data, peer address and flags.

    Set ``address`` to an empty :class:`SocketAddress` to have a receive
    store the sender's address in it; leave it None to ignore the sender.
    ``control`` holds ancillary data as ``(level, type, data)`` tuples.
    """

    address: SocketAddress | None = None
    buffers: MessageBuffer = field(default_factory=MessageBuffer)
    control: list = field(default_factory=list)
    flags: int = 0
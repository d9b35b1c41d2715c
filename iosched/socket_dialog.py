"""A socket paired with the executor that runs its operations."""

from __future__ import annotations

import functools
import weakref
from typing import TYPE_CHECKING, Optional

from .errors import error_message
from .socket_handle import SocketHandle

if TYPE_CHECKING:
    from .executor import Executor

__all__ = ["SocketDialog"]


def _dead() -> None:
    return None


@functools.total_ordering
class SocketDialog:
    """A socket handle and a weak reference to the executor that owns it.

    A dialog is true while the executor is alive and the socket is open.
    Dialogs compare by their sockets.
    """

    __slots__ = ("_executor", "socket")

    def __init__(
        self, executor: Optional["Executor"], socket: Optional[SocketHandle]
    ) -> None:
        self._executor = _dead if executor is None else weakref.ref(executor)
        self.socket = socket

    @property
    def executor(self) -> Optional["Executor"]:
        """The executor, or None once it has been discarded."""
        return self._executor()

    def __bool__(self) -> bool:
        return (
            self._executor() is not None
            and self.socket is not None
            and bool(self.socket)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SocketDialog):
            return NotImplemented
        if self.socket is None and other.socket is None:
            raise ValueError(error_message("Invalid socket pointer."))
        if self.socket is other.socket:
            return True
        return (
            self.socket is not None
            and other.socket is not None
            and self.socket == other.socket
        )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SocketDialog):
            return NotImplemented
        if self.socket is None or other.socket is None:
            raise ValueError(error_message("Invalid socket pointer."))
        return self.socket < other.socket

    def __hash__(self) -> int:
        return hash(self.socket)

    def __repr__(self) -> str:
        return f"SocketDialog(executor={self.executor!r}, socket={self.socket!r})"
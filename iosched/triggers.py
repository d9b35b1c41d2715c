"""The entry point for running socket operations on a poll executor."""

from __future__ import annotations

import socket as _socket
from concurrent.futures import Future
from typing import Any, Callable, Optional

from .execution_trigger import ExecutionTrigger
from .executor import Executor
from .socket_dialog import SocketDialog
from .socket_handle import SocketHandle

__all__ = ["Triggers"]


class Triggers:
    """Owns an :class:`Executor` and hands out dialogs bound to it.

    Dialogs refer to the executor weakly, so they stop being usable once
    the ``Triggers`` object that owns it is discarded.
    """

    __slots__ = ("_executor",)

    def __init__(self) -> None:
        self._executor = Executor()

    @property
    def executor(self) -> Executor:
        """The executor that runs the operations."""
        return self._executor

    def push(self, handle: Any) -> SocketDialog:
        """Make ``handle`` non-blocking and return a dialog for it.

        ``handle`` is a :class:`SocketHandle`, a :class:`socket.socket` or a
        native descriptor, whose ownership passes to the dialog.
        """
        if isinstance(handle, _socket.socket):
            handle = SocketHandle.from_socket(handle)
        elif not isinstance(handle, SocketHandle):
            handle = SocketHandle(handle)
        return SocketDialog(self._executor, self._executor.push(handle))

    def emplace(self, *args: Any) -> SocketDialog:
        """Open a socket from ``SocketHandle`` arguments; return its dialog."""
        return SocketDialog(self._executor, self._executor.emplace(*args))

    def set(
        self,
        socket: SocketHandle,
        trigger: ExecutionTrigger,
        func: Optional[Callable[[], Any]],
    ) -> Future:
        """Run ``func`` once ``trigger`` occurs on ``socket``; return its future."""
        return self._executor.set(socket, trigger, func)

    def wait_for(self, interval: Optional[int] = -1) -> int:
        """Wait up to ``interval`` ms for events; return how many occurred."""
        return self._executor.wait_for(interval)

    def wait(self) -> int:
        """Wait without a time limit; return how many events occurred."""
        return self._executor.wait()

    def __repr__(self) -> str:
        return f"Triggers(executor={self._executor!r})"
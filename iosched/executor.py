"""An executor that runs socket operations on a poll multiplexer."""

from __future__ import annotations

import os
from concurrent.futures import Future
from typing import Any, Callable, Optional

from .execution_trigger import ExecutionTrigger
from .poll_multiplexer import PollMultiplexer
from .socket_handle import SocketHandle
from .sync_operations import fcntl

__all__ = ["Executor"]


class _FutureReceiver:
    """Delivers an operation's outcome to a :class:`Future`."""

    __slots__ = ("future",)

    def __init__(self, future: Future) -> None:
        self.future = future

    def set_value(self, value: Any) -> None:
        self.future.set_result(value)

    def set_error(self, error: int) -> None:
        self.future.set_exception(OSError(error, os.strerror(error)))


class Executor(PollMultiplexer):
    """Starts operations on non-blocking sockets and runs them as events occur.

    :meth:`set` returns a :class:`concurrent.futures.Future` that holds the
    operation's result, or an :class:`OSError` carrying its error number.
    Callbacks added to the future run when :meth:`wait_for` completes it.
    """

    @staticmethod
    def push(handle: SocketHandle) -> SocketHandle:
        """Put ``handle`` in non-blocking mode and return it."""
        import fcntl as _fcntl

        flags = fcntl(handle, _fcntl.F_GETFL)
        fcntl(handle, _fcntl.F_SETFL, flags | os.O_NONBLOCK)
        return handle

    @staticmethod
    def emplace(*args: Any) -> SocketHandle:
        """Open a socket from ``SocketHandle`` arguments and make it non-blocking."""
        return Executor.push(SocketHandle(*args))

    def set(
        self,
        socket: SocketHandle,
        trigger: ExecutionTrigger,
        func: Optional[Callable[[], Any]],
    ) -> Future:
        """Start an operation that runs ``func`` once ``trigger`` occurs."""
        future: Future = Future()
        future.set_running_or_notify_cancel()
        sender = super().set(socket, trigger, func)
        sender.connect(_FutureReceiver(future)).start()
        return future

    def wait_for(self, interval: Optional[int] = -1) -> int:
        """Wait up to ``interval`` ms for events; return how many occurred."""
        return super().wait_for(interval)

    def wait(self) -> int:
        """Wait without a time limit; return how many events occurred."""
        return self.wait_for(-1)
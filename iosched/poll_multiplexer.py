"""A multiplexer that waits for socket readiness with ``poll``."""

from __future__ import annotations

import bisect
import dataclasses
import errno
import select
import socket as _socket
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from .errors import error_message, raise_system_error
from .execution_trigger import ExecutionTrigger
from .socket_handle import SocketHandle
from .sync_operations import getsockopt
from .task_queue import Task, TaskQueue, run_queue

__all__ = [
    "EAGER_ACCEPT",
    "EAGER_RECV",
    "EAGER_SEND",
    "Demultiplexer",
    "PollEvent",
    "PollMultiplexer",
    "PollOperation",
    "PollSender",
    "clear_events",
    "copy_active",
    "make_poll_event",
    "poll_events",
    "prepare_handles",
    "set_socket_error",
    "update_or_insert_event",
]

EAGER_ACCEPT = True
"""Whether asynchronous accepts are attempted before waiting for an event."""

EAGER_SEND = True
"""Whether asynchronous sends are attempted before waiting for an event."""

EAGER_RECV = True
"""Whether asynchronous receives are attempted before waiting for an event."""

_EAGER_OPERATIONS = frozenset(
    name
    for name, enabled in (
        ("accept", EAGER_ACCEPT),
        ("recvmsg", EAGER_RECV),
        ("sendmsg", EAGER_SEND),
    )
    if enabled
)


class _Receiver(Protocol):
    def set_value(self, value: Any) -> None: ...

    def set_error(self, error: int) -> None: ...


@dataclass
class PollEvent:
    """One entry of a poll list: a descriptor, its interest set and results."""

    fd: int
    events: int = 0
    revents: int = 0


@dataclass
class Demultiplexer:
    """The operations waiting to read from and write to one socket."""

    read_queue: TaskQueue = field(default_factory=TaskQueue)
    write_queue: TaskQueue = field(default_factory=TaskQueue)
    socket: Optional[SocketHandle] = None


def _fd_key(event: PollEvent) -> int:
    return event.fd


def update_or_insert_event(events: list[PollEvent], event: PollEvent) -> PollEvent:
    """Merge ``event`` into the fd-sorted list ``events``; return the entry."""
    pos = bisect.bisect_left(events, event.fd, key=_fd_key)
    if pos < len(events) and events[pos].fd == event.fd:
        events[pos].events |= event.events
        return events[pos]
    events.insert(pos, event)
    return event


def make_poll_event(socket: Any, trigger: ExecutionTrigger) -> PollEvent:
    """Build the poll entry that waits on ``socket`` for ``trigger``."""
    fd = socket if isinstance(socket, int) else socket.fileno()
    event = PollEvent(fd)
    if trigger == ExecutionTrigger.READ:
        event.events |= select.POLLIN
    if trigger == ExecutionTrigger.WRITE:
        event.events |= select.POLLOUT
    return event


def poll_events(events: list[PollEvent], timeout: int = -1) -> list[PollEvent]:
    """Poll ``events`` for up to ``timeout`` ms; return the entries that fired.

    A negative timeout waits without limit. The returned entries are copies
    carrying their ``revents``; an empty list is returned without polling.
    """
    if not events:
        return []
    poller = select.poll()
    for event in events:
        poller.register(event.fd, event.events)
    while True:
        try:
            results = poller.poll(timeout)
            break
        except InterruptedError:
            continue
        except OSError as exc:
            raise_system_error(error_message("poll failed."), exc.errno or errno.EIO)
    revents: dict[int, int] = {}
    for fd, mask in results:
        revents[fd] = revents.get(fd, 0) | mask
    return [
        dataclasses.replace(event, revents=revents[event.fd])
        for event in events
        if revents.get(event.fd)
    ]


def set_socket_error(socket: SocketHandle) -> None:
    """Record the socket's pending ``SO_ERROR`` on the handle.

    A closed or non-socket descriptor records ``EBADF`` or ``ENOTSOCK``;
    any other failure to read the option is raised.
    """
    try:
        error = getsockopt(socket, _socket.SOL_SOCKET, _socket.SO_ERROR).to_int()
    except OSError as exc:
        if exc.errno not in (errno.EBADF, errno.ENOTSOCK):
            raise_system_error(
                error_message("getsockopt failed."), exc.errno or errno.EIO
            )
        error = exc.errno
    socket.set_error(error)


def prepare_handles(revents: int, demux: Demultiplexer, ready: TaskQueue) -> None:
    """Move the operations that ``revents`` makes runnable onto ``ready``."""
    if revents & (select.POLLERR | select.POLLNVAL) and demux.socket is not None:
        set_socket_error(demux.socket)
    if revents & (select.POLLOUT | select.POLLERR | select.POLLNVAL):
        ready.move_back(demux.write_queue)
    if revents & (select.POLLIN | select.POLLHUP | select.POLLERR | select.POLLNVAL):
        ready.move_back(demux.read_queue)


def copy_active(events: list[PollEvent]) -> list[PollEvent]:
    """Return copies of the entries that still have an interest set."""
    return [dataclasses.replace(event) for event in events if event.events]


def clear_events(ready_events: list[PollEvent], interest: list[PollEvent]) -> None:
    """Remove from ``interest`` the events that are about to be handled.

    An error or invalid-descriptor result clears the whole interest set.
    """
    for event in ready_events:
        pos = bisect.bisect_left(interest, event.fd, key=_fd_key)
        if pos < len(interest) and interest[pos].fd == event.fd:
            entry = interest[pos]
            if event.revents & (select.POLLERR | select.POLLNVAL):
                entry.events = 0
            entry.events &= ~event.revents


class PollOperation:
    """A started-or-startable operation: a socket, a function and a receiver.

    When the operation completes, the receiver's ``set_error`` is called with
    the socket's recorded error if there is one; otherwise the function is
    called and its result goes to ``set_value``. A function that raises
    :class:`OSError` completes the operation with that error number.
    """

    def __init__(
        self,
        socket: SocketHandle,
        func: Optional[Callable[[], Any]],
        demux: Demultiplexer,
        lock: threading.Lock,
        receiver: _Receiver,
        trigger: ExecutionTrigger,
    ) -> None:
        self.socket = socket
        self.func = func
        self.demux = demux
        self.receiver = receiver
        self.trigger = trigger
        self._lock = lock
        self._task = Task(lambda _task: self.complete())

    def start(self) -> None:
        """Complete at once if eager or failed; otherwise queue for the event."""
        if self.socket.get_error() or self.trigger == ExecutionTrigger.EAGER:
            self.complete()
            return
        with self._lock:
            if self.trigger == ExecutionTrigger.WRITE:
                self.demux.write_queue.push(self._task)
            if self.trigger == ExecutionTrigger.READ:
                self.demux.read_queue.push(self._task)
            self.demux.socket = self.socket

    def complete(self) -> None:
        """Deliver the operation's result or error to the receiver."""
        error = self.socket.get_error()
        if error:
            self.receiver.set_error(error)
            return
        if self.func is None:
            self.receiver.set_error(errno.EINVAL)
            return
        try:
            result = self.func()
        except OSError as exc:
            self.receiver.set_error(exc.errno or errno.EIO)
            return
        self.receiver.set_value(result)


@dataclass
class PollSender:
    """Describes an operation; connecting it to a receiver makes it runnable."""

    socket: SocketHandle
    func: Optional[Callable[[], Any]]
    trigger: ExecutionTrigger
    demux: Demultiplexer
    events: list[PollEvent]
    lock: threading.Lock

    def connect(self, receiver: _Receiver) -> PollOperation:
        """Register interest in the event and return the operation."""
        if not self.socket.get_error() and self.trigger != ExecutionTrigger.EAGER:
            with self.lock:
                update_or_insert_event(
                    self.events, make_poll_event(self.socket, self.trigger)
                )
        return PollOperation(
            self.socket, self.func, self.demux, self.lock, receiver, self.trigger
        )


class PollMultiplexer:
    """Waits for socket events with ``poll`` and runs the operations they free."""

    def __init__(self) -> None:
        self._demux: dict[int, Demultiplexer] = {}
        self._events: list[PollEvent] = []
        self._lock = threading.Lock()

    @classmethod
    def is_eager(cls, operation: str) -> bool:
        """Whether the named operation is attempted before waiting."""
        return operation in _EAGER_OPERATIONS

    def set(
        self,
        socket: SocketHandle,
        trigger: ExecutionTrigger,
        func: Optional[Callable[[], Any]],
    ) -> PollSender:
        """Return a sender that runs ``func`` once ``trigger`` occurs on ``socket``."""
        with self._lock:
            demux = self._demux.setdefault(socket.fileno(), Demultiplexer())
        return PollSender(
            socket=socket,
            func=func,
            trigger=ExecutionTrigger(trigger),
            demux=demux,
            events=self._events,
            lock=self._lock,
        )

    def wait_for(self, interval: Optional[int] = -1) -> int:
        """Wait up to ``interval`` ms, run ready operations, return the event count.

        A negative or None interval waits without limit; with nothing to wait
        for the call returns 0 at once.
        """
        timeout = -1 if interval is None else int(interval)
        with self._lock:
            active = copy_active(self._events)
        ready_events = poll_events(active, timeout)
        ready = TaskQueue()
        with self._lock:
            clear_events(ready_events, self._events)
            for event in ready_events:
                demux = self._demux.get(event.fd)
                if demux is not None:
                    prepare_handles(event.revents, demux, ready)
        run_queue(ready)
        return len(ready_events)
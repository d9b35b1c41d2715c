import errno
import select
import socket

import pytest

from iosched.execution_trigger import ExecutionTrigger
from iosched.poll_multiplexer import (
    Demultiplexer,
    PollEvent,
    PollMultiplexer,
    clear_events,
    copy_active,
    make_poll_event,
    poll_events,
    prepare_handles,
    set_socket_error,
    update_or_insert_event,
)
from iosched.socket_handle import SocketHandle
from iosched.task_queue import Task, TaskQueue


class Recorder:
    def __init__(self):
        self.values = []
        self.errors = []

    def set_value(self, value):
        self.values.append(value)

    def set_error(self, error):
        self.errors.append(error)


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    a.setblocking(False)
    b.setblocking(False)
    handle = SocketHandle.from_socket(a)
    yield handle, a, b
    handle.close()
    b.close()


def test_make_poll_event_read_and_write(pair):
    handle, a, _ = pair
    read = make_poll_event(handle, ExecutionTrigger.READ)
    write = make_poll_event(handle, ExecutionTrigger.WRITE)
    eager = make_poll_event(handle, ExecutionTrigger.EAGER)
    assert read.fd == a.fileno()
    assert read.events == select.POLLIN
    assert write.events == select.POLLOUT
    assert eager.events == 0


def test_update_or_insert_keeps_sorted_and_merges():
    events = []
    update_or_insert_event(events, PollEvent(7, select.POLLIN))
    update_or_insert_event(events, PollEvent(3, select.POLLOUT))
    merged = update_or_insert_event(events, PollEvent(7, select.POLLOUT))
    assert [e.fd for e in events] == [3, 7]
    assert merged is events[1]
    assert merged.events == select.POLLIN | select.POLLOUT


def test_copy_active_drops_idle_and_copies():
    events = [PollEvent(1, 0), PollEvent(2, select.POLLIN)]
    active = copy_active(events)
    assert [e.fd for e in active] == [2]
    active[0].events = 0
    assert events[1].events == select.POLLIN


def test_clear_events_removes_handled_bits():
    interest = [PollEvent(4, select.POLLIN | select.POLLOUT)]
    clear_events([PollEvent(4, 0, select.POLLIN)], interest)
    assert interest[0].events == select.POLLOUT


def test_clear_events_error_clears_everything():
    interest = [PollEvent(4, select.POLLIN | select.POLLOUT), PollEvent(9, select.POLLIN)]
    clear_events([PollEvent(4, 0, select.POLLERR)], interest)
    assert interest[0].events == 0
    assert interest[1].events == select.POLLIN


def test_prepare_handles_routes_queues():
    demux = Demultiplexer()
    reader, writer = Task(), Task()
    demux.read_queue.push(reader)
    demux.write_queue.push(writer)
    ready = TaskQueue()
    prepare_handles(select.POLLOUT, demux, ready)
    assert list(ready) == [writer]
    prepare_handles(select.POLLHUP, demux, ready)
    assert list(ready) == [writer, reader]
    assert demux.read_queue.is_empty() and demux.write_queue.is_empty()


def test_prepare_handles_error_moves_both_and_records(pair):
    handle, _, _ = pair
    handle.set_error(errno.EPIPE)
    demux = Demultiplexer(socket=handle)
    demux.read_queue.push(Task())
    demux.write_queue.push(Task())
    ready = TaskQueue()
    prepare_handles(select.POLLERR, demux, ready)
    assert len(ready) == 2
    assert handle.get_error() == 0


def test_set_socket_error_on_closed_handle():
    handle = SocketHandle()
    set_socket_error(handle)
    assert handle.get_error() == errno.EBADF


def test_poll_events_empty_and_writable(pair):
    handle, a, _ = pair
    assert poll_events([], 0) == []
    fired = poll_events([PollEvent(a.fileno(), select.POLLOUT)], 1000)
    assert len(fired) == 1
    assert fired[0].revents & select.POLLOUT


def test_is_eager():
    assert PollMultiplexer.is_eager("accept")
    assert PollMultiplexer.is_eager("recvmsg")
    assert PollMultiplexer.is_eager("sendmsg")
    assert not PollMultiplexer.is_eager("connect")


def test_read_operation_waits_for_data(pair):
    handle, a, b = pair
    mux = PollMultiplexer()
    receiver = Recorder()
    mux.set(handle, ExecutionTrigger.READ, lambda: a.recv(16)).connect(receiver).start()
    assert mux.wait_for(0) == 0
    assert receiver.values == []
    b.send(b"ping")
    assert mux.wait_for(1000) == 1
    assert receiver.values == [b"ping"]
    assert mux.wait_for(0) == 0


def test_write_operation_completes(pair):
    handle, a, b = pair
    mux = PollMultiplexer()
    receiver = Recorder()
    mux.set(handle, ExecutionTrigger.WRITE, lambda: a.send(b"pong")).connect(receiver).start()
    assert mux.wait_for(1000) == 1
    assert receiver.values == [4]
    assert b.recv(16) == b"pong"


def test_eager_operation_completes_at_start(pair):
    handle, _, _ = pair
    mux = PollMultiplexer()
    receiver = Recorder()
    mux.set(handle, ExecutionTrigger.EAGER, lambda: "done").connect(receiver).start()
    assert receiver.values == ["done"]
    assert mux.wait_for(0) == 0


def test_socket_error_completes_with_error(pair):
    handle, _, _ = pair
    handle.set_error(errno.ECONNRESET)
    mux = PollMultiplexer()
    receiver = Recorder()
    mux.set(handle, ExecutionTrigger.READ, lambda: 1).connect(receiver).start()
    assert receiver.errors == [errno.ECONNRESET]
    assert receiver.values == []


def test_failing_function_reports_errno(pair):
    handle, a, _ = pair
    mux = PollMultiplexer()
    receiver = Recorder()
    mux.set(handle, ExecutionTrigger.EAGER, lambda: a.recv(16)).connect(receiver).start()
    assert receiver.errors == [errno.EAGAIN]
    assert receiver.values == []
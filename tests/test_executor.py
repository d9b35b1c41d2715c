import errno
import fcntl
import os
import socket

import pytest

from iosched.execution_trigger import ExecutionTrigger
from iosched.executor import Executor
from iosched.socket_handle import SocketHandle


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    first = SocketHandle.from_socket(a)
    second = SocketHandle.from_socket(b)
    yield first, second
    first.close()
    second.close()


def test_push_makes_socket_non_blocking():
    handle = SocketHandle.from_socket(socket.socket())
    try:
        assert Executor.push(handle) is handle
        flags = fcntl.fcntl(handle.fileno(), fcntl.F_GETFL)
        assert flags & os.O_NONBLOCK
    finally:
        handle.close()


def test_push_closed_handle_raises():
    handle = SocketHandle()
    with pytest.raises(OSError) as info:
        Executor.push(handle)
    assert info.value.errno == errno.EBADF


def test_emplace_opens_non_blocking_socket():
    handle = Executor.emplace(socket.AF_INET, socket.SOCK_STREAM, 0)
    try:
        fd = handle.fileno()
        assert fd >= 0
        assert handle.get_error() == 0
        flags = fcntl.fcntl(fd, fcntl.F_GETFL)
        assert flags & os.O_NONBLOCK == os.O_NONBLOCK
    finally:
        handle.close()


def test_eager_operation_completes_at_once(pair):
    executor = Executor()
    future = executor.set(pair[0], ExecutionTrigger.EAGER, lambda: 5)
    assert future.done()
    assert future.result() == 5


def test_eager_operation_error_becomes_exception(pair):
    executor = Executor()

    def fail():
        raise OSError(errno.ECONNRESET, "reset")

    future = executor.set(pair[0], ExecutionTrigger.EAGER, fail)
    assert future.exception().errno == errno.ECONNRESET


def test_recorded_socket_error_fails_operation(pair):
    executor = Executor()
    pair[0].set_error(errno.EPIPE)
    future = executor.set(pair[0], ExecutionTrigger.READ, lambda: 1)
    assert future.done()
    assert future.exception().errno == errno.EPIPE


def test_read_operation_waits_for_event(pair):
    executor = Executor()
    first, second = pair
    Executor.push(first)
    future = executor.set(first, ExecutionTrigger.READ, lambda: first._require_socket().recv(16))
    assert not future.done()
    assert executor.wait_for(0) == 0
    assert not future.done()
    second._require_socket().send(b"hello")
    assert executor.wait() == 1
    assert future.result() == b"hello"


def test_wait_for_with_nothing_registered():
    executor = Executor()
    assert executor.wait_for(0) == 0
    assert executor.wait() == 0


def test_write_operation_runs_when_writable(pair):
    executor = Executor()
    future = executor.set(pair[0], ExecutionTrigger.WRITE, lambda: "ready")
    assert executor.wait_for(1000) == 1
    assert future.result() == "ready"
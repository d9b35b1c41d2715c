import fcntl as _fcntl
import os
import socket
from concurrent.futures import Future

import pytest

from iosched import api
from iosched.socket_address import SocketAddress, make_address
from iosched.socket_handle import SocketHandle
from iosched.socket_message import MessageBuffer, SocketMessage
from iosched.socket_option import SocketOption
from iosched.triggers import Triggers


@pytest.fixture
def pair():
    first, second = socket.socketpair()
    yield first, second
    first.close()
    second.close()


@pytest.fixture
def listener():
    handle = SocketHandle(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
    api.bind(handle, make_address(("127.0.0.1", 0)))
    api.listen(handle, 8)
    yield handle
    handle.close()


def test_unsupported_socket_type_raises():
    with pytest.raises(TypeError):
        api.listen(object(), 1)


def test_getsockname_after_bind(listener):
    address = api.getsockname(listener)
    assert isinstance(address, SocketAddress)
    assert address.family == socket.AF_INET
    assert address.address[0] == "127.0.0.1"
    assert address.address[1] > 0


def test_sync_connect_accept_and_peer(listener):
    server_address = api.getsockname(listener)
    client = SocketHandle(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
    try:
        api.connect(client, server_address)
        conn, peer = api.accept(listener)
        try:
            assert api.getpeername(client) == server_address
            assert peer == api.getsockname(client)
        finally:
            conn.close()
    finally:
        client.close()


def test_getsockopt_socket_type(listener):
    option = api.getsockopt(listener, socket.SOL_SOCKET, socket.SO_TYPE)
    assert option.to_int() == socket.SOCK_STREAM


def test_setsockopt_round_trip(listener):
    api.setsockopt(listener, socket.SOL_SOCKET, socket.SO_KEEPALIVE, SocketOption.from_int(1))
    assert api.getsockopt(listener, socket.SOL_SOCKET, socket.SO_KEEPALIVE).to_int() > 0
    api.setsockopt(listener, socket.SOL_SOCKET, socket.SO_KEEPALIVE, SocketOption.from_int(0))
    assert api.getsockopt(listener, socket.SOL_SOCKET, socket.SO_KEEPALIVE).to_int() == 0


def test_sync_sendmsg_recvmsg(pair):
    first, second = pair
    sender = SocketHandle.from_socket(first)
    receiver = SocketHandle.from_socket(second)
    sent = api.sendmsg(sender, SocketMessage(buffers=MessageBuffer([b"ping"])), 0)
    assert sent == 4
    buf = bytearray(16)
    message = SocketMessage(buffers=MessageBuffer([buf]))
    assert api.recvmsg(receiver, message, 0) == 4
    assert bytes(buf[:4]) == b"ping"


def test_shutdown_signals_end_of_stream(pair):
    first, second = pair
    handle = SocketHandle.from_socket(first)
    receiver = SocketHandle.from_socket(second)
    api.shutdown(handle, socket.SHUT_WR)
    buf = bytearray(16)
    message = SocketMessage(buffers=MessageBuffer([buf]))
    assert api.recvmsg(receiver, message, 0) == 0


def test_fcntl_on_dialog_reports_non_blocking(pair):
    first, _ = pair
    triggers = Triggers()
    dialog = triggers.push(first)
    assert api.fcntl(dialog, _fcntl.F_GETFL) & os.O_NONBLOCK == os.O_NONBLOCK


def test_async_recvmsg_eager(pair):
    first, second = pair
    triggers = Triggers()
    dialog = triggers.push(first)
    second.sendall(b"pong")
    buf = bytearray(16)
    future = api.recvmsg(dialog, SocketMessage(buffers=MessageBuffer([buf])), 0)
    assert isinstance(future, Future)
    assert future.result(timeout=1) == 4
    assert bytes(buf[:4]) == b"pong"


def test_async_recvmsg_waits_for_data(pair):
    first, second = pair
    triggers = Triggers()
    dialog = triggers.push(first)
    buf = bytearray(16)
    future = api.recvmsg(dialog, SocketMessage(buffers=MessageBuffer([buf])), 0)
    assert not future.done()
    second.sendall(b"late")
    assert triggers.wait_for(1000) == 1
    assert future.result() == 4
    assert bytes(buf[:4]) == b"late"


def test_async_sendmsg(pair):
    first, second = pair
    triggers = Triggers()
    dialog = triggers.push(first)
    future = api.sendmsg(dialog, SocketMessage(buffers=MessageBuffer([b"abc"])), 0)
    assert future.result(timeout=1) == 3
    assert second.recv(16) == b"abc"


def test_async_accept(listener):
    triggers = Triggers()
    server = triggers.push(listener)
    future = api.accept(server)
    client = socket.create_connection(api.getsockname(listener).address)
    try:
        for _ in range(50):
            if future.done():
                break
            triggers.wait_for(20)
        dialog, peer = future.result(timeout=1)
        try:
            assert peer.address == client.getsockname()
            assert bool(dialog) is True
        finally:
            dialog.socket.close()
    finally:
        client.close()
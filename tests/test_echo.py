import socket

import pytest

from iosched import api
from iosched.echo import main, make_server
from iosched.triggers import Triggers


def _pump_until(triggers, client, size):
    data = b""
    for _ in range(100):
        triggers.wait_for(20)
        try:
            chunk = client.recv(4096)
        except BlockingIOError:
            continue
        if not chunk:
            break
        data += chunk
        if len(data) >= size:
            break
    return data


@pytest.fixture
def server():
    triggers = Triggers()
    dialog = make_server(triggers, "127.0.0.1", 0)
    yield triggers, dialog
    dialog.socket.close()


def _connect(dialog):
    port = api.getsockname(dialog).address[1]
    client = socket.create_connection(("127.0.0.1", port))
    client.setblocking(False)
    return client


def test_server_listens_on_requested_host(server):
    _, dialog = server
    address = api.getsockname(dialog)
    assert address.address[0] == "127.0.0.1"
    assert address.address[1] > 0


def test_server_sets_reuseaddr(server):
    _, dialog = server
    option = api.getsockopt(dialog, socket.SOL_SOCKET, socket.SO_REUSEADDR)
    assert option.to_int() > 0


def test_echoes_message(server):
    triggers, dialog = server
    client = _connect(dialog)
    try:
        client.sendall(b"hello")
        assert _pump_until(triggers, client, 5) == b"hello"
    finally:
        client.close()


def test_echoes_several_messages_in_order(server):
    triggers, dialog = server
    client = _connect(dialog)
    try:
        client.sendall(b"one")
        assert _pump_until(triggers, client, 3) == b"one"
        client.sendall(b"two")
        assert _pump_until(triggers, client, 3) == b"two"
    finally:
        client.close()


def test_echoes_data_larger_than_buffer(server):
    triggers, dialog = server
    client = _connect(dialog)
    payload = bytes(range(256)) * 12
    try:
        client.sendall(payload)
        assert _pump_until(triggers, client, len(payload)) == payload
    finally:
        client.close()


def test_serves_two_clients(server):
    triggers, dialog = server
    first = _connect(dialog)
    second = _connect(dialog)
    try:
        first.sendall(b"first")
        second.sendall(b"second")
        assert _pump_until(triggers, first, 5) == b"first"
        assert _pump_until(triggers, second, 6) == b"second"
    finally:
        first.close()
        second.close()


def test_make_server_fails_on_port_in_use(server):
    _, dialog = server
    port = api.getsockname(dialog).address[1]
    with pytest.raises(OSError):
        make_server(Triggers(), "127.0.0.1", port)


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit) as info:
        main(["--port", "not-a-number"])
    assert info.value.code == 2
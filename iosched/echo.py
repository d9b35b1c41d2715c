"""A TCP echo server that sends every byte it receives back to its sender."""

from __future__ import annotations

import argparse
import socket as _socket
import sys
from concurrent.futures import Future
from typing import Callable, Optional, Sequence

from . import api
from .socket_address import make_address
from .socket_dialog import SocketDialog
from .socket_message import MessageBuffer, SocketMessage
from .socket_option import SocketOption
from .triggers import Triggers

__all__ = ["main", "make_server", "run_server"]

_BUFFER_SIZE = 1024

_Advance = Callable[[Future], Optional[Future]]


def _report(error: BaseException) -> None:
    if isinstance(error, OSError) and error.strerror:
        print(error.strerror, file=sys.stderr, flush=True)


def _drive(future: Optional[Future], advance: _Advance) -> None:
    """Feed completed futures to ``advance`` until one is still pending."""
    while future is not None:
        if not future.done():
            future.add_done_callback(lambda done: _drive(done, advance))
            return
        future = advance(future)


class _EchoSession:
    """Reads from one client and writes the data back, until it disconnects."""

    def __init__(self, dialog: SocketDialog) -> None:
        self._dialog = dialog
        self._buffer = bytearray()
        self._message = SocketMessage()
        self._reading = True

    def start(self) -> None:
        _drive(self._read(), self._advance)

    def _read(self) -> Future:
        self._buffer = bytearray(_BUFFER_SIZE)
        self._message = SocketMessage(buffers=MessageBuffer([self._buffer]))
        self._reading = True
        return api.recvmsg(self._dialog, self._message, 0)

    def _write(self, length: int) -> Future:
        data = memoryview(self._buffer)[:length]
        self._message = SocketMessage(buffers=MessageBuffer([data]))
        self._reading = False
        return api.sendmsg(self._dialog, self._message, 0)

    def _close(self) -> None:
        self._dialog.socket.close()

    def _advance(self, future: Future) -> Optional[Future]:
        error = future.exception()
        if error is not None:
            _report(error)
            self._close()
            return None
        length = future.result()
        if self._reading:
            if not length:
                self._close()
                return None
            return self._write(length)
        self._message.buffers += length
        if self._message.buffers:
            return api.sendmsg(self._dialog, self._message, 0)
        return self._read()


def _start_acceptor(server: SocketDialog) -> None:
    def advance(future: Future) -> Optional[Future]:
        error = future.exception()
        if error is not None:
            _report(error)
            return None
        client, _peer = future.result()
        _EchoSession(client).start()
        return api.accept(server)

    _drive(api.accept(server), advance)


def make_server(triggers: Triggers, host: str = "127.0.0.1", port: int = 8080) -> SocketDialog:
    """Open a listening socket on ``host``:``port`` and start accepting clients.

    Returns the server's dialog; :class:`OSError` is raised if the socket
    cannot be configured, bound or put into listening mode.
    """
    server = triggers.emplace(_socket.AF_INET, _socket.SOCK_STREAM, _socket.IPPROTO_TCP)
    try:
        api.setsockopt(
            server, _socket.SOL_SOCKET, _socket.SO_REUSEADDR, SocketOption.from_int(1)
        )
        api.bind(server, make_address((host, port)))
        api.listen(server, _socket.SOMAXCONN)
    except OSError:
        server.socket.close()
        raise
    _start_acceptor(server)
    return server


def run_server(host: str = "127.0.0.1", port: int = 8080) -> None:
    """Serve echo clients until there is nothing left to wait for."""
    triggers = Triggers()
    make_server(triggers, host, port)
    while triggers.wait():
        pass


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the echo server from the command line."""
    parser = argparse.ArgumentParser(description="Echo every byte back to TCP clients.")
    parser.add_argument("--host", default="127.0.0.1", help="address to listen on")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    args = parser.parse_args(argv)
    try:
        run_server(args.host, args.port)
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
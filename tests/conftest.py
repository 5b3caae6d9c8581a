from __future__ import annotations

import logging
import socket
import threading
from collections import deque
from typing import Callable, Iterable, Tuple

import pytest

from rrsp.connection import Connection
from rrsp.packet import Frame
from rrsp.server import Server

logging.basicConfig(level=logging.WARNING)

PEER = ("10.0.0.1", 4000)
CLIENT = ("10.0.0.2", 5000)
FOREIGN = ("10.0.0.9", 4000)

Datagram = Tuple[bytes, Tuple[str, int]]
Responder = Callable[[Frame, int], Iterable[Datagram]]


class ScriptedEndpoint:
    """Stands in for UdpEndpoint.

    Every send is handed to *responder* together with the send count; the
    datagrams it returns are queued for ``recvfrom``. An empty queue behaves
    like an expired receive timeout.
    """

    def __init__(self, responder: Responder | None = None):
        self.responder = responder
        self.sent: list[Datagram] = []
        self.inbox: deque[Datagram] = deque()
        self.closed = False

    def sendto(self, data: bytes, addr: Tuple[str, int]) -> None:
        self.sent.append((data, addr))
        if self.responder is not None:
            self.inbox.extend(self.responder(Frame.from_bytes(data), len(self.sent)))

    def recvfrom(self, bufsize: int = 65535, timeout: float | None = None) -> Datagram:
        if not self.inbox:
            raise TimeoutError("timed out")
        return self.inbox.popleft()

    def close(self) -> None:
        self.closed = True

    def sent_frames(self) -> list[Frame]:
        return [Frame.from_bytes(data) for data, _ in self.sent]


def server_responder(server: Server) -> Responder:
    """Route every frame through a real server state machine, as if sent from CLIENT."""

    def respond(frame: Frame, _n: int) -> list[Datagram]:
        reply = server.handle_datagram(frame.to_bytes(), CLIENT)
        return [] if reply is None else [(reply, PEER)]

    return respond


@pytest.fixture
def fake_server() -> Server:
    return Server(ScriptedEndpoint())


@pytest.fixture
def wired_conn(fake_server: Server) -> Connection:
    """An established connection whose peer is an in-process server."""
    conn = Connection(ScriptedEndpoint(server_responder(fake_server)), PEER, timeout_ms=50)
    conn.handshake()
    return conn


@pytest.fixture
def loopback_server():
    srv = Server.bind("127.0.0.1", 0, poll_ms=20)
    t = threading.Thread(target=srv.serve_forever, daemon=True)
    t.start()
    yield srv
    srv.shutdown()
    t.join(timeout=2.0)
    srv.close()


@pytest.fixture
def silent_peer():
    """A bound UDP socket that never answers."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    yield sock.getsockname()
    sock.close()

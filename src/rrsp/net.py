from __future__ import annotations

import logging
import random
import socket
import time
from dataclasses import dataclass
from typing import Tuple

from .constants import MAX_DATAGRAM

logger = logging.getLogger(__name__)

Address = Tuple[str, int]


@dataclass(frozen=True, slots=True)
class Impairment:
    """Simulated channel faults, applied on send and on receive."""

    loss_rate: float = 0.0
    delay_ms: int = 0
    duplicate_rate: float = 0.0

    def should_drop(self) -> bool:
        return self.loss_rate > 0 and random.random() < self.loss_rate

    def should_duplicate(self) -> bool:
        return self.duplicate_rate > 0 and random.random() < self.duplicate_rate

    def sleep_if_needed(self) -> None:
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)


def accept(addr: Address, peer: Address) -> bool:
    """Peer validation: the datagram came from exactly the registered peer."""
    return addr[0] == peer[0] and addr[1] == peer[1]


def resolve(host: str, port: int) -> Address:
    """Resolve *host* to an IPv4 address so it compares equal to ``recvfrom`` results."""
    infos = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_DGRAM)
    ip = infos[0][4][0]
    return ip, port


class UdpEndpoint:
    def __init__(self, sock: socket.socket, impairment: Impairment | None = None):
        self.sock = sock
        self.impairment = impairment or Impairment()

    @classmethod
    def listening(
        cls,
        host: str,
        port: int,
        timeout_ms: int = 0,
        impairment: Impairment | None = None,
    ) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind((host, port))
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000.0)
        return cls(sock, impairment)

    @classmethod
    def sending(cls, impairment: Impairment | None = None) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        return cls(sock, impairment)

    @property
    def address(self) -> Address:
        return self.sock.getsockname()

    def sendto(self, data: bytes, addr: Address) -> None:
        if self.impairment.should_drop():
            logger.debug("impairment dropped outbound %d bytes to %s", len(data), addr)
            return
        self.impairment.sleep_if_needed()
        self.sock.sendto(data, addr)
        if self.impairment.should_duplicate():
            logger.debug("impairment duplicated outbound %d bytes to %s", len(data), addr)
            self.sock.sendto(data, addr)

    def recvfrom(self, bufsize: int = MAX_DATAGRAM, timeout: float | None = None) -> Tuple[bytes, Address]:
        """Receive one datagram.

        With *timeout* set, raises ``TimeoutError`` once that many seconds pass
        without a datagram surviving the impairment.
        """
        poll = self.sock.gettimeout()
        if timeout is None:
            timeout = poll
        deadline = None if timeout is None else time.monotonic() + timeout
        self.sock.settimeout(timeout)
        try:
            while True:
                data, addr = self.sock.recvfrom(bufsize)
                if self.impairment.should_drop():
                    logger.debug("impairment dropped inbound %d bytes from %s", len(data), addr)
                    if deadline is not None:
                        # drops spend the caller's budget, they do not restart it
                        left = deadline - time.monotonic()
                        if left <= 0:
                            raise TimeoutError("timed out")
                        self.sock.settimeout(left)
                    continue
                self.impairment.sleep_if_needed()
                return data, addr
        finally:
            self.sock.settimeout(poll)

    def close(self) -> None:
        self.sock.close()

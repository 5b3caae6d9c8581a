from __future__ import annotations

import enum
import logging

from .arq import ArqEngine, Metrics
from .constants import DEFAULT_TIMEOUT_MS, MAX_ATTEMPTS, SEQ_MODULUS
from .errors import ConnectFailed, ConnectionClosed, Timeout
from .net import Address, Impairment, UdpEndpoint, resolve
from .packet import Frame, FrameType
from .record import Record

logger = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    CLOSED = "closed"
    ESTABLISHED = "established"


class Connection:
    """Client side of the record protocol over one UDP socket.

    A connection is owned by a single thread and runs one exchange at a
    time; the sequence number is the only thing that tells a fresh request
    from a retransmission, so two interleaved ``execute`` calls would
    corrupt it. Abandoning a pending request means closing the connection.
    """

    def __init__(
        self,
        udp: UdpEndpoint,
        peer: Address,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self.udp = udp
        self.peer = peer
        self.sequence = 0
        self.state = ConnectionState.CLOSED
        self._engine = ArqEngine(udp, peer, timeout_ms=timeout_ms, max_attempts=max_attempts)

    @classmethod
    def open(
        cls,
        host: str,
        port: int,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_attempts: int = MAX_ATTEMPTS,
        impairment: Impairment | None = None,
    ) -> "Connection":
        peer = resolve(host, port)
        udp = UdpEndpoint.sending(impairment=impairment)
        conn = cls(udp, peer, timeout_ms=timeout_ms, max_attempts=max_attempts)
        try:
            conn.handshake()
        except BaseException:
            udp.close()
            raise
        return conn

    @property
    def metrics(self) -> Metrics:
        return self._engine.metrics

    def handshake(self) -> None:
        """Send SYN until the peer answers with anything at all."""
        try:
            self._engine.exchange(Frame.control(FrameType.SYN, self.sequence), match_seq=False)
        except Timeout:
            raise ConnectFailed(
                f"{self.peer[0]}:{self.peer[1]} did not answer after {self._engine.max_attempts} attempts"
            ) from None
        self.state = ConnectionState.ESTABLISHED
        logger.info("connection established with %s:%d", self.peer[0], self.peer[1])

    def execute(self, request: Record) -> Record:
        if self.state is not ConnectionState.ESTABLISHED:
            raise ConnectionClosed("connection is not established")

        frame = Frame.data(self.sequence, request.to_bytes())
        try:
            reply = self._engine.exchange(frame, {FrameType.DATA})
        except OSError:
            logger.exception("socket error; closing connection to %s:%d", self.peer[0], self.peer[1])
            self._release()
            raise

        response = Record.from_bytes(reply.payload)
        self.sequence = (self.sequence + 1) % SEQ_MODULUS
        return response

    def close(self) -> None:
        if self.state is ConnectionState.CLOSED:
            self._release()
            return
        try:
            self.udp.sendto(Frame.control(FrameType.FIN, self.sequence).to_bytes(), self.peer)
        except OSError as exc:
            logger.debug("FIN not sent: %s", exc)
        finally:
            self._release()
        logger.info("connection to %s:%d closed", self.peer[0], self.peer[1])

    def _release(self) -> None:
        self.state = ConnectionState.CLOSED
        self.udp.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

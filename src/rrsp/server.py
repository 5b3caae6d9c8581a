from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field

from .arq import Metrics
from .constants import SEQ_MODULUS, SESSION_IDLE_S
from .errors import FormatError
from .net import Address, Impairment, UdpEndpoint
from .packet import Frame, FrameType
from .record import Record
from .store import RecordStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Session:
    """Receiving half of the stop-and-wait state machine for one client.

    ``expected`` is the sequence of the next new request. The reply to the
    previous request is kept so a retransmission of it (the client never saw
    our answer) is answered again without re-running it against the store.
    """

    peer: Address
    expected: int = 0
    last_reply: bytes | None = None
    last_active: float = field(default_factory=time.monotonic)

    @property
    def started(self) -> bool:
        return self.last_reply is not None

    def on_data(self, frame: Frame, store: RecordStore, metrics: Metrics) -> bytes | None:
        if frame.seq == self.expected:
            response = store.apply(Record.from_bytes(frame.payload))
            self.last_reply = Frame.data(frame.seq, response.to_bytes()).to_bytes()
            self.expected = (self.expected + 1) % SEQ_MODULUS
            metrics.exchanges += 1
            return self.last_reply

        if self.last_reply is not None and frame.seq == (self.expected - 1) % SEQ_MODULUS:
            metrics.retransmits += 1
            logger.debug("duplicate seq=%d from %s:%d; resending cached reply", frame.seq, *self.peer)
            return self.last_reply

        metrics.stale += 1
        logger.debug("ignored seq=%d from %s:%d (expected %d)", frame.seq, *self.peer, self.expected)
        return None


class Server:
    def __init__(
        self,
        udp: UdpEndpoint,
        store: RecordStore | None = None,
        *,
        idle_timeout_s: float = SESSION_IDLE_S,
    ):
        self.udp = udp
        self.store = store if store is not None else RecordStore()
        self.sessions: dict[Address, Session] = {}
        self.idle_timeout_s = idle_timeout_s
        self.metrics = Metrics()
        self._stop = threading.Event()

    @classmethod
    def bind(
        cls,
        host: str,
        port: int,
        *,
        poll_ms: int = 200,
        impairment: Impairment | None = None,
        store: RecordStore | None = None,
        idle_timeout_s: float = SESSION_IDLE_S,
    ) -> "Server":
        udp = UdpEndpoint.listening(host, port, timeout_ms=poll_ms, impairment=impairment)
        return cls(udp, store, idle_timeout_s=idle_timeout_s)

    @property
    def address(self) -> Address:
        return self.udp.address

    def expire_idle(self, now: float | None = None) -> int:
        """Forget sessions that have been silent longer than ``idle_timeout_s``."""
        now = time.monotonic() if now is None else now
        idle = [addr for addr, s in self.sessions.items() if now - s.last_active > self.idle_timeout_s]
        for addr in idle:
            del self.sessions[addr]
            logger.info("session expired for %s:%d", addr[0], addr[1])
        return len(idle)

    def handle_datagram(self, raw: bytes, addr: Address) -> bytes | None:
        """Advance the state machine for *addr* and return the reply to send, if any."""
        try:
            frame = Frame.from_bytes(raw)
        except FormatError as exc:
            self.metrics.malformed += 1
            logger.debug("dropped malformed datagram from %s:%d: %s", addr[0], addr[1], exc)
            return None

        now = time.monotonic()
        session = self.sessions.get(addr)
        if session is not None and now - session.last_active > self.idle_timeout_s:
            del self.sessions[addr]
            logger.info("session expired for %s:%d", addr[0], addr[1])
            session = None

        if frame.kind is FrameType.SYN:
            # a SYN after requests were served is a new client reusing the address
            if session is None or session.started:
                self.sessions[addr] = Session(addr, last_active=now)
                logger.info("session opened for %s:%d", addr[0], addr[1])
            else:
                session.last_active = now
            return Frame.control(FrameType.ACK, frame.seq).to_bytes()

        if session is None:
            self.metrics.foreign += 1
            logger.debug("dropped %s from %s:%d without a session", frame.kind.name, addr[0], addr[1])
            return None

        session.last_active = now

        if frame.kind is FrameType.FIN:
            del self.sessions[addr]
            logger.info("session closed for %s:%d", addr[0], addr[1])
            return None

        if frame.kind is FrameType.DATA:
            try:
                return session.on_data(frame, self.store, self.metrics)
            except ValueError as exc:
                self.metrics.malformed += 1
                logger.warning("rejected request seq=%d from %s:%d: %s", frame.seq, addr[0], addr[1], exc)
                return None

        self.metrics.stale += 1
        return None

    def serve_forever(self) -> None:
        host, port = self.address
        logger.info("record server listening on %s:%d", host, port)
        last_sweep = time.monotonic()
        while not self._stop.is_set():
            now = time.monotonic()
            if now - last_sweep >= 1.0:
                self.expire_idle(now)
                last_sweep = now

            try:
                raw, addr = self.udp.recvfrom()
            except TimeoutError:
                continue

            reply = self.handle_datagram(raw, addr)
            if reply is not None:
                self.udp.sendto(reply, addr)
                self.metrics.packets_sent += 1

        self.metrics.end_ts = time.monotonic()
        logger.info("record server stopped; sessions=%d records=%d", len(self.sessions), len(self.store))

    def shutdown(self) -> None:
        self._stop.set()

    def close(self) -> None:
        self.udp.close()

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import AbstractSet

from .constants import DEFAULT_TIMEOUT_MS, MAX_ATTEMPTS, MAX_DATAGRAM
from .errors import FormatError, Timeout
from .net import Address, UdpEndpoint, accept
from .packet import Frame, FrameType
from .timer import Timer

logger = logging.getLogger(__name__)

ANY_KIND: AbstractSet[FrameType] = frozenset(FrameType)


@dataclass(slots=True)
class Metrics:
    packets_sent: int = 0
    exchanges: int = 0
    timeouts: int = 0
    retransmits: int = 0
    foreign: int = 0
    malformed: int = 0
    stale: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: float | None = None

    @property
    def discarded(self) -> int:
        return self.foreign + self.malformed + self.stale

    @property
    def duration_s(self) -> float:
        end = self.end_ts if self.end_ts is not None else time.monotonic()
        return max(0.0, end - self.start_ts)


@dataclass(slots=True)
class ArqEngine:
    """Stop-and-wait retransmission over an unreliable datagram endpoint.

    One frame is outstanding at a time. Each attempt sends the frame, arms a
    single timer and receives until either a valid reply arrives or the
    timer expires; expiry retransmits the identical bytes. A reply is valid
    when it comes from ``peer``, decodes, carries the sequence number just
    sent and has one of the accepted kinds. With ``match_seq`` off any
    sequence number is accepted. Everything else is discarded without
    changing state.
    """

    udp: UdpEndpoint
    peer: Address
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_attempts: int = MAX_ATTEMPTS
    metrics: Metrics = field(default_factory=Metrics)

    def exchange(
        self,
        frame: Frame,
        kinds: AbstractSet[FrameType] = ANY_KIND,
        *,
        match_seq: bool = True,
    ) -> Frame:
        raw = frame.to_bytes()
        timer = Timer()

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                self.metrics.retransmits += 1
                logger.debug("retransmit %s seq=%d attempt=%d", frame.kind.name, frame.seq, attempt)

            self.udp.sendto(raw, self.peer)
            self.metrics.packets_sent += 1

            timer.start(self.timeout_ms)
            try:
                reply = self._await_reply(frame.seq if match_seq else None, kinds, timer)
            finally:
                timer.stop()

            if reply is not None:
                self.metrics.exchanges += 1
                return reply

            self.metrics.timeouts += 1
            logger.debug("timeout; %s seq=%d attempt=%d/%d", frame.kind.name, frame.seq, attempt, self.max_attempts)

        logger.warning(
            "no reply from %s:%d to %s seq=%d after %d attempts",
            self.peer[0],
            self.peer[1],
            frame.kind.name,
            frame.seq,
            self.max_attempts,
        )
        raise Timeout(f"no reply to {frame.kind.name} seq={frame.seq} after {self.max_attempts} attempts")

    def _await_reply(self, seq: int | None, kinds: AbstractSet[FrameType], timer: Timer) -> Frame | None:
        while not timer.expired():
            wait = timer.remaining()
            if wait <= 0:
                break
            try:
                raw, addr = self.udp.recvfrom(MAX_DATAGRAM, timeout=wait)
            except TimeoutError:
                return None

            if not accept(addr, self.peer):
                self.metrics.foreign += 1
                logger.debug("dropped datagram from foreign sender %s:%d", addr[0], addr[1])
                continue

            try:
                reply = Frame.from_bytes(raw)
            except FormatError as exc:
                self.metrics.malformed += 1
                logger.debug("dropped malformed datagram: %s", exc)
                continue

            if (seq is not None and reply.seq != seq) or reply.kind not in kinds:
                self.metrics.stale += 1
                logger.debug("dropped stale %s seq=%d (expected seq=%s)", reply.kind.name, reply.seq, seq)
                continue

            return reply

        return None

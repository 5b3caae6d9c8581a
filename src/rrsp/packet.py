from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

from .constants import ACK, DATA, FIN, HEADER_FORMAT, RECORD_FORMAT, SEQ_MODULUS, SYN
from .errors import FormatError

HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
RECORD_SIZE = struct.calcsize(RECORD_FORMAT)
DATA_FRAME_SIZE = HEADER_SIZE + RECORD_SIZE


class FrameType(enum.IntEnum):
    SYN = SYN
    DATA = DATA
    ACK = ACK
    FIN = FIN

    @property
    def is_control(self) -> bool:
        return self is not FrameType.DATA


@dataclass(frozen=True, slots=True)
class Frame:
    kind: FrameType
    seq: int
    payload: bytes = b""

    def to_bytes(self) -> bytes:
        if not 0 <= self.seq < SEQ_MODULUS:
            raise FormatError(f"sequence out of range: {self.seq}")
        if self.kind.is_control and self.payload:
            raise FormatError(f"{self.kind.name} frame cannot carry a payload")
        if self.kind is FrameType.DATA and len(self.payload) != RECORD_SIZE:
            raise FormatError(f"DATA payload must be {RECORD_SIZE} bytes, got {len(self.payload)}")
        return struct.pack(HEADER_FORMAT, int(self.kind), self.seq) + self.payload

    @staticmethod
    def from_bytes(raw: bytes) -> "Frame":
        if len(raw) < HEADER_SIZE:
            raise FormatError("datagram too small to be a valid frame")

        tag, seq = struct.unpack_from(HEADER_FORMAT, raw)
        try:
            kind = FrameType(tag)
        except ValueError:
            raise FormatError(f"unknown frame type: {tag}") from None

        expected = DATA_FRAME_SIZE if kind is FrameType.DATA else HEADER_SIZE
        if len(raw) != expected:
            raise FormatError(f"{kind.name} frame must be {expected} bytes, got {len(raw)}")

        return Frame(kind=kind, seq=seq, payload=bytes(raw[HEADER_SIZE:]))

    @staticmethod
    def control(kind: FrameType, seq: int) -> "Frame":
        if not kind.is_control:
            raise ValueError("DATA frames need a payload; use Frame.data")
        return Frame(kind=kind, seq=seq)

    @staticmethod
    def data(seq: int, payload: bytes) -> "Frame":
        if len(payload) > RECORD_SIZE:
            raise FormatError(f"payload too large: {len(payload)} > {RECORD_SIZE}")
        return Frame(kind=FrameType.DATA, seq=seq, payload=payload.ljust(RECORD_SIZE, b"\x00"))

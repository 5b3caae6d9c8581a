from __future__ import annotations

import struct

import pytest

from rrsp.errors import FormatError
from rrsp.packet import DATA_FRAME_SIZE, HEADER_SIZE, RECORD_SIZE, Frame, FrameType
from rrsp.record import Record


@pytest.mark.parametrize("kind", [FrameType.SYN, FrameType.ACK, FrameType.FIN])
def test_roundtrip_control(kind):
    f = Frame.control(kind, 7)
    raw = f.to_bytes()
    assert len(raw) == HEADER_SIZE == 8
    assert Frame.from_bytes(raw) == f


def test_roundtrip_data():
    f = Frame.data(seq=0xFFFFFFFF, payload=Record.add(7, "Ann", 30).to_bytes())
    raw = f.to_bytes()
    assert len(raw) == DATA_FRAME_SIZE == 52
    p = Frame.from_bytes(raw)
    assert p == f
    assert Record.from_bytes(p.payload) == Record.add(7, "Ann", 30)


def test_network_byte_order():
    raw = Frame.control(FrameType.FIN, 0x01020304).to_bytes()
    assert raw == b"\x00\x00\x00\x03\x01\x02\x03\x04"
    assert struct.unpack("!II", raw) == (FrameType.FIN, 0x01020304)


def test_data_payload_is_padded():
    f = Frame.data(seq=1, payload=b"abc")
    assert len(f.payload) == RECORD_SIZE
    assert f.payload.startswith(b"abc")
    assert Frame.from_bytes(f.to_bytes()) == f


def test_oversized_payload_rejected():
    with pytest.raises(FormatError):
        Frame.data(seq=1, payload=b"x" * (RECORD_SIZE + 1))


def test_control_frame_with_payload_cannot_be_encoded():
    with pytest.raises(FormatError):
        Frame(FrameType.ACK, 1, b"x").to_bytes()


def test_sequence_out_of_range():
    with pytest.raises(FormatError):
        Frame.control(FrameType.SYN, 1 << 32).to_bytes()


def test_unknown_type_tag():
    raw = struct.pack("!II", 9, 0)
    with pytest.raises(FormatError):
        Frame.from_bytes(raw)


def test_too_short():
    with pytest.raises(FormatError):
        Frame.from_bytes(b"\x00\x00\x00")


@pytest.mark.parametrize("extra", [1, RECORD_SIZE])
def test_control_frame_with_trailing_bytes(extra):
    raw = Frame.control(FrameType.ACK, 3).to_bytes() + b"\x00" * extra
    with pytest.raises(FormatError):
        Frame.from_bytes(raw)


def test_truncated_data_frame():
    raw = Frame.data(seq=2, payload=b"x").to_bytes()
    with pytest.raises(FormatError):
        Frame.from_bytes(raw[:-1])


def test_format_error_is_value_error():
    with pytest.raises(ValueError):
        Frame.from_bytes(b"")

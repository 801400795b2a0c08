from __future__ import annotations

import struct

import pytest

from abx.errors import DecodeError
from abx.packet import (
    RECORD_SIZE,
    REQUEST_SIZE,
    Packet,
    RequestKind,
    decode_packet,
    decode_request,
    encode_request,
)


def test_sizes():
    assert RECORD_SIZE == 17
    assert REQUEST_SIZE == 5


def test_roundtrip_packet():
    p = Packet(symbol="MSFT", side="B", quantity=50, price=100, sequence=1)
    assert decode_packet(p.to_bytes()) == p


def test_roundtrip_extreme_values():
    p = Packet(symbol="AB\x00\x00", side="S", quantity=-(2**31), price=2**31 - 1, sequence=-7)
    assert decode_packet(p.to_bytes()) == p


def test_decode_big_endian_layout():
    raw = b"AAPL" + b"S" + (300).to_bytes(4, "big") + (-5).to_bytes(4, "big", signed=True) + (258).to_bytes(4, "big")
    p = decode_packet(raw)
    assert p == Packet(symbol="AAPL", side="S", quantity=300, price=-5, sequence=258)


def test_decode_keeps_symbol_padding():
    raw = b"IB  " + b"B" + struct.pack("!iii", 1, 2, 3)
    assert decode_packet(raw).symbol == "IB  "


@pytest.mark.parametrize("size", [0, 16, 18])
def test_decode_wrong_size(size):
    with pytest.raises(DecodeError):
        decode_packet(b"\x00" * size)


def test_to_bytes_rejects_bad_symbol():
    with pytest.raises(ValueError):
        Packet(symbol="TOOLONG", side="B", quantity=1, price=1, sequence=1).to_bytes()


def test_encode_stream_all():
    assert encode_request(RequestKind.STREAM_ALL) == b"\x01\x00\x00\x00\x00"
    # a target is ignored for stream-all
    assert encode_request(1, 99) == b"\x01\x00\x00\x00\x00"


def test_encode_resend_small():
    assert encode_request(RequestKind.RESEND, 3) == b"\x02\x00\x00\x00\x03"


def test_encode_resend_uses_full_width():
    assert encode_request(RequestKind.RESEND, 300) == b"\x02\x00\x00\x01\x2c"
    assert encode_request(RequestKind.RESEND, 70000) == b"\x02\x00\x01\x11\x70"
    assert encode_request(RequestKind.RESEND, -1) == b"\x02\xff\xff\xff\xff"


def test_encode_resend_needs_sequence():
    with pytest.raises(ValueError):
        encode_request(RequestKind.RESEND)


def test_encode_resend_out_of_range():
    with pytest.raises(ValueError):
        encode_request(RequestKind.RESEND, 2**31)


def test_encode_unknown_kind():
    with pytest.raises(ValueError):
        encode_request(9)


def test_decode_request():
    assert decode_request(encode_request(RequestKind.RESEND, 4096)) == (RequestKind.RESEND, 4096)
    assert decode_request(encode_request(RequestKind.STREAM_ALL)) == (RequestKind.STREAM_ALL, None)
    with pytest.raises(DecodeError):
        decode_request(b"\x07\x00\x00\x00\x00")


def test_to_dict():
    p = Packet(symbol="META", side="B", quantity=5, price=9, sequence=2)
    assert p.to_dict() == {"symbol": "META", "side": "B", "quantity": 5, "price": 9, "sequence": 2}

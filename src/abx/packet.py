from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

from .constants import INT32_MAX, INT32_MIN, RECORD_FORMAT, REQUEST_FORMAT, RESEND, STREAM_ALL
from .errors import DecodeError

REQUEST_SIZE = struct.calcsize(REQUEST_FORMAT)
RECORD_SIZE = struct.calcsize(RECORD_FORMAT)


class RequestKind(enum.IntEnum):
    STREAM_ALL = STREAM_ALL
    RESEND = RESEND


@dataclass(frozen=True, slots=True)
class Packet:
    symbol: str
    side: str
    quantity: int
    price: int
    sequence: int

    def to_bytes(self) -> bytes:
        symbol = self.symbol.encode("latin-1")
        if len(symbol) != 4:
            raise ValueError(f"symbol must be 4 bytes, got {symbol!r}")
        side = self.side.encode("latin-1")
        if len(side) != 1:
            raise ValueError(f"side must be 1 byte, got {side!r}")
        return struct.pack(RECORD_FORMAT, symbol, side, self.quantity, self.price, self.sequence)

    @staticmethod
    def from_bytes(raw: bytes) -> "Packet":
        if len(raw) != RECORD_SIZE:
            raise DecodeError(f"record must be {RECORD_SIZE} bytes, got {len(raw)}")
        symbol, side, quantity, price, sequence = struct.unpack(RECORD_FORMAT, raw)
        return Packet(
            symbol=symbol.decode("latin-1"),
            side=side.decode("latin-1"),
            quantity=quantity,
            price=price,
            sequence=sequence,
        )

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "side": self.side,
            "quantity": self.quantity,
            "price": self.price,
            "sequence": self.sequence,
        }


def encode_request(kind: RequestKind | int, sequence: int | None = None) -> bytes:
    """Build a 5-byte request frame.

    The resend target is written as a full signed 32-bit big-endian integer;
    ``STREAM_ALL`` frames carry a zero payload.
    """
    kind = RequestKind(kind)
    if kind is RequestKind.RESEND:
        if sequence is None:
            raise ValueError("resend request needs a target sequence")
        if not INT32_MIN <= sequence <= INT32_MAX:
            raise ValueError(f"sequence out of 32-bit range: {sequence}")
        payload = sequence
    else:
        payload = 0
    return struct.pack(REQUEST_FORMAT, int(kind), payload)


def decode_request(raw: bytes) -> tuple[RequestKind, int | None]:
    if len(raw) != REQUEST_SIZE:
        raise DecodeError(f"request must be {REQUEST_SIZE} bytes, got {len(raw)}")
    kind, sequence = struct.unpack(REQUEST_FORMAT, raw)
    try:
        kind = RequestKind(kind)
    except ValueError:
        raise DecodeError(f"unknown request kind: {kind}") from None
    return kind, (sequence if kind is RequestKind.RESEND else None)


def decode_packet(raw: bytes) -> Packet:
    return Packet.from_bytes(raw)

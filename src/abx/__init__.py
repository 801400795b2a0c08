"""ABX exchange feed client.

Fetches a full snapshot of market-data packets over TCP, finds gaps in the
sequence numbers it received, and asks the feed to resend each missing one:
- packet framing (``packet``) is kept apart from the session state machine (``session``)
- gap detection and merging are pure functions (``gaps``)
- the socket and its retry policy live in one place (``net``)
"""

from .errors import AbxError, ConnectError, DecodeError, FramingError, SessionAborted, TransportError
from .gaps import find_missing_sequences, merge_packets
from .net import BackoffPolicy, ConnectionState, TcpConnection
from .packet import Packet, RequestKind, decode_packet, encode_request
from .session import Session, SessionState

__all__ = [
    "AbxError",
    "BackoffPolicy",
    "ConnectError",
    "ConnectionState",
    "DecodeError",
    "FramingError",
    "Packet",
    "RequestKind",
    "Session",
    "SessionAborted",
    "SessionState",
    "TcpConnection",
    "TransportError",
    "decode_packet",
    "encode_request",
    "find_missing_sequences",
    "merge_packets",
]

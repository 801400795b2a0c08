from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .constants import DEFAULT_MAX_MISSING, DEFAULT_SESSION_ATTEMPTS, DEFAULT_SESSION_DELAY_S
from .errors import ConnectError, DecodeError, FramingError, RecordError, SessionAborted, TransportError
from .gaps import count_missing_sequences, find_missing_sequences, merge_packets
from .net import BackoffPolicy, TcpConnection
from .packet import RECORD_SIZE, Packet, RequestKind, decode_packet, encode_request

log = logging.getLogger(__name__)

PacketSink = Callable[[Sequence[Packet]], None]


class SessionState(enum.Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    RESOLVING = "resolving"
    REPAIRING = "repairing"
    DONE = "done"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass(slots=True)
class SessionMetrics:
    attempts: int = 0
    packets_received: int = 0
    records_discarded: int = 0
    resends: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: float | None = None

    @property
    def duration_s(self) -> float:
        if self.end_ts is None:
            return 0.0
        return max(0.0, self.end_ts - self.start_ts)


@dataclass(slots=True)
class Session:
    """Fetch a complete, gap-free snapshot from the feed.

    Each attempt streams the snapshot, asks for every missing sequence one
    at a time, and merges the result. A transport failure anywhere in an
    attempt throws away that attempt's packets and starts over on a fresh
    connection, up to ``policy.max_attempts`` times. ``ConnectError`` is
    not retried here.
    """

    conn: TcpConnection
    policy: BackoffPolicy = field(
        default_factory=lambda: BackoffPolicy(DEFAULT_SESSION_ATTEMPTS, DEFAULT_SESSION_DELAY_S)
    )
    sink: Optional[PacketSink] = None
    max_missing: int = DEFAULT_MAX_MISSING
    state: SessionState = SessionState.IDLE
    metrics: SessionMetrics = field(default_factory=SessionMetrics)

    def run(self) -> list[Packet]:
        self.metrics = SessionMetrics()

        for attempt in range(1, self.policy.max_attempts + 1):
            self.metrics.attempts = attempt
            try:
                packets = self._attempt()
            except ConnectError:
                self._transition(SessionState.ABORTED)
                self.metrics.end_ts = time.monotonic()
                self.conn.close()
                raise
            except TransportError as exc:
                self._transition(SessionState.FAILED)
                log.warning("session attempt %d/%d failed: %s", attempt, self.policy.max_attempts, exc)
                self.conn.close()
                if attempt < self.policy.max_attempts:
                    self.policy.pause()
                continue

            self._transition(SessionState.DONE)
            self.metrics.end_ts = time.monotonic()
            log.info(
                "session complete: %d packets after %d attempt(s), %d resend(s)",
                len(packets),
                attempt,
                self.metrics.resends,
            )
            if self.sink is not None:
                self.sink(packets)
            return packets

        self._transition(SessionState.ABORTED)
        self.metrics.end_ts = time.monotonic()
        raise SessionAborted(f"session failed after {self.policy.max_attempts} attempts")

    def _transition(self, new: SessionState) -> None:
        log.debug("session %s -> %s", self.state.value, new.value)
        self.state = new

    def _attempt(self) -> list[Packet]:
        self._transition(SessionState.IDLE)
        self.conn.connect()

        self._transition(SessionState.STREAMING)
        received = self._stream_all()

        self._transition(SessionState.RESOLVING)
        gap_count = count_missing_sequences(received)
        if gap_count > self.max_missing:
            raise TransportError(
                f"{gap_count} sequences missing from snapshot, more than the limit of {self.max_missing}"
            )
        missing = find_missing_sequences(received)
        if missing:
            log.info("%d sequence(s) missing from snapshot: %s", len(missing), _preview(missing))

        self._transition(SessionState.REPAIRING)
        for seq in missing:
            received.append(self._resend(seq))
        self.conn.close()

        merged = merge_packets(received)
        still_missing = count_missing_sequences(merged)
        if still_missing:
            raise TransportError(f"{still_missing} sequence(s) still missing after repair")
        return merged

    def _stream_all(self) -> list[Packet]:
        self.conn.send(encode_request(RequestKind.STREAM_ALL))
        packets: list[Packet] = []

        while True:
            try:
                raw = self.conn.recv_exact(RECORD_SIZE)
            except FramingError as exc:
                self.metrics.records_discarded += 1
                log.warning("discarding record: %s", exc)
                continue
            if raw is None:
                break

            try:
                packet = decode_packet(raw)
            except DecodeError as exc:
                self.metrics.records_discarded += 1
                log.warning("discarding record: %s", exc)
                continue

            packets.append(packet)
            self.metrics.packets_received += 1

        # the feed closes its side once the snapshot is written
        self.conn.close()
        log.info("snapshot stream ended with %d packet(s)", len(packets))
        return packets

    def _resend(self, seq: int) -> Packet:
        if not self.conn.is_open:
            self.conn.connect()

        self.metrics.resends += 1
        self.conn.send(encode_request(RequestKind.RESEND, seq))
        try:
            raw = self.conn.recv_exact(RECORD_SIZE)
            if raw is None:
                raise TransportError(f"connection closed before resend of {seq} was answered")
            packet = decode_packet(raw)
        except RecordError as exc:
            raise TransportError(f"bad resend answer for {seq}: {exc}") from exc

        if packet.sequence != seq:
            log.warning("asked for sequence %d, feed answered with %d", seq, packet.sequence)
        self.metrics.packets_received += 1
        return packet


def _preview(seqs: list[int], edge: int = 5) -> str:
    if len(seqs) <= 2 * edge:
        return str(seqs)
    head = ", ".join(map(str, seqs[:edge]))
    tail = ", ".join(map(str, seqs[-edge:]))
    return f"[{head}, ... {tail}]"

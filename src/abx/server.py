from __future__ import annotations

import logging
import socket
import threading
from typing import Iterable

from .errors import DecodeError
from .packet import REQUEST_SIZE, Packet, RequestKind, decode_request

log = logging.getLogger(__name__)

DEMO_SYMBOLS = ("MSFT", "AAPL", "AMZN", "META")


def demo_packets(count: int, start: int = 1) -> list[Packet]:
    return [
        Packet(
            symbol=DEMO_SYMBOLS[i % len(DEMO_SYMBOLS)],
            side="B" if i % 2 == 0 else "S",
            quantity=10 * (i + 1),
            price=1000 + i,
            sequence=start + i,
        )
        for i in range(count)
    ]


def _recv_exact(sock: socket.socket, n: int) -> bytes | None:
    buf = b""
    while len(buf) < n:
        chunk = sock.recv(n - len(buf))
        if not chunk:
            return None
        buf += chunk
    return buf


class FeedServer:
    """Loopback ABX feed for local runs and tests.

    Serves one client connection at a time. A stream-all request gets every
    packet not in ``withhold``, in sequence order, then the connection is
    closed. A resend request gets the one packet asked for, and the
    connection stays open.
    """

    def __init__(
        self,
        packets: Iterable[Packet],
        withhold: Iterable[int] = (),
        host: str = "127.0.0.1",
        port: int = 0,
    ):
        self.packets = {p.sequence: p for p in packets}
        self.withhold = frozenset(withhold)
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind((host, port))
        self.sock.listen()
        self.sock.settimeout(0.2)
        self.requests: list[tuple[RequestKind, int | None]] = []
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def address(self) -> tuple[str, int]:
        host, port = self.sock.getsockname()[:2]
        return host, port

    def serve_forever(self) -> None:
        log.info("feed listening on %s:%d", *self.address)
        while not self._stop.is_set():
            try:
                conn, addr = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                if self._stop.is_set():
                    break
                raise
            log.debug("client connected from %s:%d", *addr[:2])
            with conn:
                conn.settimeout(None)
                self._handle(conn)

    def _handle(self, conn: socket.socket) -> None:
        while True:
            try:
                raw = _recv_exact(conn, REQUEST_SIZE)
            except OSError as exc:
                log.debug("client went away: %s", exc)
                return
            if raw is None:
                return

            try:
                kind, seq = decode_request(raw)
            except DecodeError as exc:
                log.warning("ignoring request: %s", exc)
                continue
            self.requests.append((kind, seq))

            if kind is RequestKind.STREAM_ALL:
                records = b"".join(
                    self.packets[s].to_bytes() for s in sorted(self.packets) if s not in self.withhold
                )
                try:
                    conn.sendall(records)
                except OSError as exc:
                    log.debug("client went away mid-snapshot: %s", exc)
                return

            packet = self.packets.get(seq)  # type: ignore[arg-type]
            if packet is None:
                log.warning("resend for unknown sequence %s", seq)
                continue
            try:
                conn.sendall(packet.to_bytes())
            except OSError as exc:
                log.debug("client went away: %s", exc)
                return

    def start(self) -> "FeedServer":
        self._thread = threading.Thread(target=self.serve_forever, daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        self.sock.close()

    def __enter__(self) -> "FeedServer":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

from __future__ import annotations

import enum
import logging
import socket
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .constants import DEFAULT_CONNECT_ATTEMPTS, DEFAULT_CONNECT_DELAY_S, DEFAULT_TIMEOUT_S
from .errors import ConnectError, FramingError, TransportError

log = logging.getLogger(__name__)

SocketFactory = Callable[[Tuple[str, int], Optional[float]], socket.socket]


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    max_attempts: int = DEFAULT_CONNECT_ATTEMPTS
    delay_s: float = DEFAULT_CONNECT_DELAY_S

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay_s < 0:
            raise ValueError(f"delay_s must be >= 0, got {self.delay_s}")

    def pause(self) -> None:
        if self.delay_s > 0:
            time.sleep(self.delay_s)


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DRAINING = "draining"
    BROKEN = "broken"
    CLOSED = "closed"


def _create_connection(address: Tuple[str, int], timeout: Optional[float]) -> socket.socket:
    return socket.create_connection(address, timeout=timeout)


class TcpConnection:
    """Owns the one socket of a session.

    State only moves through ``connect``, ``send``, ``recv_exact`` and
    ``close``. I/O failures mark the connection broken and surface as
    ``TransportError``; retrying is left to the caller.
    """

    def __init__(
        self,
        host: str,
        port: int,
        policy: BackoffPolicy | None = None,
        timeout_s: float | None = DEFAULT_TIMEOUT_S,
        socket_factory: SocketFactory = _create_connection,
    ):
        self.host = host
        self.port = port
        self.policy = policy or BackoffPolicy()
        self.timeout_s = timeout_s
        self._factory = socket_factory
        self.sock: socket.socket | None = None
        self.state = ConnectionState.DISCONNECTED

    @property
    def is_open(self) -> bool:
        return self.state in (ConnectionState.CONNECTED, ConnectionState.DRAINING)

    def connect(self) -> "TcpConnection":
        if self.sock is not None:
            self.close()

        self.state = ConnectionState.CONNECTING
        last_exc: OSError | None = None
        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                self.sock = self._factory((self.host, self.port), self.timeout_s)
            except OSError as exc:
                last_exc = exc
                log.warning(
                    "connection attempt %d/%d to %s:%d failed: %s",
                    attempt,
                    self.policy.max_attempts,
                    self.host,
                    self.port,
                    exc,
                )
                if attempt < self.policy.max_attempts:
                    self.policy.pause()
                continue

            self.state = ConnectionState.CONNECTED
            log.info("connected to %s:%d", self.host, self.port)
            return self

        self.state = ConnectionState.DISCONNECTED
        raise ConnectError(
            f"could not connect to {self.host}:{self.port} after {self.policy.max_attempts} attempts"
        ) from last_exc

    def send(self, data: bytes) -> None:
        if not self.is_open or self.sock is None:
            raise TransportError(f"cannot send: connection is {self.state.value}")
        try:
            self.sock.sendall(data)
        except OSError as exc:
            self.state = ConnectionState.BROKEN
            raise TransportError(f"send failed: {exc}") from exc
        self.state = ConnectionState.CONNECTED

    def recv_exact(self, n: int) -> bytes | None:
        """Read exactly ``n`` bytes, across as many ``recv`` calls as it takes.

        Returns ``None`` when the peer closes cleanly between records. A peer
        close partway through a record raises ``FramingError``.
        """
        if not self.is_open or self.sock is None:
            raise TransportError(f"cannot receive: connection is {self.state.value}")
        self.state = ConnectionState.DRAINING

        buf = bytearray()
        while len(buf) < n:
            try:
                chunk = self.sock.recv(n - len(buf))
            except OSError as exc:
                self.state = ConnectionState.BROKEN
                raise TransportError(f"receive failed: {exc}") from exc
            if not chunk:
                if not buf:
                    return None
                raise FramingError(f"incomplete record: got {len(buf)} of {n} bytes")
            buf += chunk
        return bytes(buf)

    def close(self) -> None:
        sock, self.sock = self.sock, None
        if sock is None:
            return
        try:
            sock.close()
        except OSError as exc:
            log.debug("error closing socket: %s", exc)
        self.state = ConnectionState.CLOSED
        log.debug("connection to %s:%d closed", self.host, self.port)

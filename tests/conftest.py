from __future__ import annotations

import pytest

from abx.net import BackoffPolicy, TcpConnection
from abx.packet import Packet


class FakeSocket:
    """Plays back a script of recv results: bytes chunks or exceptions."""

    def __init__(self, script):
        self.script = list(script)
        self.sent = bytearray()
        self.closed = False

    def recv(self, n: int) -> bytes:
        if not self.script:
            return b""
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if len(item) > n:
            self.script.insert(0, item[n:])
            item = item[:n]
        return item

    def sendall(self, data: bytes) -> None:
        self.sent += data

    def close(self) -> None:
        self.closed = True


class FakeNetwork:
    """Socket factory handing out one scripted socket per connect call."""

    def __init__(self, plan):
        self.plan = list(plan)
        self.calls = []
        self.sockets = []

    def __call__(self, address, timeout):
        self.calls.append(address)
        if not self.plan:
            raise ConnectionRefusedError("no socket left in plan")
        item = self.plan.pop(0)
        if isinstance(item, BaseException):
            raise item
        sock = FakeSocket(item)
        self.sockets.append(sock)
        return sock


def pkt(seq: int, symbol: str = "MSFT", side: str = "B") -> Packet:
    return Packet(symbol=symbol, side=side, quantity=seq * 10, price=1000 + seq, sequence=seq)


def records(*seqs: int) -> bytes:
    return b"".join(pkt(s).to_bytes() for s in seqs)


@pytest.fixture
def make_conn():
    def _make(*plan, attempts: int = 5):
        net = FakeNetwork(plan)
        conn = TcpConnection("feed.test", 3000, policy=BackoffPolicy(attempts, 0), socket_factory=net)
        return conn, net

    return _make


@pytest.fixture
def sleeps(monkeypatch):
    calls: list[float] = []
    monkeypatch.setattr("abx.net.time.sleep", calls.append)
    return calls

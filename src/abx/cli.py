from __future__ import annotations

import argparse
import json
import logging

from .constants import (
    DEFAULT_CONNECT_ATTEMPTS,
    DEFAULT_CONNECT_DELAY_S,
    DEFAULT_ERROR_LOG,
    DEFAULT_HOST,
    DEFAULT_OUTPUT,
    DEFAULT_PORT,
    DEFAULT_SESSION_ATTEMPTS,
    DEFAULT_SESSION_DELAY_S,
    DEFAULT_TIMEOUT_S,
)
from .errors import ConnectError, SessionAborted
from .net import BackoffPolicy, TcpConnection
from .output import attach_error_log, write_json
from .server import FeedServer, demo_packets
from .session import Session

log = logging.getLogger("abx")


def cmd_fetch(args: argparse.Namespace) -> int:
    conn = TcpConnection(
        args.host,
        args.port,
        policy=BackoffPolicy(args.connect_attempts, args.connect_delay),
        timeout_s=args.timeout or None,
    )
    session = Session(
        conn,
        policy=BackoffPolicy(args.session_attempts, args.session_delay),
        sink=lambda packets: write_json(packets, args.out),
    )
    try:
        packets = session.run()
    except (ConnectError, SessionAborted) as exc:
        log.error("%s", exc)
        return 1
    except OSError as exc:
        log.error("could not write %s: %s", args.out, exc)
        return 1
    finally:
        conn.close()

    m = session.metrics
    payload = {
        "role": "fetch",
        "packets": len(packets),
        "attempts": m.attempts,
        "resends": m.resends,
        "discarded": m.records_discarded,
        "seconds": m.duration_s,
        "out": args.out,
    }
    print(json.dumps(payload, indent=2) if args.json else payload)
    return 0


def _parse_withhold(text: str) -> set[int]:
    return {int(s) for s in text.split(",") if s.strip()}


def cmd_serve(args: argparse.Namespace) -> int:
    withhold = _parse_withhold(args.withhold)
    server = FeedServer(
        demo_packets(args.count, start=args.start),
        withhold=withhold,
        host=args.listen_host,
        port=args.port,
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
    return 0


def cmd_demo(args: argparse.Namespace) -> int:
    """Run a fetch against an in-process feed on loopback."""
    withhold = _parse_withhold(args.withhold)
    with FeedServer(demo_packets(args.count, start=args.start), withhold=withhold) as server:
        args.host, args.port = server.address
        return cmd_fetch(args)


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="abx", description="ABX exchange feed client (snapshot + gap repair).")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    p.add_argument("--error-log", default=DEFAULT_ERROR_LOG)
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_fetch_opts(x: argparse.ArgumentParser) -> None:
        x.add_argument("--out", default=DEFAULT_OUTPUT)
        x.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_S, help="socket timeout in seconds; 0 blocks forever")
        x.add_argument("--connect-attempts", type=int, default=DEFAULT_CONNECT_ATTEMPTS)
        x.add_argument("--connect-delay", type=float, default=DEFAULT_CONNECT_DELAY_S)
        x.add_argument("--session-attempts", type=int, default=DEFAULT_SESSION_ATTEMPTS)
        x.add_argument("--session-delay", type=float, default=DEFAULT_SESSION_DELAY_S)
        x.add_argument("--json", action="store_true")

    def add_feed_opts(x: argparse.ArgumentParser) -> None:
        x.add_argument("--count", type=int, default=14)
        x.add_argument("--start", type=int, default=1)
        x.add_argument("--withhold", default="", help="comma-separated sequences left out of the snapshot")

    fetch = sub.add_parser("fetch", help="fetch a gap-free snapshot and write it as JSON")
    fetch.add_argument("--host", default=DEFAULT_HOST)
    fetch.add_argument("--port", type=int, default=DEFAULT_PORT)
    add_fetch_opts(fetch)
    fetch.set_defaults(func=cmd_fetch)

    serve = sub.add_parser("serve", help="run a loopback feed with generated packets")
    serve.add_argument("--listen-host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=DEFAULT_PORT)
    add_feed_opts(serve)
    serve.set_defaults(func=cmd_serve)

    demo = sub.add_parser("demo", help="fetch from an in-process loopback feed")
    add_fetch_opts(demo)
    add_feed_opts(demo)
    demo.set_defaults(func=cmd_demo)

    args = p.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    handler = attach_error_log(args.error_log)
    try:
        return int(args.func(args))
    finally:
        logging.getLogger().removeHandler(handler)
        handler.close()


if __name__ == "__main__":
    raise SystemExit(main())

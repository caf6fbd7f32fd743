"""
Command-line entry point.

    wsecho serve [--addr :9000]
    wsecho ping [ws://127.0.0.1:9000/] [-n 3] [-s 16] [-k]

Exit status:
    0  server stopped, or probe finished (including cancelled runs)
    1  probe dial or send failure
    2  usage error (argparse)
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from dataclasses import replace
from typing import Sequence

from dotenv import load_dotenv

from config import AppConfig, parse_listen_address
from client.probe import LatencyProbeClient, ProbeError, ProbeOptions
from observability.logger import log_event, now_ms
from session.lifetime import LifetimeToken


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {number}")
    return number


def _listen_address(value: str) -> str:
    try:
        parse_listen_address(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    return value


def build_parser(config: AppConfig) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="wsecho", description="WebSocket echo server and latency probe.")
    sub = ap.add_subparsers(dest="command", required=True)

    srv = sub.add_parser("serve", help="Run the echo server.")
    srv.add_argument("--addr", type=_listen_address, default=config.listen_addr, help="Listen address, e.g. :9000 or 127.0.0.1:9000")

    ping = sub.add_parser("ping", help="Measure round-trip latency against an echo server.")
    ping.add_argument("address", nargs="?", default=config.probe_address, help="ws:// or wss:// URL")
    ping.add_argument("-n", "--count", type=_non_negative_int, default=config.probe_count, help="Number of round trips")
    ping.add_argument("-s", "--size", type=_non_negative_int, default=config.probe_size, help="Payload size in bytes")
    ping.add_argument(
        "-k",
        "--insecure",
        action="store_true",
        default=config.insecure,
        help="Skip TLS certificate verification.",
    )
    return ap


async def run_ping(config: AppConfig, args: argparse.Namespace) -> int:
    lifetime = LifetimeToken()

    # SIGINT/SIGTERM stop the run between round trips
    loop = asyncio.get_running_loop()
    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lifetime.cancel, "interrupt")

    client = LatencyProbeClient(
        ProbeOptions(
            address=args.address,
            count=args.count,
            size=args.size,
            insecure=args.insecure,
            handshake_timeout_s=config.handshake_timeout_s,
        ),
        lifetime=lifetime,
    )

    try:
        await client.run()
    except ProbeError as exc:
        log_event({
            "ts_ms": now_ms(),
            "event_type": "PROBE_FAILED",
            "exception": type(exc).__name__,
            "message": str(exc),
        })
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    config = AppConfig.load_from_env()
    args = build_parser(config).parse_args(argv)

    if args.command == "serve":
        # Imported lazily: the probe does not need uvicorn
        from server.main import serve  # pylint: disable=import-outside-toplevel

        serve(replace(config, listen_addr=args.addr))
        return 0

    return asyncio.run(run_ping(config, args))


if __name__ == "__main__":
    raise SystemExit(main())

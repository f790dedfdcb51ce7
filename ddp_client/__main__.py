"""Command-line probes.

Usage::

    # Chat round-trip latency (env: HOST_URL, AUTH_TOKEN, ROOM_ID,
    # SEND_INTERVAL_MS, DEBUG)
    ddp-probe latency

    # Plain websocket ping (env: SERVER_URL, INTERVAL_MS)
    ddp-probe ping --url ws://localhost:8010

Flags override the environment.  The latency probe prints one CSV line per
completed message: ``timestamp,send_ms,receive_ms``.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from dataclasses import replace

from ._logging import logger, setup_logging
from .client import DDPClient
from .config import PingSettings, ProbeSettings, parse_interval
from .errors import DDPError
from .ping import PingProbe
from .probe import LatencyProbe
from .types import LatencyRecord


def _print_record(record: LatencyRecord) -> None:
    print(record.to_csv(), flush=True)


async def _run_latency(settings: ProbeSettings, count: int | None) -> None:
    async with DDPClient(settings.host) as client:
        probe = LatencyProbe(client, settings, on_record=_print_record)
        await probe.run(count=count)


async def _run_ping(settings: PingSettings, count: int | None) -> None:
    await PingProbe(settings).run(count=count)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ddp-probe", description="DDP latency probes")
    sub = parser.add_subparsers(dest="command", required=True)

    latency = sub.add_parser("latency", help="chat send/deliver latency")
    latency.add_argument("--host", help="server host (HOST_URL)")
    latency.add_argument("--token", help="resume token (AUTH_TOKEN)")
    latency.add_argument("--room", help="room id (ROOM_ID)")
    latency.add_argument("--interval-ms", help="send interval (SEND_INTERVAL_MS)")
    latency.add_argument("--count", type=int, help="stop after N messages")
    latency.add_argument("--debug", action="store_true", help="log every frame")

    ping = sub.add_parser("ping", help="plain websocket ping")
    ping.add_argument("--url", help="websocket URL (SERVER_URL)")
    ping.add_argument("--interval-ms", help="ping interval (INTERVAL_MS)")
    ping.add_argument("--count", type=int, help="stop after N pings")
    ping.add_argument("--debug", action="store_true")

    return parser


def _latency_settings(args: argparse.Namespace) -> ProbeSettings:
    env = {
        "HOST_URL": args.host,
        "AUTH_TOKEN": args.token,
        "ROOM_ID": args.room,
        "SEND_INTERVAL_MS": args.interval_ms,
    }
    merged = dict(os.environ)
    merged.update({k: v for k, v in env.items() if v})
    settings = ProbeSettings.from_env(merged)
    if args.debug:
        settings = replace(settings, debug=True)
    return settings


def _ping_settings(args: argparse.Namespace) -> PingSettings:
    settings = PingSettings.from_env()
    if args.url:
        settings = replace(settings, server_url=args.url)
    if args.interval_ms:
        settings = replace(
            settings, interval_ms=parse_interval(args.interval_ms, "--interval-ms")
        )
    return settings


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        if args.command == "latency":
            settings = _latency_settings(args)
            setup_logging(settings.debug)
            asyncio.run(_run_latency(settings, args.count))
        else:
            ping_settings = _ping_settings(args)
            setup_logging(args.debug)
            asyncio.run(_run_ping(ping_settings, args.count))
    except DDPError as exc:
        setup_logging()
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())

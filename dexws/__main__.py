"""Command-line client: connect, print every message, close on Ctrl+C.

    export DEX_BASE_URL=api.example.com
    export DEX_TOKEN=<token>
    python -m dexws
    python -m dexws --stream --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any, Sequence

from .config import SupervisorConfig
from .errors import DexConfigError, DexError
from .supervisor import ConnectionSupervisor
from .types import ConnectionStatus


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dexws", description="Supervised WebSocket client"
    )
    parser.add_argument("--url", help="Base URL or host (default: $DEX_BASE_URL)")
    parser.add_argument("--token", help="Auth token (default: $DEX_TOKEN)")
    parser.add_argument(
        "--stream", action="store_true", default=None, help="Streaming mode (no polling)"
    )
    parser.add_argument("--heartbeat", type=float, help="Heartbeat interval (s)")
    parser.add_argument("--poll-interval", type=float, help="Polling interval (s)")
    parser.add_argument("--reconnect-delay", type=float, help="Reconnect delay (s)")
    parser.add_argument("--max-reconnects", type=int, help="Reconnect budget")
    parser.add_argument(
        "--no-reconnect", action="store_true", help="Disable auto-reconnect"
    )
    parser.add_argument("--log-level", default="WARNING")
    return parser


def config_from_args(args: argparse.Namespace) -> SupervisorConfig:
    overrides: dict[str, Any] = {}
    if args.url:
        overrides["base_url"] = args.url
    if args.token:
        overrides["token"] = args.token
    if args.stream is not None:
        overrides["stream"] = args.stream
    if args.heartbeat is not None:
        overrides["heartbeat_interval"] = args.heartbeat
    if args.poll_interval is not None:
        overrides["poll_interval"] = args.poll_interval
    if args.reconnect_delay is not None:
        overrides["reconnect_delay"] = args.reconnect_delay
    if args.max_reconnects is not None:
        overrides["max_reconnect_attempts"] = args.max_reconnects
    if args.no_reconnect:
        overrides["auto_reconnect"] = False
    return SupervisorConfig.from_env(**overrides)


def format_message(message: Any) -> str:
    if isinstance(message, bytes):
        return message.decode("utf-8", errors="replace")
    if isinstance(message, str):
        return message
    return json.dumps(message, indent=2)


def _print_error(error: DexError) -> None:
    print(f"WebSocket response: {error}", file=sys.stderr)


def _print_close(code: int, reason: str) -> None:
    print(f"Connection closed (code={code}, reason={reason or 'n/a'})")


async def run(config: SupervisorConfig) -> int:
    supervisor = ConnectionSupervisor(
        config,
        on_open=lambda: print("Connected.\n"),
        on_message=lambda message, raw: print(format_message(message)),
        on_error=_print_error,
        on_close=_print_close,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(
            sig, lambda: asyncio.ensure_future(supervisor.close())
        )

    await supervisor.connect()
    await supervisor.wait_closed()
    return 1 if supervisor.status is ConnectionStatus.FAILED else 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = config_from_args(args)
    except DexConfigError as exc:
        print(f"Please fix the configuration before running: {exc}", file=sys.stderr)
        return 1
    return asyncio.run(run(config))


if __name__ == "__main__":
    sys.exit(main())

"""
Command-line interface for shiplog.

    shiplog send "deploy finished" --level INFO --field version=1.4.2
    shiplog config

``send`` ships a single event through a fresh transport and exits 0 only
if the endpoint accepted it, which makes it usable as a smoke test from
deployment scripts. ``config`` prints the effective configuration with the
password masked.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Sequence

from . import get_transport
from .core.events import LogEvent
from .core.settings import Settings


def _parse_field(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {raw!r}")
    return key.strip(), value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shiplog",
        description="Ship structured log events to Parseable as OTLP logs",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    send = sub.add_parser("send", help="Send one event and wait for delivery")
    send.add_argument("message", help="Event message")
    send.add_argument("--level", default="INFO", help="Severity (default: INFO)")
    send.add_argument(
        "--field",
        "-f",
        dest="fields",
        action="append",
        type=_parse_field,
        default=[],
        metavar="KEY=VALUE",
        help="Attach a field; repeatable",
    )
    send.add_argument("--endpoint", help="Override the endpoint URL")
    send.add_argument("--stream", help="Override the destination stream")
    send.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for delivery (default: request timeout + 5)",
    )

    sub.add_parser("config", help="Print the effective configuration")
    return parser


def _cmd_send(args: argparse.Namespace, settings: Settings) -> int:
    overrides: dict[str, object] = {"max_retries": 0}
    if args.endpoint:
        overrides["endpoint_url"] = args.endpoint
    if args.stream:
        overrides["stream"] = args.stream
    transport = get_transport(settings, **overrides)
    try:
        transport.accept(
            LogEvent.create(args.level, args.message, **dict(args.fields))
        )
        delivered = transport.flush(timeout=args.timeout)
    finally:
        transport.close()
    if delivered:
        print(f"sent 1 event to stream {transport.config.stream!r}")
        return 0
    print("delivery failed; see diagnostics above", file=sys.stderr)
    return 1


def _cmd_config(settings: Settings) -> int:
    print(json.dumps(settings.to_dict(), indent=2, sort_keys=True))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings()
    except Exception as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 2
    if args.command == "send":
        return _cmd_send(args, settings)
    return _cmd_config(settings)


if __name__ == "__main__":
    sys.exit(main())

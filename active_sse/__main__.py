"""
Command line listener.

Usage:
    python -m active_sse activity http://localhost:5260 --stream <stream id>
    python -m active_sse event http://localhost:5260 --contract <contract> --event <name>
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import orjson

from active_sse.client import ActiveSSE
from active_sse.config import setup_logging
from active_sse.models.event import Event
from active_sse.models.subscription import SubscriptionConfig
from active_sse.utils.exceptions import SSEError

logger = logging.getLogger("active_sse")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="active-sse", description="Print events from an Activeledger node"
    )
    parser.add_argument("kind", choices=["activity", "event"], help="Subscription type")
    parser.add_argument("url", help="Node base URL, e.g. http://localhost:5260")
    parser.add_argument("--stream", help="Stream id (activity only)")
    parser.add_argument("--contract", help="Contract id (event only)")
    parser.add_argument("--event", help="Event name (event only, needs --contract)")
    parser.add_argument("--token", help="Bearer token")
    parser.add_argument(
        "--header", action="append", default=[], metavar="NAME:VALUE", help="Extra request header"
    )
    parser.add_argument("--no-reconnect", action="store_true", help="Exit when the connection drops")
    parser.add_argument("--json", action="store_true", help="Print one JSON object per event")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def build_config(args: argparse.Namespace) -> SubscriptionConfig:
    """Translate parsed arguments into a subscription config."""
    if args.kind == "activity":
        config = SubscriptionConfig.activity(args.url)
        if args.stream:
            config.set_stream_id(args.stream)
    else:
        config = SubscriptionConfig.event(args.url)
        if args.contract:
            config.set_contract(args.contract)
        if args.event:
            config.set_event(args.event)

    if args.token:
        config.set_token(args.token)
    for header in args.header:
        name, sep, value = header.partition(":")
        if not sep:
            raise ValueError(f"Header must look like NAME:VALUE, got {header!r}")
        config.set_header(name.strip(), value.strip())
    if args.no_reconnect:
        config.reconnect = False
    return config


def format_event(event: Event, as_json: bool = False) -> str:
    if not as_json:
        return f"[{event.event}] {event.data}"
    return orjson.dumps(
        {"event": event.event, "id": event.id, "data": event.data}
    ).decode()


async def listen(config: SubscriptionConfig, as_json: bool = False) -> None:
    async with ActiveSSE(config) as sse:
        async for event in sse:
            print(format_event(event, as_json), flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = build_config(args)
        asyncio.run(listen(config, args.json))
    except KeyboardInterrupt:
        return 0
    except (SSEError, ValueError) as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

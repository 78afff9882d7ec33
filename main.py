"""live-resource watch -- entry point.

Mirrors one endpoint and prints its events until interrupted:

    LiveResource / LiveCollection (one polling task per open session)
        -> EventBus queue fan-out
        -> ConsoleConsumer task (reacts to queue.get())

A shared httpx.AsyncClient is injected into the resource.
"""
from __future__ import annotations

import argparse
import asyncio
import logging

import httpx

from consumers.console import ConsoleConsumer
from core.collection import ITEM_EVENTS, LiveCollection
from core.resource import CHANGE, ERROR, LiveResource
from models.config import DEFAULT_POLL_INTERVAL_MS, ResourceConfig


def _query_pair(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {raw!r}")
    return key, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="live-resource",
        description="Poll an HTTP JSON endpoint and print its change events.",
    )
    parser.add_argument("endpoint", help="URL of the resource to watch")
    parser.add_argument(
        "--collection",
        action="store_true",
        help="treat the endpoint as a list of items with an 'id' and print item events",
    )
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=DEFAULT_POLL_INTERVAL_MS,
        help="delay between the end of one poll and the next (default: %(default)s)",
    )
    parser.add_argument(
        "--query",
        type=_query_pair,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="extra query parameter for every read, may be repeated",
    )
    parser.add_argument("--log-level", default="INFO", help="logging level")
    return parser


async def run(args: argparse.Namespace) -> None:
    config = ResourceConfig(
        endpoint=args.endpoint,
        query=dict(args.query),
        poll_interval_ms=args.interval_ms,
    )

    async with httpx.AsyncClient(timeout=30.0) as client:
        if args.collection:
            resource: LiveResource = LiveCollection(config, client=client)
            names = (*ITEM_EVENTS, ERROR)
        else:
            resource = LiveResource(config, client=client)
            names = (CHANGE, ERROR)

        consumer = ConsoleConsumer(queue=resource.subscribe(*names))
        try:
            await consumer.run()
        finally:
            resource.unsubscribe(consumer.queue)
            await resource.aclose()


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nShutting down.")


if __name__ == "__main__":
    main()

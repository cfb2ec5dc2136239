"""Toolbridge CLI: serve the tool registry over HTTP JSON-RPC and SSE.

Usage:
    toolbridge                 # listen on the configured port (default 3000)
    toolbridge 8080            # listen on port 8080
    toolbridge 8080 --host 127.0.0.1 --keepalive 10 -v
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from toolbridge.config.settings import settings

logger = logging.getLogger(__name__)


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from None
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toolbridge",
        description="MCP tool server over HTTP JSON-RPC and Server-Sent Events",
    )
    parser.add_argument(
        "port",
        nargs="?",
        type=_port,
        default=settings.PORT,
        help=f"Listening port (default: {settings.PORT})",
    )
    parser.add_argument("--host", default=settings.HOST, help="Bind address")
    parser.add_argument(
        "--keepalive",
        type=float,
        default=settings.SSE_KEEPALIVE_SECONDS,
        help="Seconds between SSE keepalive comments",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )
    return parser


async def _serve(args: argparse.Namespace) -> None:
    from toolbridge.http.listener import Listener
    from toolbridge.mcp.builtin import default_registry

    registry = default_registry()
    listener = Listener(
        registry,
        host=args.host,
        port=args.port,
        keepalive_interval=args.keepalive,
    )
    try:
        await listener.serve_forever()
    finally:
        await listener.close()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.keepalive <= 0:
        parser.error("--keepalive must be positive")

    # Logging
    level = logging.DEBUG if args.verbose else getattr(logging, settings.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        asyncio.run(_serve(args))
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(130)
    except Exception as exc:
        logger.error("Error: %s", exc)
        if args.verbose:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Command Line Interface for the Transmission RPC client.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from .client import TransmissionClient
from .config import load_settings
from .exceptions import TransmissionError
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def _parse_id(value: str):
    """Numeric ids become ints; anything else is passed through as a hash."""
    try:
        return int(value)
    except ValueError:
        return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="transmission-control",
        description="Control a Transmission daemon over its RPC interface",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List all torrents
  transmission-control list

  # Add a magnet link, paused
  transmission-control add "magnet:?xt=urn:btih:..." --paused

  # Wait for torrent 3 to start seeding
  transmission-control wait 3 SEED --timeout 600

Environment Variables:
  TRANSMISSION_HOST        - Daemon host (default: localhost)
  TRANSMISSION_PORT        - Daemon RPC port (default: 9091)
  TRANSMISSION_PATH        - RPC path (default: /transmission/rpc)
  TRANSMISSION_SSL         - Use HTTPS (default: false)
  TRANSMISSION_USERNAME    - RPC username
  TRANSMISSION_PASSWORD    - RPC password
  TRANSMISSION_LOG_LEVEL   - Logging level (default: INFO)
  TRANSMISSION_LOG_FORMAT  - Log format: text or json (default: text)
        """,
    )

    parser.add_argument("--host", "-H", help="Daemon host")
    parser.add_argument("--port", "-p", type=int, help="Daemon RPC port")
    parser.add_argument("--path", help="RPC path")
    parser.add_argument(
        "--ssl", action="store_true", default=None, help="Connect over HTTPS"
    )
    parser.add_argument("--username", "-u", help="RPC username")
    parser.add_argument("--password", help="RPC password")
    parser.add_argument("--log-level", "-l", help="Log level")
    parser.add_argument(
        "--log-format", choices=["text", "json"], help="Log format: text or json"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    list_parser = subparsers.add_parser("list", help="List torrents")
    list_parser.add_argument(
        "--active", action="store_true", help="Only recently active torrents"
    )
    list_parser.add_argument(
        "--fields", nargs="+", help="Fields to return (default: all)"
    )

    get_parser = subparsers.add_parser("get", help="Show torrent details")
    get_parser.add_argument("ids", nargs="+", type=_parse_id, help="Torrent ids or hashes")
    get_parser.add_argument("--fields", nargs="+", help="Fields to return")

    add_parser = subparsers.add_parser("add", help="Add a torrent")
    add_parser.add_argument("source", help="Magnet link, URL or local .torrent file")
    add_parser.add_argument("--paused", action="store_true", help="Add without starting")
    add_parser.add_argument("--download-dir", "-d", help="Download directory")

    remove_parser = subparsers.add_parser("remove", help="Remove torrents")
    remove_parser.add_argument("ids", nargs="+", type=_parse_id, help="Torrent ids or hashes")
    remove_parser.add_argument(
        "--delete-data", action="store_true", help="Also delete downloaded data"
    )

    start_parser = subparsers.add_parser("start", help="Start torrents (all if no ids)")
    start_parser.add_argument("ids", nargs="*", type=_parse_id, help="Torrent ids or hashes")

    stop_parser = subparsers.add_parser("stop", help="Stop torrents (all if no ids)")
    stop_parser.add_argument("ids", nargs="*", type=_parse_id, help="Torrent ids or hashes")

    verify_parser = subparsers.add_parser("verify", help="Verify downloaded data")
    verify_parser.add_argument("ids", nargs="+", type=_parse_id, help="Torrent ids or hashes")

    subparsers.add_parser("session", help="Show session settings")
    subparsers.add_parser("stats", help="Show session statistics")

    space_parser = subparsers.add_parser("free-space", help="Free space in a directory")
    space_parser.add_argument("path", help="Directory on the daemon host")

    wait_parser = subparsers.add_parser("wait", help="Wait for a torrent state")
    wait_parser.add_argument("id", type=_parse_id, help="Torrent id or hash")
    wait_parser.add_argument("state", help="Target state, e.g. SEED or DOWNLOAD")
    wait_parser.add_argument(
        "--timeout", "-t", type=float, help="Give up after this many seconds"
    )
    wait_parser.add_argument(
        "--interval", type=float, help="Seconds between polls"
    )

    return parser


async def run_command(args, client: TransmissionClient):
    """Dispatch a parsed command and return its JSON-serializable result."""
    if args.command == "list":
        if args.active:
            return await client.active()
        return await client.get(fields=args.fields)
    if args.command == "get":
        return await client.get(args.ids, args.fields)
    if args.command == "add":
        options = {}
        if args.paused:
            options["paused"] = True
        if args.download_dir:
            options["download-dir"] = args.download_dir
        if os.path.isfile(args.source):
            return await client.add_file(args.source, options)
        return await client.add_url(args.source, options)
    if args.command == "remove":
        return await client.remove(args.ids, delete_local_data=args.delete_data)
    if args.command == "start":
        return await client.start(args.ids)
    if args.command == "stop":
        return await client.stop(args.ids)
    if args.command == "verify":
        return await client.verify(args.ids)
    if args.command == "session":
        return await client.session()
    if args.command == "stats":
        return await client.session_stats()
    if args.command == "free-space":
        return await client.free_space(args.path)
    if args.command == "wait":
        return await client.wait_for_state(
            args.id, args.state, poll_interval=args.interval, timeout=args.timeout
        )
    raise ValueError(f"Unknown command: {args.command}")


async def _run(args) -> int:
    settings = load_settings(
        host=args.host,
        port=args.port,
        path=args.path,
        ssl=args.ssl,
        username=args.username,
        password=args.password,
        log_level=args.log_level,
        log_format=args.log_format,
    )
    setup_logging(settings.log_level, settings.log_file, settings.log_format)
    logger.debug(f"Connecting to {settings.url}")

    async with TransmissionClient.from_settings(settings) as client:
        result = await run_command(args, client)

    print(json.dumps(result, indent=2, sort_keys=True))
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        code = asyncio.run(_run(args))
    except TransmissionError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)

    sys.exit(code)


if __name__ == "__main__":
    main()

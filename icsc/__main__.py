"""Entry point for running ICSC as a module.

Usage:
    python -m icsc listen                      # Use env vars or defaults
    python -m icsc -c /path/to/config.yaml send B D data
    python -m icsc broadcast D
    python -m icsc ping B
    python -m icsc --help
"""

import argparse
import asyncio
import sys

from . import __version__
from .app import ICSCApp
from .config import create_default_config, print_env_help, get_config
from .protocol.errors import ICSCError


def _code(value: str):
    """Parse a command-line address or command: one character or a number."""
    if len(value) == 1:
        return value
    try:
        return int(value, 10 if value.isdigit() else 0)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"expected a single character or a byte value, got {value!r}"
        )


# A lone digit is a character; "5" is 0x35, not 5
CODE_HELP = "one character, or a byte value written as 0x.. or with two or more digits"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="icsc",
        description="ICSC multi-drop serial bus station",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Listen as station C on a USB adapter:
  ICSC_STATION=C SERIAL_PORT=/dev/ttyUSB0 icsc listen

  # Send command D with payload "data" to station B:
  icsc --station C send B D data

  # Broadcast command D to every station:
  icsc broadcast D

  # Raw byte values need 0x.. or two or more digits (a lone "7" is '7'):
  icsc send 0x42 0x07
        """,
    )

    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (optional if using env vars)",
    )
    parser.add_argument(
        "-s", "--station",
        default=None,
        help="Override the local station address",
    )
    parser.add_argument(
        "-p", "--port",
        default=None,
        help="Override the serial port",
    )
    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--generate-config",
        action="store_true",
        help="Print default configuration and exit",
    )
    parser.add_argument(
        "--env-help",
        action="store_true",
        help="Print environment variable help and exit",
    )

    subparsers = parser.add_subparsers(dest="action")

    listen = subparsers.add_parser("listen", help="Log incoming messages")
    listen.add_argument(
        "--command",
        dest="commands",
        action="append",
        type=_code,
        default=None,
        help=f"Only log this command code (repeatable): {CODE_HELP}",
    )

    send = subparsers.add_parser("send", help="Send one message")
    send.add_argument("dest", type=_code, help=f"Destination station: {CODE_HELP}")
    send.add_argument("cmd", type=_code, help=f"Command code: {CODE_HELP}")
    send.add_argument("data", nargs="?", default="", help="Payload text")

    broadcast = subparsers.add_parser("broadcast", help="Broadcast one message")
    broadcast.add_argument("cmd", type=_code, help=f"Command code: {CODE_HELP}")
    broadcast.add_argument("data", nargs="?", default="", help="Payload text")

    ping = subparsers.add_parser("ping", help="Ping a station")
    ping.add_argument("dest", type=_code, help=f"Station to ping: {CODE_HELP}")
    ping.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Seconds to wait for the pong (default: 5)",
    )

    return parser


def main(argv=None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for error, 2 if a ping went unanswered)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.generate_config:
        print(create_default_config())
        return 0

    if args.env_help:
        print(print_env_help())
        return 0

    if args.action is None:
        parser.print_help()
        return 1

    try:
        config = get_config(args.config)
        if args.station is not None:
            config.station = config.station.model_validate(
                {**config.station.model_dump(), "address": args.station}
            )
        if args.port is not None:
            config.serial.port = args.port
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    app = ICSCApp(config)

    try:
        if args.action == "listen":
            asyncio.run(app.listen(args.commands))
        elif args.action == "send":
            asyncio.run(app.send(args.dest, args.cmd, args.data))
        elif args.action == "broadcast":
            asyncio.run(app.broadcast(args.cmd, args.data))
        elif args.action == "ping":
            elapsed = asyncio.run(app.ping(args.dest, args.timeout))
            if elapsed is None:
                print(f"No pong from {args.dest}", file=sys.stderr)
                return 2
            print(f"Pong from {args.dest} in {elapsed * 1000:.1f} ms")
        return 0
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 0
    except (ICSCError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

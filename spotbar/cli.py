# spotbar/cli.py
# Command line entry point. Meant to be started by the bar itself, e.g.
#
#   [module/spotify]
#   type = custom/script
#   exec = spotbar -p 33333
#   tail = true
#   click-left = spotbar -p 33333 -s PlayPause

import argparse
import dataclasses
import sys

from . import bridge
from .commands import Command, from_name
from .config import DEFAULT_PORT, MAX_PORT, MIN_PORT, load_config
from .errors import CommandDecodeError, InvalidPortError
from .logging_config import configure_logging, resolve_log_level
from .server import send_command


def validate_port(port: int) -> int:
    if not MIN_PORT < port < MAX_PORT:
        raise InvalidPortError(
            f"invalid port {port}: expected {MIN_PORT} < port < {MAX_PORT}"
        )
    return port


def _port_arg(value: str) -> int:
    try:
        return validate_port(int(value))
    except ValueError as e:
        # InvalidPortError is a ValueError too
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spotbar",
        description="Print the current MPRIS track for a status bar and "
                    "accept playback commands over UDP.",
    )
    parser.add_argument(
        "-p", "--port", type=_port_arg, default=None,
        help=f"UDP port for bar commands (default {DEFAULT_PORT}; "
             f"the next free port is used if it is taken)",
    )
    # polybar passes an action string along; accepted and ignored
    parser.add_argument("-a", "--action", default="", help=argparse.SUPPRESS)
    parser.add_argument("-c", "--config", default=None, help="YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging on stderr")
    parser.add_argument(
        "--exit-on-command-error", action="store_true",
        help="terminate when the player rejects a command instead of logging it",
    )
    parser.add_argument(
        "-s", "--send", metavar="COMMAND", default=None,
        help="send one command (%s) to a running bridge and exit"
             % ", ".join(c.value for c in Command),
    )
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(resolve_log_level(args.verbose))
    config = load_config(args.config)
    if args.exit_on_command_error:
        config = dataclasses.replace(config, exit_on_command_error=True)

    port = args.port
    if port is None:
        try:
            port = validate_port(int(config.port))
        except (TypeError, ValueError) as e:
            parser.error(str(e))

    if args.send is not None:
        try:
            command = from_name(args.send)
        except CommandDecodeError as e:
            parser.error(str(e))
        send_command(command, config.host, port)
        return 0

    return bridge.run(config, port)


if __name__ == "__main__":
    sys.exit(main())

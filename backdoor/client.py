"""Command-line client: encodes one command and sends it to the server.

The client plays an agent or a hardware sensor.  Command and variable names
are accepted as well as plain numbers, e.g.::

    backdoor-client nop
    backdoor-client set voltage 100
    backdoor-client exit
"""

from __future__ import annotations

import argparse
import logging
import socket
import sys
from typing import List, Sequence

from .config import ClientConfig, default_log_level, default_socket_path
from .protocol import COMMAND_ARITY, COMMAND_NAMES, COMMANDS, MAX_BYTES_IN_COMMAND, ClientCommand, Command, encode_command
from .variables import resolve_address

LOG = logging.getLogger("backdoor.client")


class EncodeError(ValueError):
    """Raised when command-line tokens do not form a valid command."""


class ClientError(RuntimeError):
    """Raised when the command cannot be delivered to the server."""


def parse_byte(token: str) -> int:
    try:
        value = int(token.strip(), 0)
    except ValueError as exc:
        raise EncodeError(f"not a number: {token!r}") from exc
    if not 0 <= value <= 0xFF:
        raise EncodeError(f"value out of range [0,255]: {token}")
    return value


def parse_opcode(token: str) -> int:
    named = COMMANDS.get(token.strip().lower())
    if named is not None:
        return named
    return parse_byte(token)


def encode_tokens(tokens: Sequence[str]) -> bytes:
    """Turn ``COMMAND [ARG...]`` tokens into protocol bytes."""
    if not tokens:
        raise EncodeError("missing command")
    if len(tokens) > MAX_BYTES_IN_COMMAND:
        raise EncodeError("too many arguments")
    opcode = parse_opcode(tokens[0])
    rest = list(tokens[1:])
    if opcode in COMMAND_ARITY:
        arity = COMMAND_ARITY[opcode]
        if len(rest) != arity:
            raise EncodeError(f"{COMMAND_NAMES[opcode]} takes {arity} argument(s), got {len(rest)}")
    if opcode == ClientCommand.SET_VARIABLE:
        try:
            address = resolve_address(rest[0])
        except ValueError as exc:
            raise EncodeError(f"bad variable: {rest[0]!r}") from exc
        args = (address, parse_byte(rest[1]))
    else:
        args = tuple(parse_byte(token) for token in rest)
    return encode_command(Command(opcode, args))


def connect(config: ClientConfig) -> socket.socket:
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.settimeout(config.connect_timeout)
    try:
        sock.connect(config.socket_path)
    except OSError as exc:
        sock.close()
        raise ClientError(f"cannot connect to server at {config.socket_path}: {exc.strerror or exc}") from exc
    sock.settimeout(None)
    return sock


def send_command(payload: bytes, config: ClientConfig) -> None:
    """Open a session, write ``payload`` and close it."""
    sock = connect(config)
    try:
        sock.sendall(payload)
    except OSError as exc:
        raise ClientError(f"write failed: {exc}") from exc
    finally:
        sock.close()
    LOG.debug("sent %s to %s", payload.hex(), config.socket_path)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Send a command to the backdoor framework server",
        epilog="COMMAND is nop, exit, set or an integer in [0,255]; set takes VARIABLE VALUE.",
    )
    parser.add_argument("tokens", nargs="*", metavar="COMMAND [ARG...]", help="command and its arguments")
    parser.add_argument("--socket", default=default_socket_path(), help="Unix socket path of the server")
    parser.add_argument("--timeout", type=float, default=2.0, help="Connect timeout in seconds")
    parser.add_argument("--dry-run", action="store_true", help="Print the encoded bytes instead of sending them")
    parser.add_argument("-i", "--interactive", action="store_true", help="Open an interactive console session")
    parser.add_argument("--history", help="History file for the interactive console")
    parser.add_argument("--log-level", default=default_log_level(), help="Logging level")
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    config = ClientConfig(socket_path=args.socket, connect_timeout=args.timeout)
    if args.interactive:
        from .console import BackdoorConsole

        try:
            return BackdoorConsole(config, history_path=args.history).run()
        except ClientError as exc:
            print(f"[client] {exc}", file=sys.stderr)
            return 1
    if not args.tokens:
        parser.print_usage(sys.stderr)
        print("  where COMMAND and ARG are non-negative integers in [0,255] or names.", file=sys.stderr)
        return 1
    try:
        payload = encode_tokens(args.tokens)
    except EncodeError as exc:
        print(f"[client] {exc}", file=sys.stderr)
        return 1
    if args.dry_run:
        print(payload.hex(" "))
        return 0
    try:
        send_command(payload, config)
    except ClientError as exc:
        print(f"[client] {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

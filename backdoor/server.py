"""Firmware-side server.

Listens on a Unix domain socket.  Every connection is a client (agent or
simulated hardware) that sends zero or more commands; the next client is not
served until the current one closes, unless the threaded server is selected.
"""

from __future__ import annotations

import argparse
import logging
import os
import socketserver
import sys
from typing import Callable, List, Optional

from .config import ServerConfig, default_log_level, default_socket_path
from .dispatcher import CommandDispatcher
from .interrupt import ServerInterrupt
from .session import SessionLoop, SessionOutcome
from .variables import VariableStore

LOG = logging.getLogger("backdoor.server")


class EndpointError(RuntimeError):
    """Raised when the listening socket cannot be established."""


class _ClientHandler(socketserver.StreamRequestHandler):
    def handle(self) -> None:
        summary = self.server.session.run(self.rfile)
        LOG.debug("client disconnected (%s, %d command(s))", summary.outcome.value, summary.commands)
        if summary.outcome is SessionOutcome.TERMINATED:
            self.server.terminated = True


class BackdoorServer(socketserver.UnixStreamServer):
    """Sequential server: one session is processed end-to-end at a time."""

    def __init__(
        self,
        config: ServerConfig,
        store: Optional[VariableStore] = None,
        *,
        on_report: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.config = config
        self.request_queue_size = config.backlog
        self.timeout = config.poll_interval
        self.store = store if store is not None else VariableStore()
        self.terminated = False
        self._unlinked = False
        self._bound = False
        dispatcher = CommandDispatcher(self.store, on_exit=self.release_endpoint)
        self.session = SessionLoop(
            self.store,
            dispatcher=dispatcher,
            interrupt=ServerInterrupt(),
            on_report=on_report,
        )
        if config.replace:
            _remove_stale_socket(config.socket_path)
        try:
            super().__init__(config.socket_path, _ClientHandler)
        except OSError as exc:
            raise EndpointError(f"cannot bind socket {config.socket_path}: {exc.strerror or exc}") from exc
        self._bound = True

    @property
    def socket_path(self) -> str:
        return self.config.socket_path

    def release_endpoint(self) -> None:
        """Remove the socket path so no new client can reach the server."""
        if self._unlinked or not self._bound:
            return
        self._unlinked = True
        try:
            os.unlink(self.config.socket_path)
        except FileNotFoundError:
            pass

    def handle_timeout(self) -> None:
        pass

    def serve_until_exit(self) -> None:
        while not self.terminated:
            self.handle_request()

    def server_close(self) -> None:
        super().server_close()
        self.release_endpoint()


class ThreadingBackdoorServer(socketserver.ThreadingMixIn, BackdoorServer):
    """Overlapping sessions; store access is serialised by the store lock."""

    daemon_threads = True


def _remove_stale_socket(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        return
    LOG.info("removed stale socket %s", path)


def create_server(
    config: ServerConfig,
    store: Optional[VariableStore] = None,
    *,
    on_report: Optional[Callable[[str], None]] = None,
) -> BackdoorServer:
    server_cls = ThreadingBackdoorServer if config.threaded else BackdoorServer
    return server_cls(config, store, on_report=on_report)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Simulated controller firmware (backdoor framework server)")
    parser.add_argument("--socket", default=default_socket_path(), help="Unix socket path to listen on")
    parser.add_argument("--threaded", action="store_true", help="Serve overlapping client sessions")
    parser.add_argument("--replace", action="store_true", help="Remove a stale socket file before binding")
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print the variable dump after each command (the dump goes to stdout; "
        "command trace and breaker lines are logged to stderr)",
    )
    parser.add_argument("--log-level", default=default_log_level(), help="Logging level (default INFO)")
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    config = ServerConfig(
        socket_path=args.socket,
        threaded=args.threaded,
        replace=args.replace,
        show_report=not args.quiet,
    )
    on_report = print if config.show_report else None
    try:
        server = create_server(config, on_report=on_report)
    except EndpointError as exc:
        LOG.error("%s", exc)
        return 1
    print(f"[server] listening at {server.socket_path}")
    try:
        server.serve_until_exit()
    except KeyboardInterrupt:
        print("\n[server] shutting down")
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

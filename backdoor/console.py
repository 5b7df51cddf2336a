"""Interactive client console.

Unlike the one-shot client, the console keeps a single connection open, so
every line typed becomes another command in the same server session.
"""

from __future__ import annotations

import logging
import shlex
import socket
from typing import Callable, List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import FileHistory, History, InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from .client import ClientError, EncodeError, connect, encode_tokens
from .config import ClientConfig
from .protocol import COMMANDS, ClientCommand
from .variables import VARIABLES

LOGGER = logging.getLogger("backdoor.console")

PROMPT = "backdoor> "


def split_command(line: str) -> List[str]:
    """Split a console line into argv tokens using shlex rules."""
    if not line:
        return []
    return shlex.split(line, comments=True, posix=True)


def build_completer() -> WordCompleter:
    words = list(COMMANDS) + list(VARIABLES) + ["quit"]
    return WordCompleter(words, ignore_case=True, sentence=True)


class BackdoorConsole:
    """prompt_toolkit REPL that streams commands over one session."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        history_path: Optional[str] = None,
        connection_factory: Callable[[ClientConfig], socket.socket] = connect,
    ) -> None:
        self.config = config
        self.history_path = history_path
        self._connection_factory = connection_factory
        self._sock: Optional[socket.socket] = None
        self.sent = 0

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def open(self) -> None:
        if self._sock is None:
            self._sock = self._connection_factory(self.config)
            LOGGER.debug("session opened on %s", self.config.socket_path)

    def close(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()
            LOGGER.debug("session closed after %d command(s)", self.sent)

    def handle_line(self, line: str) -> bool:
        """Send one console line; returns False once the session is over."""
        try:
            tokens = split_command(line)
        except ValueError as exc:
            print(f"parse error: {exc}")
            return True
        if not tokens:
            return True
        if tokens[0].lower() in ("quit", "q"):
            return False
        try:
            payload = encode_tokens(tokens)
        except EncodeError as exc:
            print(f"error: {exc}")
            return True
        self.open()
        try:
            self._sock.sendall(payload)
        except OSError as exc:
            self.close()
            raise ClientError(f"write failed: {exc}") from exc
        self.sent += 1
        return payload[0] != ClientCommand.EXIT

    def _history(self) -> History:
        if self.history_path:
            return FileHistory(self.history_path)
        return InMemoryHistory()

    def run(self) -> int:
        self.open()
        print(f"[client] connected to {self.config.socket_path}; Ctrl-D closes the session")
        session: PromptSession = PromptSession(
            PROMPT,
            history=self._history(),
            completer=build_completer(),
            complete_while_typing=True,
        )
        try:
            while True:
                try:
                    with patch_stdout():
                        line = session.prompt()
                except (EOFError, KeyboardInterrupt):
                    print()
                    break
                if not self.handle_line(line):
                    break
        finally:
            self.close()
        return 0


__all__ = ["BackdoorConsole", "build_completer", "split_command"]

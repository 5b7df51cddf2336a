"""Runtime configuration shared by the server and client entry points."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_SOCKET_PATH = "./backdoor-framework-socket"


def default_socket_path() -> str:
    return os.environ.get("BACKDOOR_SOCKET", DEFAULT_SOCKET_PATH)


def default_log_level() -> str:
    return os.environ.get("BACKDOOR_LOG", "INFO")


@dataclass
class ServerConfig:
    socket_path: str = field(default_factory=default_socket_path)
    threaded: bool = False
    replace: bool = False
    poll_interval: float = 0.5
    backlog: int = 5
    show_report: bool = True


@dataclass
class ClientConfig:
    socket_path: str = field(default_factory=default_socket_path)
    connect_timeout: float = 2.0


__all__ = [
    "ClientConfig",
    "DEFAULT_SOCKET_PATH",
    "ServerConfig",
    "default_log_level",
    "default_socket_path",
]

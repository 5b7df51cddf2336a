"""
Pytest configuration and fixtures for backdoor tests.
"""
import threading
import time
from pathlib import Path

import pytest

from backdoor.config import ServerConfig
from backdoor.server import create_server
from backdoor.variables import VariableStore


@pytest.fixture
def store() -> VariableStore:
    return VariableStore()


@pytest.fixture
def socket_path(tmp_path: Path) -> str:
    return str(tmp_path / "bd.sock")


def wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def wait():
    return wait_for


class RunningServer:
    """Backdoor server serving on a background thread."""

    def __init__(self, config: ServerConfig) -> None:
        self.reports = []
        self.server = create_server(config, on_report=self.reports.append)
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        try:
            self.server.serve_until_exit()
        finally:
            self.server.server_close()

    @property
    def store(self) -> VariableStore:
        return self.server.store

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()

    def join(self, timeout: float = 2.0) -> None:
        self._thread.join(timeout)

    def stop(self) -> None:
        self.server.terminated = True
        self.join()


@pytest.fixture
def running_server(socket_path):
    servers = []

    def _start(**overrides) -> RunningServer:
        config = ServerConfig(socket_path=socket_path, poll_interval=0.05, **overrides)
        srv = RunningServer(config)
        servers.append(srv)
        return srv

    yield _start
    for srv in servers:
        srv.stop()

"""Command dispatcher: applies one decoded command to the variable store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .protocol import ClientCommand, Command
from .variables import VariableStore

LOGGER = logging.getLogger("backdoor.dispatcher")


class DispatchState(Enum):
    RUNNING = "running"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class DispatchResult:
    state: DispatchState
    command: Command
    message: str

    @property
    def running(self) -> bool:
        return self.state is DispatchState.RUNNING


class CommandDispatcher:
    """Two-state machine; TERMINATED is absorbing.

    ``on_exit`` releases whatever external resource the server holds (the
    listening endpoint) when an EXIT command arrives.
    """

    def __init__(self, store: VariableStore, *, on_exit: Optional[Callable[[], None]] = None) -> None:
        self.store = store
        self.on_exit = on_exit
        self.state = DispatchState.RUNNING

    @property
    def terminated(self) -> bool:
        return self.state is DispatchState.TERMINATED

    def dispatch(self, command: Command) -> DispatchResult:
        if self.terminated:
            return DispatchResult(self.state, command, "ignored: server terminated")
        kind = command.kind
        if kind is ClientCommand.NOP:
            message = "command: nop"
            LOGGER.info(message)
        elif kind is ClientCommand.EXIT:
            message = "command: exit"
            LOGGER.info(message)
            self.state = DispatchState.TERMINATED
            if self.on_exit is not None:
                self.on_exit()
        elif kind is ClientCommand.SET_VARIABLE:
            # missing argument bytes default to 0, as when the stream is truncated
            address, value = (tuple(command.args) + (0, 0))[:2]
            message = f"command: set variable[{address}] = {value}"
            LOGGER.info(message)
            with self.store.lock:
                self.store.set(address, value)
        else:
            message = f"unknown command: {command.opcode}"
            LOGGER.warning(message)
        return DispatchResult(self.state, command, message)


__all__ = ["CommandDispatcher", "DispatchResult", "DispatchState"]

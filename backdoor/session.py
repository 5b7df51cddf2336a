"""Session loop: drives one client byte stream through the command pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Callable, List, Optional

from .dispatcher import CommandDispatcher, DispatchResult
from .interrupt import InterruptResult, ServerInterrupt
from .protocol import DecodeStatus, decode_command
from .variables import VariableStore

LOGGER = logging.getLogger("backdoor.session")


class SessionOutcome(Enum):
    CLOSED = "closed"
    TERMINATED = "terminated"


@dataclass
class StepRecord:
    dispatch: DispatchResult
    decode_status: DecodeStatus
    interrupt: Optional[InterruptResult] = None


@dataclass
class SessionSummary:
    outcome: SessionOutcome
    steps: List[StepRecord] = field(default_factory=list)

    @property
    def commands(self) -> int:
        return len(self.steps)


class SessionLoop:
    """Decode, dispatch and evaluate commands until the stream ends.

    The store lock is held across each dispatch and the interrupt that
    follows it, so the breaker read-modify-write never interleaves with
    another session's writes.
    """

    def __init__(
        self,
        store: VariableStore,
        *,
        dispatcher: Optional[CommandDispatcher] = None,
        interrupt: Optional[ServerInterrupt] = None,
        on_report: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher or CommandDispatcher(store)
        self.interrupt = interrupt or ServerInterrupt()
        self.on_report = on_report

    def step(self, stream: BinaryIO) -> Optional[StepRecord]:
        """Process one command; returns None once the stream is closed.

        Decoding reads only this session's stream and runs outside the store
        lock, so a peer stalled mid-command cannot block other sessions.
        """
        decoded = decode_command(stream)
        if decoded.closed:
            return None
        if decoded.status is DecodeStatus.TRUNCATED:
            LOGGER.debug("command truncated; %d argument byte(s) defaulted to 0", decoded.missing)
        with self.store.lock:
            result = self.dispatcher.dispatch(decoded.command)
            record = StepRecord(result, decoded.status)
            if result.running:
                record.interrupt = self.interrupt.run(self.store)
        if record.interrupt is not None and self.on_report is not None:
            self.on_report(record.interrupt.report)
        return record

    def run(self, stream: BinaryIO) -> SessionSummary:
        summary = SessionSummary(SessionOutcome.CLOSED)
        if self.dispatcher.terminated:
            summary.outcome = SessionOutcome.TERMINATED
            return summary
        while True:
            record = self.step(stream)
            if record is None:
                break
            summary.steps.append(record)
            if not record.dispatch.running:
                summary.outcome = SessionOutcome.TERMINATED
                break
        LOGGER.debug("session %s after %d command(s)", summary.outcome.value, summary.commands)
        return summary


__all__ = ["SessionLoop", "SessionOutcome", "SessionSummary", "StepRecord"]

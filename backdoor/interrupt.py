"""Server interrupt: protective invariants evaluated after every command.

On real firmware this work happens in interrupt handlers.  Here it runs
synchronously once per non-terminal command.  Evaluation is a pure function
over a store snapshot so rules can be exercised without any I/O; the
``ServerInterrupt`` wrapper applies the result back to the live store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from .variables import SLOT_COUNT, VARIABLE_NAMES, VariableName, VariableStore, variable_name

LOGGER = logging.getLogger("backdoor.interrupt")


class Invariant(Protocol):
    def check(self, slots: bytearray) -> Optional[str]:
        """Inspect and optionally correct ``slots``; return a report line when acting."""


@dataclass(frozen=True)
class BreakerInvariant:
    """Open a breaker when a monitored value leaves its inclusive bounds.

    An agent is authenticated by having reached the channel at all.  It is
    authorized to trip the breaker only while the breaker is still closed and
    the monitored value is out of range.
    """

    breaker: int = VariableName.CIRCUIT_BREAKER
    monitored: int = VariableName.VOLTAGE
    low: int = VariableName.MIN_VOLTAGE
    high: int = VariableName.MAX_VOLTAGE
    message: str = "*** PROTECTED: circuit breaker tripped"

    def check(self, slots: bytearray) -> Optional[str]:
        if slots[self.breaker] == 0:
            return None
        value = slots[self.monitored]
        if slots[self.low] <= value <= slots[self.high]:
            return None
        slots[self.breaker] = 0
        return self.message


DEFAULT_INVARIANTS: Tuple[Invariant, ...] = (BreakerInvariant(),)


@dataclass(frozen=True)
class InterruptResult:
    snapshot: bytes
    actions: Tuple[str, ...] = ()
    report: str = ""

    @property
    def tripped(self) -> bool:
        return bool(self.actions)


def format_variables(snapshot: bytes) -> str:
    """Render every named or non-zero slot, one per line."""
    lines: List[str] = ["variables:"]
    for address, value in enumerate(snapshot):
        if address in VARIABLE_NAMES or value:
            lines.append(f"  {address}: {variable_name(address):<24} = {value}")
    return "\n".join(lines)


def evaluate(snapshot: bytes, invariants: Iterable[Invariant] = DEFAULT_INVARIANTS) -> InterruptResult:
    if len(snapshot) != SLOT_COUNT:
        raise ValueError(f"snapshot must be {SLOT_COUNT} bytes, got {len(snapshot)}")
    slots = bytearray(snapshot)
    actions: List[str] = []
    for invariant in invariants:
        action = invariant.check(slots)
        if action:
            actions.append(action)
    result = bytes(slots)
    return InterruptResult(result, tuple(actions), format_variables(result))


@dataclass
class ServerInterrupt:
    """Runs the invariants against a live store."""

    invariants: Sequence[Invariant] = field(default_factory=lambda: DEFAULT_INVARIANTS)

    def run(self, store: VariableStore) -> InterruptResult:
        LOGGER.info("server interrupt")
        with store.lock:
            before = store.snapshot()
            result = evaluate(before, self.invariants)
            if result.snapshot != before:
                store.restore(result.snapshot)
        for action in result.actions:
            LOGGER.warning("%s", action)
        return result


__all__ = [
    "BreakerInvariant",
    "DEFAULT_INVARIANTS",
    "Invariant",
    "InterruptResult",
    "ServerInterrupt",
    "evaluate",
    "format_variables",
]

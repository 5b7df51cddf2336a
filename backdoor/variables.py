"""Variable store for the simulated controller.

The store is a flat array of 256 byte-wide slots.  A handful of addresses
have well-known names; the numbers are part of the wire protocol and must
never be reassigned once defined.
"""

from __future__ import annotations

import threading
from enum import IntEnum
from typing import Dict, Optional, Tuple, Union

SLOT_COUNT = 256
SLOT_MASK = 0xFF


class VariableName(IntEnum):
    UNUSED = 0  # default when the client did not specify anything
    VOLTAGE = 1  # potential read from hardware
    AMPERAGE = 2  # current read from hardware
    MIN_VOLTAGE = 3  # min allowed voltage before the breaker trips
    MAX_VOLTAGE = 4  # max allowed voltage before the breaker trips
    CIRCUIT_BREAKER = 5  # 0 => open, non-zero => closed

    @property
    def label(self) -> str:
        return self.name.lower()


# Ordered so reports and completers iterate in a stable order.
VARIABLE_LIST: Tuple[Tuple[str, int], ...] = tuple((var.label, int(var)) for var in VariableName)

VARIABLES: Dict[str, int] = {name: address for name, address in VARIABLE_LIST}
VARIABLE_NAMES: Dict[int, str] = {address: name for name, address in VARIABLE_LIST}

DEFAULT_VALUES: Dict[int, int] = {
    VariableName.UNUSED: 0,
    VariableName.VOLTAGE: 240,
    VariableName.AMPERAGE: 0,
    VariableName.MIN_VOLTAGE: 235,
    VariableName.MAX_VOLTAGE: 245,
    VariableName.CIRCUIT_BREAKER: 1,
}


def variable_name(address: int) -> str:
    """Display name for an address; unnamed slots render as ``var[N]``."""
    address = int(address) & SLOT_MASK
    return VARIABLE_NAMES.get(address, f"var[{address}]")


def resolve_address(token: Union[str, int]) -> int:
    """Resolve a symbolic or numeric address token to a slot number."""
    if isinstance(token, int):
        value = token
    else:
        text = token.strip()
        named = VARIABLES.get(text.lower())
        if named is not None:
            return named
        value = int(text, 0)
    if not 0 <= value <= SLOT_MASK:
        raise ValueError(f"address out of range: {value}")
    return value


class VariableStore:
    """Process-wide array of byte slots.

    The store has no policy of its own.  ``lock`` is the single mutual-exclusion
    domain callers hold around a dispatch and its interrupt evaluation.
    """

    def __init__(self, initial: Optional[Dict[int, int]] = None) -> None:
        self.lock = threading.RLock()
        self._slots = bytearray(SLOT_COUNT)
        values = DEFAULT_VALUES if initial is None else initial
        for address, value in values.items():
            self.set(address, value)

    def get(self, address: int) -> int:
        return self._slots[int(address) & SLOT_MASK]

    def set(self, address: int, value: int) -> None:
        self._slots[int(address) & SLOT_MASK] = int(value) & SLOT_MASK

    def snapshot(self) -> bytes:
        return bytes(self._slots)

    def restore(self, snapshot: bytes) -> None:
        if len(snapshot) != SLOT_COUNT:
            raise ValueError(f"snapshot must be {SLOT_COUNT} bytes, got {len(snapshot)}")
        self._slots[:] = snapshot


__all__ = [
    "DEFAULT_VALUES",
    "SLOT_COUNT",
    "VARIABLES",
    "VARIABLE_LIST",
    "VARIABLE_NAMES",
    "VariableName",
    "VariableStore",
    "resolve_address",
    "variable_name",
]

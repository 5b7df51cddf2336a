"""Wire protocol for controller commands.

A command is one opcode byte followed by a fixed number of argument bytes.
There is no framing and no reply; the arity is intrinsic to the opcode.
Opcode numbers are shared with shell scripts that call the client with
hard-coded values, so they must never change once defined.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import BinaryIO, Dict, Optional, Tuple


class ClientCommand(IntEnum):
    NOP = 0  # no operation, but still runs the server interrupt
    EXIT = 1  # exit server without running the interrupt
    SET_VARIABLE = 2  # set variable to value


# (mnemonic, opcode, argument bytes)
COMMAND_LIST: Tuple[Tuple[str, int, int], ...] = (
    ("nop", ClientCommand.NOP, 0),
    ("exit", ClientCommand.EXIT, 0),
    ("set", ClientCommand.SET_VARIABLE, 2),
)

COMMANDS: Dict[str, int] = {mnemonic: int(opcode) for mnemonic, opcode, _ in COMMAND_LIST}
COMMAND_NAMES: Dict[int, str] = {int(opcode): mnemonic for mnemonic, opcode, _ in COMMAND_LIST}
COMMAND_ARITY: Dict[int, int] = {int(opcode): arity for _, opcode, arity in COMMAND_LIST}

MAX_BYTES_IN_COMMAND = 1 + max(COMMAND_ARITY.values())


def command_arity(opcode: int) -> int:
    """Argument byte count for ``opcode``; unknown opcodes take none."""
    return COMMAND_ARITY.get(int(opcode), 0)


@dataclass(frozen=True)
class Command:
    opcode: int
    args: Tuple[int, ...] = ()

    @property
    def kind(self) -> Optional[ClientCommand]:
        """The recognised command, or None when the opcode is unassigned."""
        try:
            return ClientCommand(self.opcode)
        except ValueError:
            return None

    @property
    def known(self) -> bool:
        return self.kind is not None

    def encode(self) -> bytes:
        return encode_command(self)


def nop() -> Command:
    return Command(int(ClientCommand.NOP))


def exit_server() -> Command:
    return Command(int(ClientCommand.EXIT))


def set_variable(address: int, value: int) -> Command:
    return Command(int(ClientCommand.SET_VARIABLE), (int(address) & 0xFF, int(value) & 0xFF))


class DecodeStatus(Enum):
    COMPLETE = "complete"
    TRUNCATED = "truncated"
    CLOSED = "closed"


@dataclass(frozen=True)
class DecodeResult:
    status: DecodeStatus
    command: Optional[Command] = None
    missing: int = 0

    @property
    def closed(self) -> bool:
        return self.status is DecodeStatus.CLOSED


def encode_command(command: Command) -> bytes:
    """Serialise ``command`` as its opcode byte plus argument bytes."""
    arity = command_arity(command.opcode)
    if command.known and len(command.args) != arity:
        raise ValueError(f"{COMMAND_NAMES[command.opcode]} takes {arity} argument(s), got {len(command.args)}")
    return bytes([command.opcode & 0xFF, *(arg & 0xFF for arg in command.args)])


def _read_exact(stream: BinaryIO, count: int) -> bytes:
    data = b""
    while len(data) < count:
        chunk = stream.read(count - len(data))
        if not chunk:
            break
        data += chunk
    return data


def decode_command(stream: BinaryIO) -> DecodeResult:
    """Read one command from ``stream``.

    Missing argument bytes (peer closed mid-command) default to zero, which
    addresses the ``unused`` slot.  Unknown opcodes decode as zero-argument
    commands.
    """
    head = _read_exact(stream, 1)
    if not head:
        return DecodeResult(DecodeStatus.CLOSED)
    opcode = head[0]
    arity = command_arity(opcode)
    if arity == 0:
        return DecodeResult(DecodeStatus.COMPLETE, Command(opcode))
    payload = _read_exact(stream, arity)
    missing = arity - len(payload)
    args = tuple(payload) + (0,) * missing
    status = DecodeStatus.TRUNCATED if missing else DecodeStatus.COMPLETE
    return DecodeResult(status, Command(opcode, args), missing)


__all__ = [
    "COMMANDS",
    "COMMAND_ARITY",
    "COMMAND_LIST",
    "COMMAND_NAMES",
    "ClientCommand",
    "Command",
    "DecodeResult",
    "DecodeStatus",
    "MAX_BYTES_IN_COMMAND",
    "command_arity",
    "decode_command",
    "encode_command",
    "exit_server",
    "nop",
    "set_variable",
]

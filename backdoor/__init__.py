"""
backdoor - a small client/server framework for controller backdoors.

The server plays firmware: it owns the variable store and runs the server
interrupt after every command.  Clients play agents or hardware sensors and
reach the server over a Unix domain socket.

    variables.py   → byte slots and named addresses
    protocol.py    → opcodes, arity, encode/decode
    dispatcher.py  → command state machine
    interrupt.py   → protective invariants (breaker trip)
    session.py     → per-connection command loop
    server.py      → Unix socket listener
    client.py      → command-line encoder
    console.py     → interactive prompt_toolkit client
"""

from .dispatcher import CommandDispatcher, DispatchResult, DispatchState  # noqa: F401
from .interrupt import BreakerInvariant, InterruptResult, ServerInterrupt, evaluate, format_variables  # noqa: F401
from .protocol import ClientCommand, Command, DecodeResult, DecodeStatus, decode_command, encode_command  # noqa: F401
from .session import SessionLoop, SessionOutcome, SessionSummary  # noqa: F401
from .variables import VariableName, VariableStore, variable_name  # noqa: F401

__all__ = [
    "BreakerInvariant",
    "ClientCommand",
    "Command",
    "CommandDispatcher",
    "DecodeResult",
    "DecodeStatus",
    "DispatchResult",
    "DispatchState",
    "InterruptResult",
    "ServerInterrupt",
    "SessionLoop",
    "SessionOutcome",
    "SessionSummary",
    "VariableName",
    "VariableStore",
    "decode_command",
    "encode_command",
    "evaluate",
    "format_variables",
    "variable_name",
]

__version__ = "0.1.0"

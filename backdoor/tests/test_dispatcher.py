"""Tests for the command dispatcher state machine."""

import logging

import pytest

from backdoor import protocol
from backdoor.dispatcher import CommandDispatcher, DispatchState
from backdoor.protocol import ClientCommand, Command


@pytest.mark.parametrize("address,value", [(0, 0), (1, 200), (6, 1), (128, 64), (255, 255)])
def test_set_variable_writes_store(store, address, value):
    dispatcher = CommandDispatcher(store)
    result = dispatcher.dispatch(protocol.set_variable(address, value))
    assert result.running
    assert store.get(address) == value
    assert result.message == f"command: set variable[{address}] = {value}"


def test_nop_leaves_store_untouched(store):
    before = store.snapshot()
    dispatcher = CommandDispatcher(store)
    for _ in range(10):
        assert dispatcher.dispatch(protocol.nop()).state is DispatchState.RUNNING
    assert store.snapshot() == before


def test_unknown_opcode_reports_and_keeps_running(store, caplog):
    before = store.snapshot()
    dispatcher = CommandDispatcher(store)
    with caplog.at_level(logging.WARNING, logger="backdoor.dispatcher"):
        result = dispatcher.dispatch(Command(200))
    assert result.running
    assert result.message == "unknown command: 200"
    assert "unknown command: 200" in caplog.text
    assert store.snapshot() == before


def test_exit_terminates_and_releases_endpoint(store):
    released = []
    dispatcher = CommandDispatcher(store, on_exit=lambda: released.append(True))
    result = dispatcher.dispatch(protocol.exit_server())
    assert result.state is DispatchState.TERMINATED
    assert not result.running
    assert dispatcher.terminated
    assert released == [True]


def test_terminated_is_absorbing(store):
    released = []
    dispatcher = CommandDispatcher(store, on_exit=lambda: released.append(True))
    dispatcher.dispatch(protocol.exit_server())
    result = dispatcher.dispatch(protocol.set_variable(1, 7))
    assert result.state is DispatchState.TERMINATED
    assert store.get(1) == 240
    dispatcher.dispatch(protocol.exit_server())
    assert released == [True]


@pytest.mark.parametrize("args,address,value", [((), 0, 0), ((4,), 4, 0)])
def test_short_set_variable_defaults_missing_bytes(store, args, address, value):
    store.set(address, 99)
    dispatcher = CommandDispatcher(store)
    result = dispatcher.dispatch(Command(int(ClientCommand.SET_VARIABLE), args))
    assert result.running
    assert store.get(address) == value
    assert result.message == f"command: set variable[{address}] = {value}"

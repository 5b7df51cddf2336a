"""Tests for the server interrupt and its protective invariants."""

import logging

import pytest

from backdoor.interrupt import (
    BreakerInvariant,
    ServerInterrupt,
    evaluate,
    format_variables,
)
from backdoor.variables import SLOT_COUNT, VariableName, VariableStore


def _snapshot(voltage, low, high, breaker):
    store = VariableStore()
    store.set(VariableName.VOLTAGE, voltage)
    store.set(VariableName.MIN_VOLTAGE, low)
    store.set(VariableName.MAX_VOLTAGE, high)
    store.set(VariableName.CIRCUIT_BREAKER, breaker)
    return store.snapshot()


@pytest.mark.parametrize(
    "voltage,low,high,breaker,expected",
    [
        (200, 235, 245, 1, 0),  # below range trips
        (250, 235, 245, 1, 0),  # above range trips
        (235, 235, 245, 1, 1),  # bounds are inclusive
        (245, 235, 245, 1, 1),
        (240, 235, 245, 7, 7),  # in range keeps the closed value
        (200, 235, 245, 0, 0),  # already open stays open
        (240, 235, 245, 0, 0),
        (0, 10, 5, 1, 0),  # empty range always trips
    ],
)
def test_breaker_rule(voltage, low, high, breaker, expected):
    result = evaluate(_snapshot(voltage, low, high, breaker))
    assert result.snapshot[VariableName.CIRCUIT_BREAKER] == expected
    assert result.tripped == (breaker != 0 and expected == 0)


def test_evaluate_is_pure():
    snap = _snapshot(200, 235, 245, 1)
    result = evaluate(snap)
    assert snap[VariableName.CIRCUIT_BREAKER] == 1
    assert result.snapshot[VariableName.CIRCUIT_BREAKER] == 0
    assert result.actions == ("*** PROTECTED: circuit breaker tripped",)


def test_evaluate_is_idempotent():
    first = evaluate(_snapshot(200, 235, 245, 1))
    second = evaluate(first.snapshot)
    assert second.snapshot == first.snapshot
    assert second.actions == ()


def test_evaluate_rejects_short_snapshot():
    with pytest.raises(ValueError):
        evaluate(b"\x00" * 10)


def test_custom_invariant_on_other_slots():
    amps = BreakerInvariant(breaker=20, monitored=VariableName.AMPERAGE, low=21, high=22, message="amps tripped")
    slots = bytearray(SLOT_COUNT)
    slots[VariableName.AMPERAGE] = 90
    slots[20] = 1
    slots[21] = 0
    slots[22] = 50
    result = evaluate(bytes(slots), [amps])
    assert result.snapshot[20] == 0
    assert result.actions == ("amps tripped",)


def test_report_lists_named_and_nonzero_slots():
    store = VariableStore()
    store.set(42, 9)
    text = format_variables(store.snapshot())
    lines = text.splitlines()
    assert lines[0] == "variables:"
    assert lines[1] == "  0: unused                   = 0"
    assert lines[2] == "  1: voltage                  = 240"
    assert lines[6] == "  5: circuit_breaker          = 1"
    assert lines[7] == "  42: var[42]                  = 9"
    assert len(lines) == 8


def test_server_interrupt_applies_trip_to_store(caplog):
    store = VariableStore()
    store.set(VariableName.VOLTAGE, 100)
    with caplog.at_level(logging.INFO, logger="backdoor.interrupt"):
        result = ServerInterrupt().run(store)
    assert store.get(VariableName.CIRCUIT_BREAKER) == 0
    assert result.tripped
    assert "server interrupt" in caplog.text
    assert "*** PROTECTED: circuit breaker tripped" in caplog.text
    assert "circuit_breaker          = 0" in result.report


def test_server_interrupt_without_trip_leaves_store(store):
    before = store.snapshot()
    result = ServerInterrupt().run(store)
    assert not result.tripped
    assert store.snapshot() == before

"""Tests for the single-binary entry point."""

from backdoor import __main__ as entry


def test_no_arguments_runs_server(monkeypatch):
    calls = []
    monkeypatch.setattr(entry.server, "main", lambda argv: calls.append(("server", argv)) or 0)
    monkeypatch.setattr(entry.client, "main", lambda argv: calls.append(("client", argv)) or 0)
    assert entry.main([]) == 0
    assert calls == [("server", [])]


def test_arguments_run_client(monkeypatch):
    calls = []
    monkeypatch.setattr(entry.server, "main", lambda argv: calls.append(("server", argv)) or 0)
    monkeypatch.setattr(entry.client, "main", lambda argv: calls.append(("client", argv)) or 0)
    assert entry.main(["set", "voltage", "100"]) == 0
    assert calls == [("client", ["set", "voltage", "100"])]

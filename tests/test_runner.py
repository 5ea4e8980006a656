import json
import logging
import threading

import pytest

from ladder_bot.exceptions import UnrecoverableStateError
from ladder_bot.runner import run_bot, run_forever

LOGGER = logging.getLogger("ladder_bot.tests")


class _ScriptedEngine:
    """Runs the given callables one per cycle, then stops the loop."""

    def __init__(self, stop_event, steps):
        self.stop_event = stop_event
        self.steps = list(steps)
        self.cycles = 0

    def reconcile(self):
        self.cycles += 1
        step = self.steps.pop(0)
        if not self.steps:
            self.stop_event.set()
        step()


def _raise(exc):
    def step():
        raise exc

    return step


def test_unexpected_errors_are_logged_and_loop_continues(caplog):
    stop_event = threading.Event()
    engine = _ScriptedEngine(stop_event, [_raise(KeyError("boom")), lambda: None, lambda: None])

    with caplog.at_level(logging.ERROR, logger="ladder_bot.tests"):
        run_forever(engine, stop_event, 0, LOGGER)

    assert engine.cycles == 3
    assert "Unexpected error during reconciliation cycle" in caplog.text


def test_fatal_errors_stop_the_loop():
    stop_event = threading.Event()
    engine = _ScriptedEngine(stop_event, [_raise(UnrecoverableStateError("stuck")), lambda: None])

    with pytest.raises(UnrecoverableStateError):
        run_forever(engine, stop_event, 0, LOGGER)

    assert engine.cycles == 1


def test_stop_event_prevents_further_cycles():
    stop_event = threading.Event()
    stop_event.set()
    engine = _ScriptedEngine(stop_event, [lambda: None])

    run_forever(engine, stop_event, 0, LOGGER)

    assert engine.cycles == 0


def test_run_bot_exits_with_one_on_invalid_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"pair": "ETH_USDT", "startAmount": -1}), encoding="utf-8")

    assert run_bot(str(config_path), api_key="k", api_secret="s", stop_event=threading.Event()) == 1


def test_run_bot_exits_with_one_on_missing_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    stop_event = threading.Event()

    assert run_bot(str(tmp_path / "missing.json"), api_key="k", api_secret="s", stop_event=stop_event) == 1


def _write_bot_files(tmp_path, state):
    state_path = tmp_path / "data" / "db.json"
    state_path.parent.mkdir()
    state_path.write_text(json.dumps(state), encoding="utf-8")
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "pair": "ETH/USDT",
                "startAmount": 25,
                "startPricePercent": 0,
                "dca": [2, 3],
                "profit": 1,
                "secondsToKeepDCA": -1,
                "live": True,
                "pollSeconds": 0,
                "stateFile": str(state_path),
            }
        ),
        encoding="utf-8",
    )
    return str(config_path)


def test_run_bot_exits_with_one_when_recovery_fails(tmp_path, monkeypatch, exchange):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("ladder_bot.runner.MexcClient", lambda **kwargs: exchange)
    exchange.add_order("s1", 100.0, 0.25, status="canceled")
    config_path = _write_bot_files(tmp_path, {"sellOrders": ["s1"]})

    assert run_bot(config_path, api_key="k", api_secret="s", stop_event=threading.Event()) == 1
    assert exchange.placed == []


def test_run_bot_exits_with_one_on_unrecoverable_state(tmp_path, monkeypatch, exchange):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("ladder_bot.runner.MexcClient", lambda **kwargs: exchange)
    exchange.add_order("s1", 100.0, 0.25)
    config_path = _write_bot_files(tmp_path, {"sellOrders": ["s1"], "unrecoverable": True})

    assert run_bot(config_path, api_key="k", api_secret="s", stop_event=threading.Event()) == 1
    assert exchange.placed == []
    assert exchange.cancel_calls == []

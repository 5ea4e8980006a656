import copy
import logging
from typing import Any, Dict, List

import pytest

from ladder_bot.exceptions import ExchangeError
from ladder_bot.models import StrategyConfig
from ladder_bot.state_store import DEFAULTS


class FakeExchange:
    """In-memory exchange; ``fail`` maps a method name to how many calls should raise (-1 = always)."""

    def __init__(self, ask: float = 100.0, free: float = 1000.0, market: Dict[str, Any] = None) -> None:
        self.ask = ask
        self.balances = {"ETH": {"free": free, "used": 0.0, "total": free}}
        self.market = market or {"min_order_size": 1.0, "amount_precision": 4, "price_precision": 2}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.placed: List[tuple] = []
        self.cancelled: List[str] = []
        self.cancel_calls: List[str] = []
        self.fail: Dict[str, int] = {}
        self.fail_cancel_ids: set = set()
        self._next_id = 1

    def _maybe_fail(self, name: str) -> None:
        remaining = self.fail.get(name, 0)
        if remaining:
            if remaining > 0:
                self.fail[name] = remaining - 1
            raise ExchangeError(f"{name} failed")

    def add_order(self, order_id, price, amount, status="open", filled=0.0, side="sell"):
        self.orders[order_id] = {
            "id": order_id,
            "status": status,
            "filled": filled,
            "price": price,
            "amount": amount,
            "side": side,
        }

    def fill(self, order_id, filled, status=None):
        self.orders[order_id]["filled"] = filled
        if status:
            self.orders[order_id]["status"] = status

    def fetch_ticker(self, pair):
        self._maybe_fail("fetch_ticker")
        return {"symbol": pair, "ask": self.ask}

    def fetch_order(self, order_id, pair):
        self._maybe_fail("fetch_order")
        return dict(self.orders[order_id])

    def _place(self, side, amount, price):
        order_id = f"{side}-{self._next_id}"
        self._next_id += 1
        self.add_order(order_id, price, amount, side=side)
        self.placed.append((side, amount, price))
        return {"id": order_id}

    def place_limit_sell_order(self, pair, amount, price):
        self._maybe_fail("place_limit_sell_order")
        return self._place("sell", amount, price)

    def place_limit_buy_order(self, pair, amount, price):
        self._maybe_fail("place_limit_buy_order")
        return self._place("buy", amount, price)

    def cancel_order(self, order_id, pair):
        self.cancel_calls.append(order_id)
        self._maybe_fail("cancel_order")
        if order_id in self.fail_cancel_ids:
            raise ExchangeError(f"cannot cancel {order_id}")
        self.orders[order_id]["status"] = "canceled"
        self.cancelled.append(order_id)
        return {"id": order_id}

    def fetch_balance(self):
        self._maybe_fail("fetch_balance")
        return copy.deepcopy(self.balances)

    def fetch_market(self, pair):
        self._maybe_fail("fetch_market")
        return dict(self.market)

    def placed_sides(self, side):
        return [entry for entry in self.placed if entry[0] == side]


class MemoryStore:
    def __init__(self, initial: Dict[str, Any] = None) -> None:
        self.data = copy.deepcopy(DEFAULTS)
        self.data.update(initial or {})
        self.updates: List[Dict[str, Any]] = []
        self.snapshots: List[Dict[str, Any]] = []

    def get(self, key, default=None):
        return copy.deepcopy(self.data.get(key, default))

    def set(self, key, value):
        self.update({key: value})

    def update(self, values):
        self.updates.append(dict(values))
        self.data.update(copy.deepcopy(dict(values)))
        self.snapshots.append(copy.deepcopy(self.data))


@pytest.fixture
def exchange():
    return FakeExchange()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def make_store():
    return MemoryStore


@pytest.fixture
def logger():
    return logging.getLogger("ladder_bot.tests")


@pytest.fixture
def make_config():
    def _make(**overrides):
        values = dict(
            pair="ETH/USDT",
            start_amount=25.0,
            start_price_percent=0.0,
            dca=(2.0, 3.0),
            profit=1.0,
            seconds_to_keep_dca=-1,
            live=True,
            poll_seconds=0.0,
        )
        values.update(overrides)
        return StrategyConfig(**values)

    return _make

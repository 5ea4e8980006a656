import pytest

from ladder_bot.canceller import OrderCanceller
from ladder_bot.exceptions import UnrecoverableStateError
from ladder_bot.orders import OrderGateway
from ladder_bot.state_store import LadderLedger


def _canceller(exchange, store, logger):
    ledger = LadderLedger(store)
    return OrderCanceller(OrderGateway(exchange, "ETH/USDT", logger), ledger, logger), ledger


def _ladder(exchange, make_store, ids):
    for index, order_id in enumerate(ids):
        exchange.add_order(order_id, 100.0 + index, 1.0)
    return make_store({"sellOrders": list(ids), "firstSellPrice": 100.0, "firstSellTime": 1.0})


def test_cancels_every_open_order(exchange, make_store, logger):
    store = _ladder(exchange, make_store, ["1", "2", "3"])
    canceller, ledger = _canceller(exchange, store, logger)

    canceller.cancel_ladder()

    assert exchange.cancelled == ["1", "2", "3"]
    assert ledger.state.sell_orders == []
    assert store.data["sellOrders"] == []
    assert store.data["firstSellPrice"] is None
    assert store.data["unrecoverable"] is False


def test_resolved_orders_are_not_cancelled_again(exchange, make_store, logger):
    store = _ladder(exchange, make_store, ["1", "2"])
    exchange.fill("1", 1.0, status="closed")
    canceller, ledger = _canceller(exchange, store, logger)

    canceller.cancel_ladder()

    assert exchange.cancel_calls == ["2"]
    assert ledger.state.sell_orders == []


def test_transient_failures_are_retried_in_later_passes(exchange, make_store, logger):
    store = _ladder(exchange, make_store, ["1", "2"])
    # order "1" exhausts its five cancel attempts in the first pass only
    exchange.fail["cancel_order"] = 5
    canceller, ledger = _canceller(exchange, store, logger)

    canceller.cancel_ladder()

    assert sorted(exchange.cancelled) == ["1", "2"]
    passes = [update["sellOrders"] for update in store.updates if "sellOrders" in update]
    assert passes == [["1"], []]
    assert ledger.state.unrecoverable is False


def test_orders_that_never_cancel_mark_state_unrecoverable(exchange, make_store, logger):
    store = _ladder(exchange, make_store, ["1", "2", "3", "4"])
    exchange.fail_cancel_ids = {"2", "4"}
    canceller, ledger = _canceller(exchange, store, logger)

    with pytest.raises(UnrecoverableStateError):
        canceller.cancel_ladder()

    assert store.data["unrecoverable"] is True
    assert store.data["sellOrders"] == ["2", "4"]
    assert ledger.state.sell_orders == ["2", "4"]
    passes = [update["sellOrders"] for update in store.updates if "sellOrders" in update]
    assert passes == [["2", "4"], ["2", "4"], ["2", "4"]]
    # 3 passes x 5 attempts for each stuck order
    assert exchange.cancel_calls.count("2") == 15

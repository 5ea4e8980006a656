from __future__ import annotations

import logging

from .exceptions import RecoveryError, RetryExhausted
from .models import CANCELED, CLOSED
from .orders import OrderGateway
from .state_store import LadderLedger

RESET_HINT = (
    "Please make sure to cancel all orders from the bot and then clear the content of the state file"
)


class RecoveryChecker:
    """Checks that orders persisted by a previous run are still untouched."""

    def __init__(self, gateway: OrderGateway, ledger: LadderLedger, logger: logging.Logger) -> None:
        self.gateway = gateway
        self.ledger = ledger
        self.logger = logger

    def check(self) -> str:
        state = self.ledger.state
        for order_id in state.sell_orders:
            self.logger.info("Checking sell order with id: %s", order_id)
            try:
                order = self.gateway.fetch_order(order_id)
            except RetryExhausted as exc:
                raise RecoveryError(f"Unable to fetch sell order with id: {order_id}. {RESET_HINT}") from exc
            if order.status == CANCELED:
                raise RecoveryError(f"Sell order with id: {order_id} was canceled by user. {RESET_HINT}")

        if state.buy_order:
            self.logger.info("Checking buy order with id: %s", state.buy_order)
            try:
                order = self.gateway.fetch_order(state.buy_order)
            except RetryExhausted as exc:
                raise RecoveryError(
                    f"Unable to fetch buy order with id: {state.buy_order}. {RESET_HINT}"
                ) from exc
            if order.status == CANCELED:
                raise RecoveryError(f"Buy order was canceled by user. {RESET_HINT}")
            if order.status == CLOSED:
                raise RecoveryError(f"Buy order was filled while bot was offline. {RESET_HINT}")

        return "All orders in place"

from __future__ import annotations

import logging

from .exceptions import RetryExhausted, UnrecoverableStateError
from .orders import OrderGateway
from .state_store import LadderLedger

CANCEL_PASSES = 3


class OrderCanceller:
    def __init__(
        self,
        gateway: OrderGateway,
        ledger: LadderLedger,
        logger: logging.Logger,
        passes: int = CANCEL_PASSES,
    ) -> None:
        self.gateway = gateway
        self.ledger = ledger
        self.logger = logger
        self.passes = passes

    def cancel_ladder(self) -> None:
        """Cancel every tracked sell order or mark the state unrecoverable.

        The shrinking list of un-cancelled ids is persisted after each pass.
        """
        self.logger.info("Cancelling all sell orders")
        pending = list(self.ledger.state.sell_orders)
        for attempt in range(1, self.passes + 1):
            failed = []
            for order_id in pending:
                self.logger.info("Cancelling sell order with id: %s", order_id)
                try:
                    if self.gateway.cancel_order(order_id):
                        self.logger.info("Order %s canceled", order_id)
                except RetryExhausted as exc:
                    self.logger.error("Pass %s: %s", attempt, exc)
                    failed.append(order_id)
            pending = failed
            self.ledger.commit(sell_orders=pending, first_sell_price=None)
            if not pending:
                return

        self.ledger.mark_unrecoverable()
        raise UnrecoverableStateError(
            f"Bot was not able to cancel orders {pending}. Please cancel them, "
            "clear the state file and restart the bot."
        )

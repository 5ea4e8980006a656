from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .canceller import OrderCanceller
from .exceptions import (
    ConfigError,
    InterferenceError,
    RetryExhausted,
    StartupError,
    UnrecoverableStateError,
)
from .exchange import ExchangeClient
from .ladder import LadderBuilder
from .models import CANCELED, CLOSED, MarketInfo, StrategyConfig
from .orders import OrderGateway
from .recovery import RESET_HINT, RecoveryChecker
from .rounding import add, clean_amount_floor, clean_price_floor, subtract
from .state_store import LadderLedger, StateStore


class LadderEngine:
    def __init__(
        self,
        client: ExchangeClient,
        config: StrategyConfig,
        store: StateStore,
        logger: logging.Logger,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.logger = logger
        self.clock = clock
        self.gateway = OrderGateway(client, config.pair, logger)
        self.ledger = LadderLedger(store)
        self.market: Optional[MarketInfo] = None
        self.builder: Optional[LadderBuilder] = None
        self.canceller = OrderCanceller(self.gateway, self.ledger, logger)
        self.recovery = RecoveryChecker(self.gateway, self.ledger, logger)

    @property
    def state(self):
        return self.ledger.state

    def start(self) -> None:
        self.logger.info("--------------- Loading config and fetching trading info ---------------")
        try:
            self.market = self.gateway.fetch_market_info()
        except RetryExhausted as exc:
            raise StartupError(str(exc)) from exc
        if self.config.start_amount < self.market.min_order_size:
            raise ConfigError(
                f"startAmount is too low on this quote. Need at least: {self.market.min_order_size}"
            )
        self.logger.info(
            "minOrderSize: %s, amountPrecision: %s, pricePrecision: %s",
            self.market.min_order_size,
            self.market.amount_precision,
            self.market.price_precision,
        )
        self.builder = LadderBuilder(
            self.gateway, self.ledger, self.config, self.market, self.logger, clock=self.clock
        )

        if self.state.unrecoverable:
            raise UnrecoverableStateError(
                "Bot was canceled or crashed in a state it can't recover from. "
                "Please cancel all orders and delete the content of the state file"
            )

        self.logger.info("Starting bot ...")
        if self.state.sell_orders:
            self.logger.info("Found existing DCA structure. Bot will check orders")
            self.logger.info(self.recovery.check())
            self.logger.info("Bot will continue from where it stopped")
        else:
            self.logger.info("No DCA structure found. Bot will build it now")
            self.builder.build()

    def reconcile(self) -> None:
        if self.market is None or self.builder is None:
            raise StartupError("LadderEngine.start() has to run before reconcile()")
        if self.state.unrecoverable:
            raise UnrecoverableStateError("State is marked unrecoverable, refusing to trade")
        self.logger.info("Check orders for update ...")
        if self.state.buy_order:
            self._check_orders_with_buy_order()
        else:
            self._check_orders()

    def _collect_fills(self) -> Optional[tuple[float, float]]:
        """Return ``(total_filled, average_fill_price)`` over the sell ladder.

        ``None`` means a sell order could not be read and the cycle should be
        skipped. The average is ``0.0`` when nothing is filled.
        """
        total = 0.0
        weighted = 0.0
        for order_id in self.state.sell_orders:
            try:
                order = self.gateway.fetch_order(order_id)
            except RetryExhausted as exc:
                self.logger.warning("%s, will retry next cycle", exc)
                return None
            total += order.filled
            weighted += order.price * order.filled
        if total <= 0:
            return 0.0, 0.0
        return total, weighted / total

    def _buy_target(self, total_filled: float, average: float) -> tuple[float, float]:
        buy_price = clean_price_floor(average * (1 - self.config.profit / 100), self.market.price_precision)
        amount = clean_amount_floor(total_filled * average / buy_price, self.market.amount_precision)
        return buy_price, amount

    def _check_orders(self) -> None:
        self.logger.info("Checking if something got filled")
        fills = self._collect_fills()
        if fills is None:
            return
        total_filled, average = fills

        if total_filled > 0:
            self.logger.info("Found filled sell orders. Calculating buy price and amount ...")
            buy_price, amount = self._buy_target(total_filled, average)
            # a replacement that failed to place leaves what was already bought in the carry
            amount = subtract(amount, self.state.buy_filled_carry)
            if amount > buy_price * self.market.min_order_size:
                self.logger.info("Placing buy order at price: %s and amount: %s", buy_price, amount)
                try:
                    order_id = self.gateway.place_buy_order(buy_price, amount)
                except RetryExhausted as exc:
                    self.logger.error("%s, will retry next cycle", exc)
                    return
                self.ledger.set_buy_order(order_id, buy_price)
                self.logger.info("Placed buy order %s", order_id)
            else:
                self.logger.info("MinOrderSize not reached. Will place buy order when enough was sold")
        elif self._ladder_expired():
            self.logger.info("Checking if the orderbook moved down ...")
            try:
                lowest_ask = self.gateway.fetch_lowest_ask()
            except RetryExhausted as exc:
                self.logger.warning("%s, will retry next cycle", exc)
                return
            if self.state.first_sell_price is not None and lowest_ask < self.state.first_sell_price:
                self.logger.info("Yes. Moving all sell orders ...")
                self.canceller.cancel_ladder()
                self.builder.build()

    def _ladder_expired(self) -> bool:
        horizon = self.config.seconds_to_keep_dca
        if horizon < 0 or self.state.first_sell_time is None:
            return False
        return self.clock() - self.state.first_sell_time > horizon

    def _check_orders_with_buy_order(self) -> None:
        try:
            buy = self.gateway.fetch_order(self.state.buy_order)
        except RetryExhausted as exc:
            self.logger.warning("Failed to get buy order: %s", exc)
            return

        if buy.status == CLOSED:
            self.logger.info("Buy order %s was closed", buy.id)
            self.ledger.clear_buy_order()
            self.canceller.cancel_ladder()
            self.builder.build()
            return
        if buy.status == CANCELED:
            raise InterferenceError(f"Buy order {buy.id} was canceled outside the bot. {RESET_HINT}")

        self.logger.info("Buy order still alive. Checking if something got filled")
        fills = self._collect_fills()
        if fills is None:
            return
        total_filled, average = fills
        if total_filled <= 0:
            self.logger.info("No sell fills found, keeping buy order %s", buy.id)
            return

        buy_price, amount = self._buy_target(total_filled, average)
        carried = self.state.buy_filled_carry
        # compare against everything this buy cycle covers, not just the live order
        if buy_price > self.state.buy_order_price or amount > add(buy.amount, carried):
            carried = add(carried, buy.filled)
            amount = subtract(amount, carried)
            self.logger.info("New buy price or amount found because sell orders got filled")
            self.logger.info("Cancelling old buy order %s ...", buy.id)
            try:
                self.gateway.cancel_order(buy.id)
            except RetryExhausted as exc:
                self.logger.error("%s, will retry next cycle", exc)
                return
            self.ledger.clear_buy_order(carried)

            self.logger.info("Placing new buy order with price: %s and amount: %s", buy_price, amount)
            try:
                order_id = self.gateway.place_buy_order(buy_price, amount)
            except RetryExhausted as exc:
                self.logger.error("%s, will retry next cycle", exc)
                return
            self.ledger.set_buy_order(order_id, buy_price)
            self.logger.info("Placed buy order %s", order_id)
        else:
            self.logger.info("All orders can stay. No update needed")

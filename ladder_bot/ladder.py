from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .exceptions import InsufficientBalanceError, OrderPlacementError, RetryExhausted
from .models import MarketInfo, RungPlan, StrategyConfig
from .orders import OrderGateway
from .rounding import clean_amount, clean_price
from .state_store import LadderLedger


def _sum_product(prices: list[float], amounts: list[float]) -> float:
    return sum(price * amount for price, amount in zip(prices, amounts))


def plan_ladder(
    lowest_ask: float,
    config: StrategyConfig,
    market: MarketInfo,
    free_balance: Optional[float] = None,
) -> RungPlan:
    """Compute rung prices, cumulative amounts and average prices.

    Each DCA rung sells as much as all previous rungs together, so once it
    fills the position has doubled and the average is taken over
    ``2 * cumulative``. When ``free_balance`` is given, a rung that would need
    more base currency than is free raises :class:`InsufficientBalanceError`.
    """
    prices = [clean_price(lowest_ask * (1 + config.start_price_percent / 100), market.price_precision)]
    amounts = [clean_amount(config.start_amount / prices[0], market.amount_precision)]
    averages = [prices[0]]

    for step in config.dca:
        prices.append(clean_price(averages[-1] * (1 + step / 100), market.price_precision))

        cumulative = sum(amounts)
        amounts.append(cumulative)

        averages.append(_sum_product(prices, amounts) / (cumulative * 2))

        if free_balance is not None and cumulative * 2 > free_balance:
            raise InsufficientBalanceError(
                f"Insufficient trading balance with set parameters. Need {cumulative * 2} "
                f"{config.base_currency} available for trading, have {free_balance}"
            )

    return RungPlan(prices=tuple(prices), amounts=tuple(amounts), averages=tuple(averages))


class LadderBuilder:
    def __init__(
        self,
        gateway: OrderGateway,
        ledger: LadderLedger,
        config: StrategyConfig,
        market: MarketInfo,
        logger: logging.Logger,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.gateway = gateway
        self.ledger = ledger
        self.config = config
        self.market = market
        self.logger = logger
        self.clock = clock

    def build(self) -> RungPlan:
        try:
            lowest_ask = self.gateway.fetch_lowest_ask()
        except RetryExhausted as exc:
            raise OrderPlacementError(str(exc)) from exc

        free_balance = None
        if self.config.live:
            try:
                free_balance = self.gateway.fetch_free_balance(self.config.base_currency)
            except RetryExhausted as exc:
                raise OrderPlacementError(str(exc)) from exc

        plan = plan_ladder(lowest_ask, self.config, self.market, free_balance)

        self.logger.info("------------------------------BUILDING DCA------------------------------")
        for index, (price, amount, average) in enumerate(zip(plan.prices, plan.amounts, plan.averages)):
            if not self.config.live:
                self.logger.info("DEMO MODE - Nothing gets placed")
                self.logger.info(
                    "Sell order with price: %s and amount: %s | averagePrice: %s", price, amount, average
                )
                continue

            try:
                order_id = self.gateway.place_sell_order(price, amount)
            except RetryExhausted as exc:
                raise OrderPlacementError(str(exc)) from exc
            self.ledger.append_sell_order(order_id)
            self.logger.info(
                "Placed sell order %s with price: %s and amount: %s | averagePrice: %s",
                order_id,
                price,
                amount,
                average,
            )
            if index == 0:
                self.ledger.mark_first_sell(price, self.clock())
        self.logger.info("------------------------------------------------------------------------")
        return plan

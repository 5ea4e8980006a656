from __future__ import annotations

import logging

from .exchange import ExchangeClient
from .models import MarketInfo, OrderSnapshot
from .retry import DEFAULT_ATTEMPTS, has_id, with_retry

MARKET_KEYS = ("min_order_size", "amount_precision", "price_precision")


class OrderGateway:
    """Remote calls for one trading pair, each wrapped in a bounded retry."""

    def __init__(
        self,
        client: ExchangeClient,
        pair: str,
        logger: logging.Logger,
        attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self.client = client
        self.pair = pair
        self.logger = logger
        self.attempts = attempts

    def _retry(self, operation, description, is_valid=None):
        kwargs = {"attempts": self.attempts, "logger": self.logger}
        if is_valid is not None:
            kwargs["is_valid"] = is_valid
        return with_retry(operation, description, **kwargs)

    def fetch_market_info(self) -> MarketInfo:
        payload = self._retry(
            lambda: self.client.fetch_market(self.pair),
            f"Unable to fetch market info for pair: {self.pair}",
            is_valid=lambda result: isinstance(result, dict) and all(key in result for key in MARKET_KEYS),
        )
        return MarketInfo(
            min_order_size=float(payload["min_order_size"]),
            amount_precision=int(payload["amount_precision"]),
            price_precision=int(payload["price_precision"]),
        )

    def fetch_lowest_ask(self) -> float:
        ticker = self._retry(
            lambda: self.client.fetch_ticker(self.pair),
            f"Unable to get the ticker for pair: {self.pair}",
            is_valid=lambda result: bool(result and result.get("ask")),
        )
        return float(ticker["ask"])

    def fetch_free_balance(self, currency: str) -> float:
        balance = self._retry(self.client.fetch_balance, "Unable to get the balance")
        return float(balance.get(currency, {}).get("free", 0.0))

    def fetch_order(self, order_id: str) -> OrderSnapshot:
        payload = self._retry(
            lambda: self.client.fetch_order(order_id, self.pair),
            f"Unable to fetch order with id: {order_id}",
            is_valid=has_id,
        )
        return OrderSnapshot.from_payload(payload)

    def place_sell_order(self, price: float, amount: float) -> str:
        order = self._retry(
            lambda: self.client.place_limit_sell_order(self.pair, amount, price),
            f"Unable to place sell order with price: {price} and amount: {amount}",
            is_valid=has_id,
        )
        return str(order["id"])

    def place_buy_order(self, price: float, amount: float) -> str:
        order = self._retry(
            lambda: self.client.place_limit_buy_order(self.pair, amount, price),
            f"Unable to place buy order with price: {price} and amount: {amount}",
            is_valid=has_id,
        )
        return str(order["id"])

    def cancel_order(self, order_id: str) -> bool:
        """Cancel ``order_id`` if it is still open.

        Returns ``False`` when the order was already closed or canceled, which
        counts as done. Raises :class:`RetryExhausted` if the status cannot be
        read or the cancel keeps failing.
        """
        order = self.fetch_order(order_id)
        if not order.is_open:
            self.logger.info("Order %s already %s", order_id, order.status)
            return False
        self._retry(
            lambda: self.client.cancel_order(order_id, self.pair),
            f"Unable to cancel order with id: {order_id}",
            is_valid=has_id,
        )
        return True

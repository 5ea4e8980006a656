from __future__ import annotations

from typing import Any, Protocol


class ExchangeClient(Protocol):
    """Order-management surface the bot needs from an exchange.

    Payloads follow the ccxt shapes: orders carry ``id``, ``status`` (``open``,
    ``closed`` or ``canceled``), ``filled``, ``price`` and ``amount``.
    """

    def fetch_ticker(self, pair: str) -> dict[str, Any]: ...

    def fetch_order(self, order_id: str, pair: str) -> dict[str, Any]: ...

    def place_limit_sell_order(self, pair: str, amount: float, price: float) -> dict[str, Any]: ...

    def place_limit_buy_order(self, pair: str, amount: float, price: float) -> dict[str, Any]: ...

    def cancel_order(self, order_id: str, pair: str) -> dict[str, Any]: ...

    def fetch_balance(self) -> dict[str, dict[str, float]]: ...

    def fetch_market(self, pair: str) -> dict[str, Any]: ...

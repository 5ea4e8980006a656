import hashlib
import hmac
import time
import urllib.parse
from decimal import Decimal
from typing import Any

import requests

from .exceptions import ExchangeError
from .models import CANCELED, CLOSED, OPEN

DEFAULT_BASE_URL = "https://api.mexc.com"

_STATUS_MAP = {
    "NEW": OPEN,
    "PARTIALLY_FILLED": OPEN,
    "FILLED": CLOSED,
    "CANCELED": CANCELED,
    "PARTIALLY_CANCELED": CANCELED,
}


def to_symbol(pair: str) -> str:
    return pair.replace("/", "").replace("_", "").upper()


def precision_from_step(step: str) -> int:
    exponent = Decimal(step).normalize().as_tuple().exponent
    return max(0, -int(exponent))


class MexcClient:
    def __init__(self, api_key: str, api_secret: str, base_url: str = DEFAULT_BASE_URL) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")

    def fetch_ticker(self, pair: str) -> dict[str, Any]:
        payload = self._request("GET", "/api/v3/ticker/bookTicker", {"symbol": to_symbol(pair)})
        ask = payload.get("askPrice")
        bid = payload.get("bidPrice")
        return {
            "symbol": pair,
            "ask": float(ask) if ask else None,
            "bid": float(bid) if bid else None,
        }

    def fetch_market(self, pair: str) -> dict[str, Any]:
        payload = self._request("GET", "/api/v3/exchangeInfo", {"symbol": to_symbol(pair)})
        symbols = payload.get("symbols")
        if not symbols:
            raise ExchangeError(f"exchangeInfo has no data for {pair}")
        info = symbols[0]

        price_precision = info.get("quotePrecision")
        amount_precision = info.get("baseAssetPrecision")
        for item in info.get("filters", []):
            if item.get("filterType") == "PRICE_FILTER" and item.get("tickSize"):
                price_precision = precision_from_step(item["tickSize"])
            if item.get("filterType") == "LOT_SIZE" and item.get("stepSize"):
                amount_precision = precision_from_step(item["stepSize"])
        if price_precision is None or amount_precision is None:
            raise ExchangeError(f"Unable to determine precisions for {pair}")

        return {
            "min_order_size": float(info.get("quoteAmountPrecision") or 0),
            "amount_precision": int(amount_precision),
            "price_precision": int(price_precision),
        }

    def fetch_balance(self) -> dict[str, dict[str, float]]:
        account = self._signed_request("GET", "/api/v3/account")
        balances: dict[str, dict[str, float]] = {}
        for item in account.get("balances", []):
            free = float(item.get("free", 0))
            locked = float(item.get("locked", 0))
            balances[item.get("asset")] = {"free": free, "used": locked, "total": free + locked}
        return balances

    def fetch_order(self, order_id: str, pair: str) -> dict[str, Any]:
        payload = self._signed_request(
            "GET", "/api/v3/order", {"symbol": to_symbol(pair), "orderId": order_id}
        )
        return self._parse_order(payload)

    def cancel_order(self, order_id: str, pair: str) -> dict[str, Any]:
        payload = self._signed_request(
            "DELETE", "/api/v3/order", {"symbol": to_symbol(pair), "orderId": order_id}
        )
        return self._parse_order(payload)

    def place_limit_buy_order(self, pair: str, amount: float, price: float) -> dict[str, Any]:
        return self._place_limit_order(pair, "BUY", amount, price)

    def place_limit_sell_order(self, pair: str, amount: float, price: float) -> dict[str, Any]:
        return self._place_limit_order(pair, "SELL", amount, price)

    def _place_limit_order(self, pair: str, side: str, amount: float, price: float) -> dict[str, Any]:
        payload = self._signed_request(
            "POST",
            "/api/v3/order",
            {
                "symbol": to_symbol(pair),
                "side": side,
                "type": "LIMIT",
                "timeInForce": "GTC",
                "price": f"{price:.8f}",
                "quantity": f"{amount:.8f}",
            },
        )
        return self._parse_order(payload)

    def _parse_order(self, payload: dict) -> dict[str, Any]:
        order_id = payload.get("orderId")
        status = payload.get("status")
        return {
            "id": str(order_id) if order_id else None,
            "status": _STATUS_MAP.get(status, status.lower() if status else None),
            "filled": float(payload.get("executedQty") or 0),
            "price": float(payload.get("price") or 0),
            "amount": float(payload.get("origQty") or 0),
        }

    def _signed_request(self, method: str, path: str, params: dict | None = None) -> dict:
        if params is None:
            params = {}
        params["timestamp"] = int(time.time() * 1000)
        query_string = urllib.parse.urlencode(params)
        signature = hmac.new(
            self.api_secret.encode("utf-8"),
            query_string.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        params["signature"] = signature
        return self._request(method, path, params, headers={"X-MEXC-APIKEY": self.api_key})

    def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(
                method, url, params=params or {}, headers=headers or {}, timeout=10
            )
        except requests.RequestException as exc:
            raise ExchangeError(f"Request to MEXC failed: {exc}") from exc

        if not response.ok:
            message = response.text.strip()
            try:
                payload = response.json()
                message = payload.get("msg") or payload.get("message") or message
            except ValueError:
                pass
            raise ExchangeError(message or f"HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as exc:
            raise ExchangeError("Malformed response from MEXC") from exc

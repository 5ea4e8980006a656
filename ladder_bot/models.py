from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

OPEN = "open"
CLOSED = "closed"
CANCELED = "canceled"


@dataclass(frozen=True)
class StrategyConfig:
    pair: str
    start_amount: float
    start_price_percent: float
    dca: tuple[float, ...]
    profit: float
    seconds_to_keep_dca: int
    live: bool
    poll_seconds: float = 3.0
    state_file: str = "data/db.json"

    @property
    def base_currency(self) -> str:
        return self.pair.split("/")[0]

    @property
    def quote_currency(self) -> str:
        return self.pair.split("/")[1]


@dataclass
class LadderState:
    sell_orders: list[str] = field(default_factory=list)
    buy_order: Optional[str] = None
    buy_order_price: Optional[float] = None
    buy_filled_carry: float = 0.0
    first_sell_price: Optional[float] = None
    first_sell_time: Optional[float] = None
    unrecoverable: bool = False


@dataclass(frozen=True)
class RungPlan:
    prices: tuple[float, ...]
    amounts: tuple[float, ...]
    averages: tuple[float, ...]

    def __len__(self) -> int:
        return len(self.prices)


@dataclass(frozen=True)
class MarketInfo:
    min_order_size: float
    amount_precision: int
    price_precision: int


@dataclass(frozen=True)
class OrderSnapshot:
    id: str
    status: str
    filled: float
    price: float
    amount: float

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "OrderSnapshot":
        return cls(
            id=str(payload["id"]),
            status=str(payload.get("status", "")),
            filled=float(payload.get("filled") or 0.0),
            price=float(payload.get("price") or 0.0),
            amount=float(payload.get("amount") or 0.0),
        )

    @property
    def is_open(self) -> bool:
        return self.status == OPEN

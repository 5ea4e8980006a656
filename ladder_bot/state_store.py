from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol

from .exceptions import ConfigError
from .models import LadderState

SELL_ORDERS = "sellOrders"
BUY_ORDER = "buyOrder"
BUY_ORDER_PRICE = "buyOrderPrice"
BUY_FILLED_CARRY = "buyFilledCarry"
FIRST_SELL_PRICE = "firstSellPrice"
FIRST_SELL_TIME = "firstSellTime"
UNRECOVERABLE = "unrecoverable"

DEFAULTS: dict[str, Any] = {
    SELL_ORDERS: [],
    BUY_ORDER: None,
    BUY_ORDER_PRICE: None,
    BUY_FILLED_CARRY: 0.0,
    FIRST_SELL_PRICE: None,
    FIRST_SELL_TIME: None,
    UNRECOVERABLE: False,
}

_FIELD_KEYS = {
    "sell_orders": SELL_ORDERS,
    "buy_order": BUY_ORDER,
    "buy_order_price": BUY_ORDER_PRICE,
    "buy_filled_carry": BUY_FILLED_CARRY,
    "first_sell_price": FIRST_SELL_PRICE,
    "first_sell_time": FIRST_SELL_TIME,
    "unrecoverable": UNRECOVERABLE,
}


class StateStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def update(self, values: Mapping[str, Any]) -> None: ...


class JsonStateStore:
    """Key/value store kept in a single JSON file.

    Every write replaces the file atomically (tmp + fsync + rename), so a
    crash leaves either the previous or the new content on disk.
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self._data = dict(copy.deepcopy(DEFAULTS))
        if self.path.exists():
            try:
                payload = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            except ValueError as exc:
                raise ConfigError(f"State file {self.path} is not valid JSON: {exc}") from exc
            if not isinstance(payload, dict):
                raise ConfigError(f"Expected a JSON object in {self.path}")
            self._data.update(payload)
        self._flush()

    def get(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(self._data.get(key, default))

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: Mapping[str, Any]) -> None:
        self._data.update(copy.deepcopy(dict(values)))
        self._flush()

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        data = json.dumps(self._data, indent=2, sort_keys=True)
        with tmp_path.open("w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(str(tmp_path), str(self.path))


def load_state(store: StateStore) -> LadderState:
    return LadderState(
        sell_orders=[str(order_id) for order_id in store.get(SELL_ORDERS) or []],
        buy_order=store.get(BUY_ORDER),
        buy_order_price=store.get(BUY_ORDER_PRICE),
        buy_filled_carry=float(store.get(BUY_FILLED_CARRY) or 0.0),
        first_sell_price=store.get(FIRST_SELL_PRICE),
        first_sell_time=store.get(FIRST_SELL_TIME),
        unrecoverable=bool(store.get(UNRECOVERABLE, False)),
    )


class LadderLedger:
    """Owns the in-memory ladder state and mirrors every change to the store.

    A change is written to the store first and only then applied to
    :attr:`state`.
    """

    def __init__(self, store: StateStore, state: Optional[LadderState] = None) -> None:
        self.store = store
        self.state = state if state is not None else load_state(store)

    def commit(self, **changes: Any) -> None:
        unknown = set(changes) - set(_FIELD_KEYS)
        if unknown:
            raise KeyError(f"Unknown ladder fields: {sorted(unknown)}")
        self.store.update({_FIELD_KEYS[name]: value for name, value in changes.items()})
        for name, value in changes.items():
            setattr(self.state, name, copy.deepcopy(value))

    def append_sell_order(self, order_id: str) -> None:
        self.commit(sell_orders=[*self.state.sell_orders, order_id])

    def set_buy_order(self, order_id: str, price: float) -> None:
        self.commit(buy_order=order_id, buy_order_price=price)

    def clear_buy_order(self, carried: float = 0.0) -> None:
        """Drop the buy pair; ``carried`` is what earlier buy orders of this cycle already bought."""
        self.commit(buy_order=None, buy_order_price=None, buy_filled_carry=carried)

    def mark_first_sell(self, price: float, timestamp: float) -> None:
        self.commit(first_sell_time=timestamp, first_sell_price=price)

    def mark_unrecoverable(self) -> None:
        self.commit(unrecoverable=True)

"""Rounding of prices and amounts to the precision the exchange accepts.

Every helper rounds up. The ``*_floor`` variants are used on the buy side and
intentionally keep the same ceiling behaviour as the plain ones.
"""
from __future__ import annotations

from decimal import ROUND_CEILING, Decimal


def round_up(value: float, precision: int) -> float:
    quantum = Decimal(1).scaleb(-int(precision))
    # str() keeps the shortest repr, so 1.1 is rounded as 1.1 and not 1.100000000000000088
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_CEILING))


def clean_price(price: float, precision: int) -> float:
    return round_up(price, precision)


def clean_price_floor(price: float, precision: int) -> float:
    return round_up(price, precision)


def clean_amount(amount: float, precision: int) -> float:
    return round_up(amount, precision)


def clean_amount_floor(amount: float, precision: int) -> float:
    return round_up(amount, precision)


def subtract(left: float, right: float) -> float:
    return float(Decimal(str(left)) - Decimal(str(right)))


def add(left: float, right: float) -> float:
    return float(Decimal(str(left)) + Decimal(str(right)))

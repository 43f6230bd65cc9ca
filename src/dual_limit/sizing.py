# src/dual_limit/sizing.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

SHARE_QUANTUM = Decimal("0.000001")
TICK = Decimal("0.01")


def order_size(price: Decimal, *, shares: Optional[Decimal],
               fixed_trade_amount: Decimal) -> Decimal:
    """Shares per order: the explicit count, else budget / price at 6 decimals."""
    if shares is not None:
        return shares
    if price <= 0:
        raise ValueError(f"price must be positive, got {price}")
    return (fixed_trade_amount / price).quantize(SHARE_QUANTUM, rounding=ROUND_HALF_UP)


def to_tick(value: Decimal) -> Decimal:
    """Round to the exchange's 0.01 price/size tick."""
    return value.quantize(TICK, rounding=ROUND_HALF_UP)


class Sizing:
    def __init__(self, config: Any) -> None:
        self.config = config

    @property
    def limit_price(self) -> Decimal:
        return self.config.dual_limit_price

    def shares_for(self, price: Decimal) -> Decimal:
        return order_size(
            price,
            shares=self.config.dual_limit_shares,
            fixed_trade_amount=self.config.fixed_trade_amount,
        )

    def describe(self) -> str:
        if self.config.dual_limit_shares is not None:
            return f"Shares per order (config): {self.config.dual_limit_shares:.6f}"
        return "Shares per order: fixed_trade_amount / price"

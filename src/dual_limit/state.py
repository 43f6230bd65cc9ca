# src/dual_limit/state.py
from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from src.dual_limit.clock import current_period

DUMMY_PREFIX = "dummy_"
DUMMY_SUFFIX = "_fallback"


class Asset(str, Enum):
    BTC = "BTC"
    ETH = "ETH"
    SOL = "SOL"
    XRP = "XRP"

    @property
    def label(self) -> str:
        return "Solana" if self is Asset.SOL else self.value


class TokenSide(str, Enum):
    UP = "Up"
    DOWN = "Down"

    @classmethod
    def from_outcome(cls, outcome: str) -> Optional["TokenSide"]:
        label = outcome.strip().lower()
        if label in ("up", "yes"):
            return cls.UP
        if label in ("down", "no"):
            return cls.DOWN
        return None


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True, slots=True)
class TokenType:
    """One of the eight (asset, side) outcome tokens."""
    asset: Asset
    side: TokenSide

    @property
    def display_name(self) -> str:
        return f"{self.asset.label} {self.side.value}"

    @classmethod
    def all(cls) -> list["TokenType"]:
        return [cls(a, s) for a in Asset for s in TokenSide]


@dataclass(frozen=True, slots=True)
class TokenInfo:
    token_id: str
    outcome: str = ""


@dataclass(frozen=True)
class Market:
    condition_id: str
    slug: str
    active: bool
    closed: bool
    question: str = ""
    up_token: Optional[TokenInfo] = None
    down_token: Optional[TokenInfo] = None
    # Winner published by the exchange once the market has closed.
    resolved_side: Optional[TokenSide] = None

    @property
    def is_tradable(self) -> bool:
        return self.active and not self.closed

    @property
    def is_dummy(self) -> bool:
        return is_dummy_condition_id(self.condition_id)

    @property
    def period_timestamp(self) -> int:
        """Period floor of the trailing slug timestamp; 0 when absent."""
        tail = self.slug.rsplit("-", 1)[-1]
        try:
            return current_period(int(tail))
        except ValueError:
            return 0

    def token(self, side: TokenSide) -> Optional[TokenInfo]:
        return self.up_token if side is TokenSide.UP else self.down_token

    def token_ids(self) -> list[str]:
        return [t.token_id for t in (self.up_token, self.down_token) if t is not None]


def is_dummy_condition_id(condition_id: str) -> bool:
    return condition_id.startswith(DUMMY_PREFIX) and condition_id.endswith(DUMMY_SUFFIX)


@dataclass(frozen=True, slots=True)
class TokenPrice:
    bid: Optional[Decimal] = None
    ask: Optional[Decimal] = None

    @property
    def mid(self) -> Optional[Decimal]:
        if self.bid is None or self.ask is None:
            return None
        return (self.bid + self.ask) / 2


@dataclass(frozen=True)
class MarketView:
    market: Market
    up_price: Optional[TokenPrice] = None
    down_price: Optional[TokenPrice] = None


@dataclass(frozen=True)
class PeriodSnapshot:
    period_timestamp: int
    time_remaining_seconds: int
    views: dict[Asset, MarketView]

    def prices(self) -> dict[str, TokenPrice]:
        out: dict[str, TokenPrice] = {}
        for view in self.views.values():
            m = view.market
            if m.up_token is not None and view.up_price is not None:
                out[m.up_token.token_id] = view.up_price
            if m.down_token is not None and view.down_price is not None:
                out[m.down_token.token_id] = view.down_price
        return out


@dataclass(frozen=True, slots=True)
class BuyOpportunity:
    condition_id: str
    token_id: str
    token_type: TokenType
    bid_price: Decimal
    period_timestamp: int
    time_remaining_seconds: int
    time_elapsed_seconds: int
    use_market_order: bool = False


@dataclass(slots=True)
class Order:
    token_id: str
    token_type: TokenType
    condition_id: str
    side: OrderSide
    target_price: Decimal
    size: Decimal
    period_timestamp: int
    created_at: float = field(default_factory=time.time)
    filled: bool = False
    order_id: Optional[str] = None

    @property
    def key(self) -> tuple[str, OrderSide]:
        return (self.token_id, self.side)


@dataclass(slots=True)
class Position:
    token_id: str
    token_type: TokenType
    condition_id: str
    purchase_price: Decimal
    units: Decimal
    investment_amount: Decimal
    period_timestamp: int
    purchased_at: float = field(default_factory=time.time)
    sold: bool = False
    sell_price: Optional[Decimal] = None
    sell_price_actual: Optional[Decimal] = None
    sell_timestamp: Optional[float] = None

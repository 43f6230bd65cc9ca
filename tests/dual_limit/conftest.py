from decimal import Decimal

import pytest

from config.settings import TradingSettings
from src.dual_limit.state import (
    Asset,
    Market,
    MarketView,
    PeriodSnapshot,
    TokenInfo,
    TokenPrice,
)

# 900-aligned period containing 1_700_000_000.
PERIOD = 1_699_999_200

PREFIXES = {Asset.BTC: "btc", Asset.ETH: "eth", Asset.SOL: "sol", Asset.XRP: "xrp"}


def build_market(asset: Asset, period: int = PERIOD, cid: str = "", **kwargs) -> Market:
    prefix = PREFIXES[asset]
    defaults = dict(
        condition_id=cid or f"0x{prefix}{period}",
        slug=f"{prefix}-updown-15m-{period}",
        active=True,
        closed=False,
        up_token=TokenInfo(f"{prefix}_up_{period}", "Up"),
        down_token=TokenInfo(f"{prefix}_down_{period}", "Down"),
    )
    defaults.update(kwargs)
    return Market(**defaults)


@pytest.fixture
def config():
    return TradingSettings(
        enable_eth_trading=True,
        enable_solana_trading=True,
        enable_xrp_trading=True,
    )


@pytest.fixture
def make_market():
    return build_market


@pytest.fixture
def markets():
    return {asset: build_market(asset) for asset in Asset}


@pytest.fixture
def make_snapshot():
    def _make(markets, period=PERIOD, remaining=900, prices=None):
        prices = prices or {}
        views = {}
        for asset, m in markets.items():
            up = prices.get(m.up_token.token_id) if m.up_token else None
            down = prices.get(m.down_token.token_id) if m.down_token else None
            views[asset] = MarketView(market=m, up_price=up, down_price=down)
        return PeriodSnapshot(period_timestamp=period, time_remaining_seconds=remaining,
                              views=views)
    return _make


def quote(bid=None, ask=None) -> TokenPrice:
    return TokenPrice(
        bid=Decimal(bid) if bid is not None else None,
        ask=Decimal(ask) if ask is not None else None,
    )


@pytest.fixture
def make_quote():
    return quote

import pytest
from unittest.mock import AsyncMock

from config.settings import TradingSettings
from src.dual_limit.discovery import (
    MarketDiscovery,
    check_unique_condition_ids,
    disabled_market,
)
from src.dual_limit.state import Asset
from src.exceptions import (
    DuplicateConditionIdError,
    FeedError,
    MarketNotFoundError,
)

NOW = 1_700_000_000
PERIOD = 1_699_999_200


def client_for(available):
    """Fake client serving markets by slug from ``available``."""
    client = AsyncMock()

    async def by_slug(slug):
        if slug in available:
            return available[slug]
        raise MarketNotFoundError(slug)

    client.get_market_by_slug.side_effect = by_slug
    return client


def by_slug(*markets):
    return {m.slug: m for m in markets}


@pytest.mark.asyncio
async def test_discover_current_period(make_market):
    btc = make_market(Asset.BTC)
    disc = MarketDiscovery(client_for(by_slug(btc)), TradingSettings())

    market = await disc.discover_market(Asset.BTC, ["btc"], NOW, set(), allow_previous=False)

    assert market is btc


@pytest.mark.asyncio
async def test_previous_period_fallback(make_market):
    old = make_market(Asset.BTC, period=PERIOD - 1800)
    client = client_for(by_slug(old))
    disc = MarketDiscovery(client, TradingSettings())

    market = await disc.discover_market(Asset.BTC, ["btc"], NOW, set(), allow_previous=True)

    assert market is old
    slugs = [c.args[0] for c in client.get_market_by_slug.call_args_list]
    assert slugs == [
        f"btc-updown-15m-{PERIOD}",
        f"btc-updown-15m-{PERIOD - 900}",
        f"btc-updown-15m-{PERIOD - 1800}",
    ]


@pytest.mark.asyncio
async def test_no_previous_fallback_when_disallowed(make_market):
    old = make_market(Asset.BTC, period=PERIOD - 900)
    disc = MarketDiscovery(client_for(by_slug(old)), TradingSettings())

    with pytest.raises(MarketNotFoundError):
        await disc.discover_market(Asset.BTC, ["btc"], NOW, set(), allow_previous=False)


@pytest.mark.asyncio
async def test_rejects_seen_closed_and_inactive(make_market):
    seen = make_market(Asset.BTC, period=PERIOD)
    closed = make_market(Asset.BTC, period=PERIOD - 900, closed=True)
    inactive = make_market(Asset.BTC, period=PERIOD - 1800, active=False)
    good = make_market(Asset.BTC, period=PERIOD - 2700)
    disc = MarketDiscovery(client_for(by_slug(seen, closed, inactive, good)), TradingSettings())

    market = await disc.discover_market(
        Asset.BTC, ["btc"], NOW, {seen.condition_id}, allow_previous=True)

    assert market is good


@pytest.mark.asyncio
async def test_solana_prefix_fallback(make_market):
    sol = make_market(Asset.SOL)  # slug uses "sol"
    client = client_for(by_slug(sol))
    disc = MarketDiscovery(client, TradingSettings())

    market = await disc.discover_market(
        Asset.SOL, ["solana", "sol"], NOW, set(), allow_previous=False)

    assert market is sol
    slugs = [c.args[0] for c in client.get_market_by_slug.call_args_list]
    assert slugs == [f"solana-updown-15m-{PERIOD}", f"sol-updown-15m-{PERIOD}"]


@pytest.mark.asyncio
async def test_feed_errors_treated_as_missing(make_market):
    client = AsyncMock()
    client.get_market_by_slug.side_effect = FeedError("boom")
    disc = MarketDiscovery(client, TradingSettings())

    with pytest.raises(MarketNotFoundError):
        await disc.discover_market(Asset.BTC, ["btc"], NOW, set(), allow_previous=True)
    assert client.get_market_by_slug.await_count == 4


@pytest.mark.asyncio
async def test_startup_disabled_assets_get_dummies(make_market):
    btc = make_market(Asset.BTC)
    disc = MarketDiscovery(client_for(by_slug(btc)), TradingSettings())

    markets = await disc.discover_all(NOW)

    assert markets[Asset.BTC] is btc
    for asset in (Asset.ETH, Asset.SOL, Asset.XRP):
        assert markets[asset].is_dummy
        assert not markets[asset].is_tradable
    assert markets[Asset.SOL].condition_id == "dummy_solana_fallback"


@pytest.mark.asyncio
async def test_startup_btc_missing_is_fatal():
    disc = MarketDiscovery(client_for({}), TradingSettings())
    with pytest.raises(MarketNotFoundError):
        await disc.discover_all(NOW)


@pytest.mark.asyncio
async def test_startup_btc_missing_with_fallback_allowed():
    disc = MarketDiscovery(client_for({}), TradingSettings(allow_btc_fallback=True))
    markets = await disc.discover_all(NOW)
    assert markets[Asset.BTC].condition_id == "dummy_btc_fallback"


@pytest.mark.asyncio
async def test_startup_sol_does_not_use_previous_period(make_market):
    btc = make_market(Asset.BTC)
    old_sol = make_market(Asset.SOL, period=PERIOD - 900)
    disc = MarketDiscovery(client_for(by_slug(btc, old_sol)),
                           TradingSettings(enable_solana_trading=True))

    markets = await disc.discover_all(NOW)

    assert markets[Asset.SOL].is_dummy


@pytest.mark.asyncio
async def test_startup_duplicate_condition_id_is_fatal(make_market):
    btc = make_market(Asset.BTC, cid="0xsame")
    eth = make_market(Asset.ETH, cid="0xsame")
    disc = MarketDiscovery(AsyncMock(), TradingSettings(enable_eth_trading=True))
    # Bypass the seen-id filter so both assets resolve to one market.
    disc._try_slug = AsyncMock(side_effect=[eth, btc])

    with pytest.raises(DuplicateConditionIdError):
        await disc.discover_all(NOW)


@pytest.mark.asyncio
async def test_rollover_keeps_previous_on_failure(make_market):
    prev = {a: make_market(a, period=PERIOD - 900) for a in Asset}
    new_btc = make_market(Asset.BTC)
    disc = MarketDiscovery(client_for(by_slug(new_btc, *prev.values())),
                           TradingSettings(enable_eth_trading=True))
    seen = {m.condition_id for m in prev.values()}

    markets = await disc.discover_all(NOW, seen_ids=seen, previous=prev)

    assert markets[Asset.BTC] is new_btc
    assert markets[Asset.ETH] is prev[Asset.ETH]
    assert markets[Asset.SOL].is_dummy


def test_unique_ignores_dummies(make_market):
    markets = {a: disabled_market(a) for a in Asset}
    markets[Asset.BTC] = make_market(Asset.BTC)
    check_unique_condition_ids(markets)


def test_unique_detects_any_pair(make_market):
    markets = {a: make_market(a) for a in Asset}
    markets[Asset.XRP] = make_market(Asset.XRP, cid=markets[Asset.SOL].condition_id)
    with pytest.raises(DuplicateConditionIdError):
        check_unique_condition_ids(markets)

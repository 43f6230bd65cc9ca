# src/dual_limit/discovery.py
from __future__ import annotations

from itertools import combinations
from typing import Any, Iterable, Optional

import structlog

from src.dual_limit.clock import PERIOD_DURATION, current_period
from src.dual_limit.state import Asset, Market
from src.exceptions import (
    DuplicateConditionIdError,
    MarketNotFoundError,
    PolyError,
)
from src.utils.crypto_markets import (
    ASSET_SLUG_PREFIXES,
    build_slug,
    dummy_condition_id,
    dummy_slug,
)

logger = structlog.get_logger()

# How many earlier periods to try when the current one is not listed yet.
PREVIOUS_PERIODS = 3

# Startup: only BTC/ETH fall back to earlier periods.
STARTUP_ALLOW_PREVIOUS: dict[Asset, bool] = {
    Asset.BTC: True,
    Asset.ETH: True,
    Asset.SOL: False,
    Asset.XRP: False,
}

DISCOVERY_ORDER = (Asset.ETH, Asset.BTC, Asset.SOL, Asset.XRP)


def disabled_market(asset: Asset) -> Market:
    """Placeholder for a disabled (or undiscoverable) asset. Never traded."""
    return Market(
        condition_id=dummy_condition_id(asset),
        slug=dummy_slug(asset),
        question=f"{asset.label} Trading Disabled",
        active=False,
        closed=True,
    )


def enabled_assets(config: Any) -> set[Asset]:
    enabled = {Asset.BTC}
    if config.enable_eth_trading:
        enabled.add(Asset.ETH)
    if config.enable_solana_trading:
        enabled.add(Asset.SOL)
    if config.enable_xrp_trading:
        enabled.add(Asset.XRP)
    return enabled


def check_unique_condition_ids(markets: dict[Asset, Market]) -> None:
    """Raise DuplicateConditionIdError if two non-dummy markets share an id."""
    real = [(a, m) for a, m in markets.items() if not m.is_dummy]
    for (a1, m1), (a2, m2) in combinations(real, 2):
        if m1.condition_id == m2.condition_id:
            raise DuplicateConditionIdError(
                f"{a1.label} and {a2.label} markets have the same condition ID: "
                f"{m1.condition_id}")


class MarketDiscovery:

    def __init__(self, client: Any, config: Any) -> None:
        self.client = client
        self.config = config

    async def _try_slug(self, slug: str, seen_ids: set[str]) -> Optional[Market]:
        try:
            market = await self.client.get_market_by_slug(slug)
        except PolyError as e:
            logger.debug("slug_lookup_failed", slug=slug, error=str(e))
            return None
        if market.condition_id in seen_ids or not market.is_tradable:
            return None
        return market

    async def discover_market(
        self,
        asset: Asset,
        slug_prefixes: Iterable[str],
        now: int,
        seen_ids: set[str],
        allow_previous: bool,
    ) -> Market:
        """Find the tradable market for ``asset`` not already in ``seen_ids``.

        Tries the current period for each prefix, then (with
        ``allow_previous``) up to three earlier periods before moving on to
        the next prefix. Raises MarketNotFoundError when exhausted.
        """
        period = current_period(now)
        prefixes = list(slug_prefixes)
        for i, prefix in enumerate(prefixes):
            if i > 0:
                logger.info("discovery_trying_prefix", asset=asset.value, prefix=prefix)
            offsets = range(PREVIOUS_PERIODS + 1) if allow_previous else range(1)
            for offset in offsets:
                slug = build_slug(prefix, period - offset * PERIOD_DURATION)
                market = await self._try_slug(slug, seen_ids)
                if market is not None:
                    logger.info("market_found", asset=asset.value, slug=market.slug,
                                cid=market.condition_id)
                    return market
        raise MarketNotFoundError(
            f"Could not find active {asset.label} 15-minute up/down market "
            f"(tried prefixes: {', '.join(prefixes)})")

    async def discover_all(
        self,
        now: int,
        *,
        seen_ids: Optional[set[str]] = None,
        previous: Optional[dict[Asset, Market]] = None,
    ) -> dict[Asset, Market]:
        """Discover all four markets.

        Without ``previous`` this is startup discovery: BTC failure raises
        unless ``allow_btc_fallback``; other assets fall back to their dummy.
        With ``previous`` (period rollover) every asset may use earlier
        periods and a failed asset keeps its previous market.
        """
        seen = set(seen_ids or ())
        enabled = enabled_assets(self.config)
        startup = previous is None
        markets: dict[Asset, Market] = {}

        for asset in DISCOVERY_ORDER:
            if asset not in enabled:
                markets[asset] = disabled_market(asset)
                continue
            allow_previous = STARTUP_ALLOW_PREVIOUS[asset] if startup else True
            try:
                market = await self.discover_market(
                    asset, ASSET_SLUG_PREFIXES[asset], now, seen, allow_previous)
            except MarketNotFoundError as e:
                if not startup:
                    logger.warning("discovery_missing_keeping_previous",
                                   asset=asset.value, error=str(e))
                    market = previous[asset]
                elif asset is Asset.BTC and not self.config.allow_btc_fallback:
                    raise
                else:
                    logger.warning("discovery_missing_using_fallback",
                                   asset=asset.value, error=str(e))
                    market = disabled_market(asset)
            markets[asset] = market
            seen.add(market.condition_id)

        check_unique_condition_ids(markets)
        return markets

# src/dual_limit/monitor.py
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog

from src.dual_limit import clock
from src.dual_limit.state import Asset, Market, MarketView, PeriodSnapshot, TokenPrice
from src.exceptions import FeedError

logger = structlog.get_logger()

SnapshotCallback = Callable[[PeriodSnapshot], Awaitable[Any]]


class MarketMonitor:
    """Polls top-of-book for the current market set and emits snapshots.

    Every poll works on one generation of the market set; a poll that
    straddles ``update_markets`` is dropped instead of delivered.
    """

    def __init__(
        self, *, client: Any, markets: dict[Asset, Market],
        check_interval_ms: int = 1000,
        now: Callable[[], int] = clock.now,
    ) -> None:
        self.client = client
        self.check_interval = check_interval_ms / 1000
        self._now = now
        self._markets: dict[Asset, Market] = dict(markets)
        self._prices: dict[str, TokenPrice] = {}
        self._generation = 0
        self._lock = asyncio.Lock()
        self._callback: Optional[SnapshotCallback] = None

    def on_snapshot(self, callback: SnapshotCallback) -> None:
        self._callback = callback

    async def markets(self) -> dict[Asset, Market]:
        async with self._lock:
            return dict(self._markets)

    async def get_current_market_timestamp(self) -> int:
        """Period of the BTC market; 0 when BTC is a placeholder."""
        async with self._lock:
            return self._markets[Asset.BTC].period_timestamp

    async def get_current_condition_ids(self) -> dict[Asset, str]:
        async with self._lock:
            return {asset: m.condition_id for asset, m in self._markets.items()}

    async def update_markets(self, eth: Market, btc: Market, sol: Market, xrp: Market) -> None:
        async with self._lock:
            self._markets = {Asset.ETH: eth, Asset.BTC: btc, Asset.SOL: sol, Asset.XRP: xrp}
            self._prices = {}
            self._generation += 1
        logger.info("markets_updated", btc=btc.condition_id, eth=eth.condition_id,
                    sol=sol.condition_id, xrp=xrp.condition_id)

    async def _quote(self, token_id: str) -> Optional[TokenPrice]:
        try:
            return await self.client.get_top_of_book(token_id)
        except FeedError as e:
            logger.debug("quote_unavailable", token_id=token_id, error=str(e))
            return None

    async def poll_once(self) -> Optional[PeriodSnapshot]:
        async with self._lock:
            markets = dict(self._markets)
            generation = self._generation

        token_ids = [tid for m in markets.values() if not m.is_dummy for tid in m.token_ids()]
        quotes = await asyncio.gather(*(self._quote(tid) for tid in token_ids))

        async with self._lock:
            if generation != self._generation:
                logger.debug("poll_discarded", generation=generation)
                return None
            self._prices = {tid: q for tid, q in zip(token_ids, quotes) if q is not None}
            return self._build_snapshot(markets, self._prices)

    def _build_snapshot(
        self, markets: dict[Asset, Market], prices: dict[str, TokenPrice],
    ) -> PeriodSnapshot:
        now = self._now()
        period = markets[Asset.BTC].period_timestamp or clock.current_period(now)
        views = {}
        for asset, market in markets.items():
            up = prices.get(market.up_token.token_id) if market.up_token else None
            down = prices.get(market.down_token.token_id) if market.down_token else None
            views[asset] = MarketView(market=market, up_price=up, down_price=down)
        return PeriodSnapshot(
            period_timestamp=period,
            time_remaining_seconds=clock.remaining_in(period, now),
            views=views,
        )

    async def run(self) -> None:
        logger.info("monitor_started", interval=self.check_interval)
        while True:
            try:
                snapshot = await self.poll_once()
                if snapshot is not None and self._callback is not None:
                    await self._callback(snapshot)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("monitor_poll_failed", error=str(e))
            await asyncio.sleep(self.check_interval)

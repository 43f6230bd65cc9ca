# src/dual_limit/scheduler.py
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog

from src.dual_limit import clock
from src.dual_limit.discovery import DISCOVERY_ORDER, MarketDiscovery
from src.dual_limit.history import HistoryLog
from src.dual_limit.monitor import MarketMonitor
from src.dual_limit.state import Asset, is_dummy_condition_id
from src.exceptions import DuplicateConditionIdError

logger = structlog.get_logger()

MAX_SLEEP_SECONDS = 1800
RECHECK_SECONDS = 5


class PeriodScheduler:
    """Rediscovers markets at every 15-minute boundary and hands them to the monitor."""

    def __init__(
        self, *, monitor: MarketMonitor, discovery: MarketDiscovery, trader: Any,
        history: Optional[HistoryLog] = None, simulation: bool = True,
        now: Callable[[], int] = clock.now,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.monitor = monitor
        self.discovery = discovery
        self.trader = trader
        self.history = history
        self.simulation = simulation
        self._now = now
        self._sleep = sleep
        self._last_attempted_period: Optional[int] = None

    async def wait_for_boundary(self) -> bool:
        """Sleep until the next boundary. False means re-check without rolling over."""
        t = self._now()
        period = clock.current_period(t)
        time_to_next = period + clock.PERIOD_DURATION - t

        monitor_period = await self.monitor.get_current_market_timestamp()
        if monitor_period and monitor_period != period:
            if self._last_attempted_period == period:
                # Already tried this period; retry at a bounded rate.
                await self._sleep(RECHECK_SECONDS)
            logger.info("period_mismatch", monitor_period=monitor_period, period=period)
            return True

        if 0 < time_to_next < MAX_SLEEP_SECONDS:
            logger.debug("sleeping_until_boundary", seconds=time_to_next)
            await self._sleep(time_to_next)
            return True
        if time_to_next == 0:
            return True
        logger.warning("clock_anomaly", time_to_next=time_to_next)
        await self._sleep(RECHECK_SECONDS)
        return False

    async def rollover(self) -> bool:
        """Discover the new period's markets and swap them in. True on success."""
        t = self._now()
        period = clock.current_period(t)
        self._last_attempted_period = period

        previous = await self.monitor.markets()
        seen_ids = {m.condition_id for m in previous.values() if not m.is_dummy}
        try:
            markets = await self.discovery.discover_all(t, seen_ids=seen_ids, previous=previous)
        except DuplicateConditionIdError as e:
            logger.error("rollover_duplicate_condition_id", period=period, error=str(e))
            return False

        await self.monitor.update_markets(
            markets[Asset.ETH], markets[Asset.BTC], markets[Asset.SOL], markets[Asset.XRP])
        await self.trader.reset_period(period)

        if self.simulation and self.history is not None:
            ids = {asset.label: markets[asset].condition_id for asset in DISCOVERY_ORDER}
            await self.history.log_market_start(period, ids)
        logger.info("period_rollover", period=period,
                    markets={a.value: m.slug for a, m in markets.items()
                             if not is_dummy_condition_id(m.condition_id)})
        return True

    async def run(self) -> None:
        while True:
            try:
                if await self.wait_for_boundary():
                    await self.rollover()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("scheduler_iteration_failed", error=str(e))
                await self._sleep(RECHECK_SECONDS)

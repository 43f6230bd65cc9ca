# src/dual_limit/engine.py
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog

from src.dual_limit import clock
from src.dual_limit.discovery import DISCOVERY_ORDER, MarketDiscovery
from src.dual_limit.history import HistoryLog
from src.dual_limit.monitor import MarketMonitor
from src.dual_limit.scheduler import PeriodScheduler
from src.dual_limit.settlement import SettlementManager
from src.dual_limit.state import Asset, Market
from src.dual_limit.status import emit_summary
from src.dual_limit.tracker import PositionTracker
from src.dual_limit.trader import DualLimitTrader
from src.exceptions import AuthenticationError

logger = structlog.get_logger()


class DualLimitEngine:
    """Orchestrator: startup discovery, then the concurrent loops. No trading logic."""

    def __init__(
        self, *,
        client: Any,
        config: Any,
        executor: Any = None,
        history: Optional[HistoryLog] = None,
        simulation: bool = True,
        now: Callable[[], int] = clock.now,
    ) -> None:
        self.client = client
        self.config = config
        self.executor = executor
        self.history = history
        self.simulation = simulation
        self._now = now
        self.discovery = MarketDiscovery(client, config)
        self.tracker = PositionTracker(history=history)
        self.trader = DualLimitTrader(
            tracker=self.tracker, config=config, executor=executor,
            history=history, simulation=simulation)
        self.settlement = SettlementManager(
            client=client, tracker=self.tracker, history=history)
        self.monitor: Optional[MarketMonitor] = None
        self.scheduler: Optional[PeriodScheduler] = None

    async def startup(self) -> dict[Asset, Market]:
        """Authenticate (live), discover, and wire monitor and scheduler.

        Raises MarketNotFoundError when BTC is unavailable and
        DuplicateConditionIdError when two markets share an id.
        """
        logger.info("engine_startup", simulation=self.simulation)
        if not self.simulation:
            try:
                await self.executor.authenticate()
            except AuthenticationError as e:
                logger.warning("authentication_failed", error=str(e))

        t = self._now()
        markets = await self.discovery.discover_all(t)
        for asset in DISCOVERY_ORDER:
            market = markets[asset]
            if market.is_dummy:
                logger.info("asset_disabled", asset=asset.value)
                continue
            logger.info("market_tokens", asset=asset.value, slug=market.slug,
                        cid=market.condition_id,
                        up=market.up_token.token_id if market.up_token else None,
                        down=market.down_token.token_id if market.down_token else None)

        self.monitor = MarketMonitor(
            client=self.client, markets=markets,
            check_interval_ms=self.config.check_interval_ms, now=self._now)
        self.monitor.on_snapshot(self.trader.handle_snapshot)
        self.scheduler = PeriodScheduler(
            monitor=self.monitor, discovery=self.discovery, trader=self.trader,
            history=self.history, simulation=self.simulation, now=self._now)

        if self.simulation and self.history is not None:
            await self.history.log_market_start(
                clock.current_period(t),
                {asset.label: markets[asset].condition_id for asset in DISCOVERY_ORDER})
        logger.info("engine_ready")
        return markets

    async def run(self) -> None:
        if self.monitor is None:
            await self.startup()
        tasks = [
            self.monitor.run(),
            self.scheduler.run(),
            self._every(self.config.fill_check_interval_ms / 1000,
                        self.trader.check_pending_orders, "fill_check"),
            self._every(self.config.market_closure_check_interval_seconds,
                        self.settlement.check_market_closure, "closure_check"),
        ]
        if self.simulation:
            tasks.append(self._every(
                self.config.summary_interval_seconds, self._summary, "summary",
                initial_delay=True))
        await asyncio.gather(*tasks)

    async def _summary(self) -> None:
        await emit_summary(self.tracker, self.trader.latest_prices, self.history)

    async def _every(
        self, interval: float, body: Callable[[], Awaitable[Any]], name: str,
        *, initial_delay: bool = False,
    ) -> None:
        if initial_delay:
            await asyncio.sleep(interval)
        while True:
            try:
                await body()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"{name}_error", error=str(e))
            await asyncio.sleep(interval)

    async def close(self) -> None:
        await self.client.close()
        if self.history is not None:
            self.history.close()

# src/dual_limit/trader.py
from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

import structlog

from src.dual_limit.clock import PERIOD_DURATION
from src.dual_limit.discovery import enabled_assets
from src.dual_limit.history import HistoryLog
from src.dual_limit.sizing import Sizing, to_tick
from src.dual_limit.state import (
    Asset,
    BuyOpportunity,
    Order,
    OrderSide,
    PeriodSnapshot,
    TokenPrice,
    TokenSide,
    TokenType,
)
from src.dual_limit.tracker import PositionTracker
from src.exceptions import OrderPlacementError

logger = structlog.get_logger()

# Orders go out only within this many seconds of the period open.
OPEN_WINDOW_SECONDS = 2

ASSET_ORDER = (Asset.BTC, Asset.ETH, Asset.SOL, Asset.XRP)


class DualLimitTrader:
    """Places the Up/Down limit-buy pair for every enabled asset once per period."""

    def __init__(
        self, *, tracker: PositionTracker, config: Any,
        executor: Any = None, history: Optional[HistoryLog] = None,
        simulation: bool = True,
    ) -> None:
        if not simulation and executor is None:
            raise ValueError("live trading requires an executor")
        self.tracker = tracker
        self.config = config
        self.executor = executor
        self.history = history
        self.simulation = simulation
        self.sizing = Sizing(config)
        self.last_placed_period: Optional[int] = None
        self.last_seen_period: Optional[int] = None
        self._period_lock = asyncio.Lock()
        # Latest quotes pushed by the monitor; read by fill and summary tasks.
        self.latest_prices: dict[str, TokenPrice] = {}
        self._last_reconcile: float = 0.0

    async def handle_snapshot(self, snapshot: PeriodSnapshot) -> list[Order]:
        """Snapshot callback. Returns the orders placed (usually none)."""
        self.latest_prices = snapshot.prices()

        remaining = snapshot.time_remaining_seconds
        if remaining == 0:
            return []

        period = snapshot.period_timestamp
        async with self._period_lock:
            if self.last_seen_period is None:
                self.last_seen_period = period
                logger.info("startup_period_skipped", period=period, remaining=remaining)
                return []
            # The period in progress at startup is never traded.
            if period == self.last_seen_period:
                return []

        elapsed = PERIOD_DURATION - remaining
        if elapsed > OPEN_WINDOW_SECONDS:
            return []

        async with self._period_lock:
            if self.last_placed_period == period:
                return []
            self.last_placed_period = period

        opportunities = self.build_opportunities(snapshot)
        logger.info("period_open", period=period, elapsed=elapsed,
                    opportunities=len(opportunities))

        placed: list[Order] = []
        for opp in opportunities:
            if await self.tracker.has_active_position(opp.period_timestamp, opp.token_type):
                logger.debug("opportunity_skipped_active", token=opp.token_type.display_name)
                continue
            order = await self.execute_limit_buy(opp)
            if order is not None:
                placed.append(order)
        return placed

    def build_opportunities(self, snapshot: PeriodSnapshot) -> list[BuyOpportunity]:
        enabled = enabled_assets(self.config)
        price = self.sizing.limit_price
        remaining = snapshot.time_remaining_seconds
        out: list[BuyOpportunity] = []
        for asset in ASSET_ORDER:
            if asset not in enabled:
                continue
            view = snapshot.views.get(asset)
            if view is None or view.market.is_dummy:
                continue
            market = view.market
            for side in (TokenSide.UP, TokenSide.DOWN):
                token = market.token(side)
                if token is None or not token.token_id:
                    continue
                out.append(BuyOpportunity(
                    condition_id=market.condition_id,
                    token_id=token.token_id,
                    token_type=TokenType(asset, side),
                    bid_price=price,
                    period_timestamp=snapshot.period_timestamp,
                    time_remaining_seconds=remaining,
                    time_elapsed_seconds=PERIOD_DURATION - remaining,
                ))
        return out

    async def execute_limit_buy(self, opp: BuyOpportunity) -> Optional[Order]:
        size = self.sizing.shares_for(opp.bid_price)
        order = Order(
            token_id=opp.token_id,
            token_type=opp.token_type,
            condition_id=opp.condition_id,
            side=OrderSide.BUY,
            target_price=opp.bid_price,
            size=size,
            period_timestamp=opp.period_timestamp,
        )

        if not self.simulation:
            price, shares = to_tick(opp.bid_price), to_tick(size)
            try:
                result = await self.executor.place_limit_order(
                    token_id=opp.token_id, side="BUY",
                    price=float(price), size=float(shares), order_type="GTC")
            except OrderPlacementError as e:
                logger.warning("limit_buy_failed", token=opp.token_type.display_name,
                               token_id=opp.token_id, error=str(e))
                return None
            order.order_id = result.order_id
            order.target_price, order.size = price, shares

        await self.tracker.add_order(order)
        logger.info("limit_buy_placed", token=opp.token_type.display_name,
                    price=float(order.target_price), size=float(order.size),
                    period=opp.period_timestamp, order_id=order.order_id,
                    simulated=self.simulation)
        if self.history is not None:
            await self.history.log_market(
                opp.condition_id, opp.period_timestamp,
                f"LIMIT BUY PLACED | {opp.token_type.display_name} | Price: "
                f"${order.target_price:.6f} | Size: {order.size:.6f} shares "
                f"| Period: {opp.period_timestamp}")
        return order

    async def reset_period(self, new_period: int) -> None:
        """Expire unfilled orders from earlier periods; positions stay open.

        In live mode order status is checked once more first, so a fill from
        the last seconds of the period still becomes a position.
        """
        if not self.simulation:
            await self.reconcile_live_orders()
        expired = await self.tracker.expire_orders(new_period)
        async with self._period_lock:
            last_placed = self.last_placed_period
        logger.info("period_reset", new_period=new_period, last_placed=last_placed,
                    expired=len(expired))
        if expired and self.history is not None:
            await self.history.log(
                f"PERIOD RESET | New period: {new_period} | Expired orders: {len(expired)}")

    async def check_pending_orders(self) -> list[Order]:
        """Fill-check task body: simulated fills, or throttled live reconciliation."""
        if self.simulation:
            return await self.tracker.check_pending_orders(self.latest_prices)
        now = time.monotonic()
        if now - self._last_reconcile < self.config.live_reconcile_interval_seconds:
            return []
        self._last_reconcile = now
        return await self.reconcile_live_orders()

    async def reconcile_live_orders(self) -> list[Order]:
        filled: list[Order] = []
        for order in await self.tracker.pending():
            if not order.order_id:
                continue
            status = await self.executor.get_order(order.order_id)
            if status is None or not status.is_filled:
                continue
            await self.tracker.record_live_fill(order.key)
            filled.append(order)
        if filled:
            logger.info("live_orders_filled", count=len(filled))
        return filled

# src/dual_limit/tracker.py
from __future__ import annotations

import asyncio
import time
from collections import deque
from decimal import Decimal
from typing import Optional

import structlog

from src.dual_limit.history import HistoryLog
from src.dual_limit.state import (
    Order,
    OrderSide,
    Position,
    TokenPrice,
    TokenSide,
    TokenType,
)

logger = structlog.get_logger()

ZERO = Decimal("0")
ONE = Decimal("1")

# Filled, expired and closed records kept for reporting.
ARCHIVE_LIMIT = 500


class PositionTracker:
    """Pending orders, open positions and running PnL.

    Orders, positions and totals each sit behind their own lock; no method
    holds more than one at a time.
    """

    def __init__(self, *, history: Optional[HistoryLog] = None) -> None:
        self.history = history
        self.pending_orders: dict[tuple[str, OrderSide], Order] = {}
        self.filled_orders: deque[Order] = deque(maxlen=ARCHIVE_LIMIT)
        self.expired_orders: deque[Order] = deque(maxlen=ARCHIVE_LIMIT)
        # Open positions only; sold or resolved ones move to closed_positions.
        self.positions: dict[str, Position] = {}
        self.closed_positions: deque[Position] = deque(maxlen=ARCHIVE_LIMIT)
        self.total_invested: Decimal = ZERO
        self.total_realized_pnl: Decimal = ZERO
        self._orders_lock = asyncio.Lock()
        self._positions_lock = asyncio.Lock()
        self._totals_lock = asyncio.Lock()

    async def _record(self, condition_id: str, period: int, message: str) -> None:
        if self.history is not None:
            await self.history.log_market(condition_id, period, message)

    # -- orders ------------------------------------------------------------

    async def add_order(self, order: Order) -> None:
        async with self._orders_lock:
            self.pending_orders[order.key] = order

    async def pending(self) -> list[Order]:
        async with self._orders_lock:
            return [o for o in self.pending_orders.values() if not o.filled]

    async def expire_orders(self, before_period: int) -> list[Order]:
        """Archive unfilled orders from periods older than ``before_period``."""
        async with self._orders_lock:
            stale = [k for k, o in self.pending_orders.items()
                     if not o.filled and o.period_timestamp < before_period]
            expired = [self.pending_orders.pop(k) for k in stale]
            self.expired_orders.extend(expired)
        for order in expired:
            logger.info("order_expired", token=order.token_type.display_name,
                        period=order.period_timestamp, price=float(order.target_price))
        return expired

    async def has_active_position(self, period_timestamp: int, token_type: TokenType) -> bool:
        """True if ``token_type`` already has an order or open position this period."""
        async with self._orders_lock:
            for order in self.pending_orders.values():
                if (order.token_type == token_type and order.side is OrderSide.BUY
                        and order.period_timestamp == period_timestamp):
                    return True
        async with self._positions_lock:
            return any(
                p.token_type == token_type and p.period_timestamp == period_timestamp
                for p in self.positions.values())

    # -- fills -------------------------------------------------------------

    async def check_pending_orders(self, prices: dict[str, TokenPrice]) -> list[Order]:
        """Fill simulated orders against the observed top of book."""
        if not prices:
            if await self.pending():
                logger.warning("fill_check_no_quotes")
            return []

        fills: list[tuple[Order, Decimal]] = []
        async with self._orders_lock:
            for key, order in list(self.pending_orders.items()):
                if order.filled:
                    continue
                quote = prices.get(order.token_id)
                if quote is None:
                    continue
                fill_price = _fill_price(order, quote)
                if fill_price is None:
                    continue
                order.filled = True
                del self.pending_orders[key]
                self.filled_orders.append(order)
                fills.append((order, fill_price))

        for order, fill_price in fills:
            if order.side is OrderSide.BUY:
                await self._apply_buy(order, fill_price)
            else:
                await self._apply_sell(order, fill_price)
        return [o for o, _ in fills]

    async def record_live_fill(self, order_key: tuple[str, OrderSide]) -> Optional[Position]:
        """Mark a live order filled (exchange MATCHED) at its limit price."""
        async with self._orders_lock:
            order = self.pending_orders.pop(order_key, None)
            if order is None or order.filled:
                return None
            order.filled = True
            self.filled_orders.append(order)
        if order.side is OrderSide.BUY:
            return await self._apply_buy(order, order.target_price)
        await self._apply_sell(order, order.target_price)
        return None

    async def _apply_buy(self, order: Order, fill_price: Decimal) -> Position:
        investment = order.size * fill_price
        position = Position(
            token_id=order.token_id,
            token_type=order.token_type,
            condition_id=order.condition_id,
            purchase_price=fill_price,
            units=order.size,
            investment_amount=investment,
            period_timestamp=order.period_timestamp,
        )
        async with self._positions_lock:
            self.positions[order.token_id] = position
        async with self._totals_lock:
            self.total_invested += investment
        logger.info("order_filled", side="BUY", token=order.token_type.display_name,
                    price=float(fill_price), units=float(order.size),
                    invested=float(investment))
        await self._record(
            order.condition_id, order.period_timestamp,
            f"BUY FILLED | {order.token_type.display_name} | Price: ${fill_price:.6f} "
            f"| Units: {order.size:.6f} | Invested: ${investment:.6f}")
        return position

    async def _apply_sell(self, order: Order, fill_price: Decimal) -> None:
        async with self._positions_lock:
            position = self.positions.get(order.token_id)
            if position is None or position.sold:
                logger.warning("sell_fill_without_position", token_id=order.token_id)
                return
            position.sold = True
            position.sell_price = order.target_price
            position.sell_price_actual = fill_price
            position.sell_timestamp = time.time()
            self._close(position)
            pnl = (fill_price - position.purchase_price) * position.units
        async with self._totals_lock:
            self.total_realized_pnl += pnl
        logger.info("order_filled", side="SELL", token=order.token_type.display_name,
                    price=float(fill_price), pnl=float(pnl))
        await self._record(
            order.condition_id, order.period_timestamp,
            f"SELL FILLED | {order.token_type.display_name} | Price: ${fill_price:.6f} "
            f"| PnL: ${pnl:.6f}")

    # -- positions ---------------------------------------------------------

    def _close(self, position: Position) -> None:
        # Caller holds _positions_lock.
        self.positions.pop(position.token_id, None)
        self.closed_positions.append(position)

    async def open_positions(self) -> list[Position]:
        async with self._positions_lock:
            return list(self.positions.values())

    async def open_condition_ids(self) -> set[str]:
        return {p.condition_id for p in await self.open_positions()}

    async def resolve_market_positions(
        self, condition_id: str, resolved_side: TokenSide,
        now: Optional[float] = None,
    ) -> Decimal:
        """Settle every open position on ``condition_id``; return the PnL booked."""
        now = time.time() if now is None else now
        settled: list[tuple[Position, Decimal, Decimal]] = []
        async with self._positions_lock:
            for position in self.positions.values():
                if position.sold or position.condition_id != condition_id:
                    continue
                won = position.token_type.side is resolved_side
                final_price = ONE if won else ZERO
                final_value = position.units * final_price
                pnl = final_value - position.investment_amount
                position.sold = True
                position.sell_price = final_price
                position.sell_price_actual = final_price
                position.sell_timestamp = now
                settled.append((position, final_value, pnl))
            for position, _, _ in settled:
                self._close(position)

        total = sum((pnl for _, _, pnl in settled), ZERO)
        async with self._totals_lock:
            self.total_realized_pnl += total

        for position, final_value, pnl in settled:
            outcome = "WON" if final_value > 0 else "LOST"
            logger.info("position_resolved", token=position.token_type.display_name,
                        cid=condition_id, outcome=outcome, pnl=float(pnl))
            await self._record(
                condition_id, position.period_timestamp,
                f"MARKET RESOLVED | {position.token_type.display_name} | {outcome} "
                f"| Final value: ${final_value:.6f} | Invested: "
                f"${position.investment_amount:.6f} | PnL: ${pnl:.6f}")
        return total

    # -- totals ------------------------------------------------------------

    async def totals(self) -> tuple[Decimal, Decimal]:
        async with self._totals_lock:
            return self.total_invested, self.total_realized_pnl

    async def unrealized_pnl(self, prices: dict[str, TokenPrice]) -> Decimal:
        total = ZERO
        for position in await self.open_positions():
            total += position_unrealized(position, prices.get(position.token_id))
        return total


def _fill_price(order: Order, quote: TokenPrice) -> Optional[Decimal]:
    if order.side is OrderSide.BUY:
        ask = quote.ask
        if ask is not None and ask > 0 and ask <= order.target_price:
            return ask
        return None
    bid = quote.bid
    if bid is not None and bid > 0 and bid >= order.target_price:
        return bid
    return None


def current_mid(position: Position, quote: Optional[TokenPrice]) -> Decimal:
    """Mid price for ``position``; its purchase price when unquoted."""
    if quote is not None and quote.mid is not None:
        return quote.mid
    return position.purchase_price


def position_unrealized(position: Position, quote: Optional[TokenPrice]) -> Decimal:
    return (current_mid(position, quote) - position.purchase_price) * position.units

# src/dual_limit/status.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional

import structlog

from src.dual_limit.history import HistoryLog
from src.dual_limit.state import Order, OrderSide, Position, TokenPrice
from src.dual_limit.tracker import PositionTracker, current_mid, position_unrealized

logger = structlog.get_logger()


def order_status(order: Order, quote: Optional[TokenPrice]) -> str:
    """READY when the book would fill the order now, else waiting."""
    if quote is None:
        return "waiting (no quote)"
    if order.side is OrderSide.BUY:
        if quote.ask is not None and 0 < quote.ask <= order.target_price:
            return "READY"
        return f"waiting (ask ${quote.ask:.4f})" if quote.ask is not None else "waiting (no ask)"
    if quote.bid is not None and quote.bid >= order.target_price > 0:
        return "READY"
    return f"waiting (bid ${quote.bid:.4f})" if quote.bid is not None else "waiting (no bid)"


def format_position(position: Position, quote: Optional[TokenPrice]) -> str:
    mid = current_mid(position, quote)
    pnl = position_unrealized(position, quote)
    return (f"  {position.token_type.display_name}: bought ${position.purchase_price:.4f} "
            f"| mid ${mid:.4f} | units {position.units:.6f} | unrealized ${pnl:+.4f}")


def format_summary(
    *, invested: Decimal, realized: Decimal, unrealized: Decimal,
    positions: list[Position], pending: list[Order],
    prices: dict[str, TokenPrice],
) -> str:
    lines = [
        "TRADING SUMMARY",
        f"  Invested: ${invested:.4f} | Realized: ${realized:+.4f} "
        f"| Unrealized: ${unrealized:+.4f} | Total PnL: ${realized + unrealized:+.4f}",
        f"  Open positions: {len(positions)}",
    ]
    lines.extend(format_position(p, prices.get(p.token_id)) for p in positions)
    if pending:
        lines.append(f"  Pending orders: {len(pending)}")
        for order in pending:
            lines.append(
                f"  {order.side.value} {order.token_type.display_name} @ "
                f"${order.target_price:.4f} x {order.size:.6f} "
                f"- {order_status(order, prices.get(order.token_id))}")
    return "\n".join(lines)


async def emit_summary(
    tracker: PositionTracker, prices: dict[str, TokenPrice],
    history: Optional[HistoryLog] = None,
) -> str:
    invested, realized = await tracker.totals()
    positions = await tracker.open_positions()
    unrealized = await tracker.unrealized_pnl(prices)
    text = format_summary(
        invested=invested, realized=realized, unrealized=unrealized,
        positions=positions, pending=await tracker.pending(), prices=prices)
    logger.info("trading_summary", invested=float(invested), realized=float(realized),
                unrealized=float(unrealized), open_positions=len(positions))
    if history is not None:
        await history.log(text)
    return text

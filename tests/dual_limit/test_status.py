from decimal import Decimal

import pytest

from src.dual_limit.state import Asset, Order, OrderSide, TokenPrice, TokenSide, TokenType
from src.dual_limit.status import emit_summary, order_status
from src.dual_limit.tracker import PositionTracker

PERIOD = 1_699_999_200


def buy(token_id="tok_up", price="0.45"):
    return Order(token_id=token_id, token_type=TokenType(Asset.BTC, TokenSide.UP),
                 condition_id="0xbtc", side=OrderSide.BUY, target_price=Decimal(price),
                 size=Decimal("10"), period_timestamp=PERIOD)


def test_order_status_ready_and_waiting():
    order = buy()
    assert order_status(order, TokenPrice(ask=Decimal("0.44"))) == "READY"
    assert order_status(order, TokenPrice(ask=Decimal("0.50"))).startswith("waiting")
    assert order_status(order, None) == "waiting (no quote)"
    assert order_status(order, TokenPrice(bid=Decimal("0.40"))) == "waiting (no ask)"


@pytest.mark.asyncio
async def test_summary_reports_totals_positions_and_pending():
    tracker = PositionTracker()
    await tracker.add_order(buy("tok_up"))
    await tracker.check_pending_orders({"tok_up": TokenPrice(ask=Decimal("0.40"))})
    await tracker.add_order(buy("tok_down"))

    prices = {
        "tok_up": TokenPrice(bid=Decimal("0.50"), ask=Decimal("0.60")),
        "tok_down": TokenPrice(ask=Decimal("0.44")),
    }
    text = await emit_summary(tracker, prices)

    assert "Invested: $4.0000" in text
    assert "Unrealized: $+1.5000" in text
    assert "Open positions: 1" in text
    assert "mid $0.5500" in text
    assert "Pending orders: 1" in text
    assert "READY" in text

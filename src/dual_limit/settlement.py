# src/dual_limit/settlement.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

import httpx
import structlog

from src.dual_limit.history import HistoryLog
from src.dual_limit.resilience import clob_retry
from src.dual_limit.state import Market, is_dummy_condition_id
from src.dual_limit.tracker import ZERO, PositionTracker
from src.exceptions import PolyError, ResolutionUnavailableError

logger = structlog.get_logger()


class SettlementManager:
    """Resolves open positions once their market has closed with a winner."""

    def __init__(
        self, *, client: Any, tracker: PositionTracker,
        history: Optional[HistoryLog] = None,
    ) -> None:
        self.client = client
        self.tracker = tracker
        self.history = history

    async def _fetch(self, condition_id: str) -> Market:
        market = await clob_retry(
            lambda: self.client.get_market_by_condition(condition_id),
            operation="market_closure")
        if market.closed and market.resolved_side is None:
            raise ResolutionUnavailableError(f"{condition_id} closed without a winner")
        return market

    async def check_market_closure(self) -> Decimal:
        """One closure-watch tick. Returns the PnL booked this tick."""
        booked = ZERO
        open_positions = await self.tracker.open_positions()
        by_market: dict[str, tuple[str, int]] = {}
        for p in open_positions:
            by_market.setdefault(p.condition_id, (p.token_type.asset.label, p.period_timestamp))

        for condition_id, (name, period) in by_market.items():
            if is_dummy_condition_id(condition_id):
                continue
            try:
                market = await self._fetch(condition_id)
            except ResolutionUnavailableError:
                logger.info("resolution_pending", cid=condition_id)
                continue
            except (PolyError, httpx.HTTPError) as e:
                logger.warning("closure_check_failed", cid=condition_id, error=str(e))
                continue
            if not market.closed:
                continue

            pnl = await self.tracker.resolve_market_positions(condition_id, market.resolved_side)
            booked += pnl
            logger.info("market_resolved", market=name, cid=condition_id,
                        winner=market.resolved_side.value, pnl=float(pnl))
            if self.history is not None:
                await self.history.log_market_end(name, period, condition_id)
        return booked

# src/feeds/polymarket.py
"""Polymarket read-side REST client: market lookup and top-of-book quotes.

Markets are looked up by event slug on the Gamma API
(``/events?slug=btc-updown-15m-...``) and by condition id on the CLOB API
(``/markets/{condition_id}``, which also carries the ``winner`` flag once the
market has resolved). Quotes come from the CLOB ``/book`` endpoint.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

import httpx
import structlog

from src.dual_limit.state import Market, TokenInfo, TokenPrice, TokenSide
from src.exceptions import FeedError, MarketNotFoundError, QuoteUnavailableError
from src.utils.parsing import (
    first_event_slug,
    parse_json_list,
    to_bool,
    to_decimal,
)

logger = structlog.get_logger()

GAMMA_API = "https://gamma-api.polymarket.com"
CLOB_API = "https://clob.polymarket.com"

_RESOLVED_PRICE = Decimal("0.99")


def _parse_orderbook_level(level: Any) -> tuple[Optional[Decimal], Optional[Decimal]]:
    if isinstance(level, dict):
        return to_decimal(level.get("price")), to_decimal(level.get("size"))
    if isinstance(level, list) and len(level) >= 2:
        return to_decimal(level[0]), to_decimal(level[1])
    return None, None


def best_orderbook_level(levels: list[Any], side: str) -> Optional[Decimal]:
    """Extract top-of-book robustly.

    CLOB ``/book`` arrays are not guaranteed in any particular order, so we
    explicitly pick max(bid) and min(ask) by price.
    """
    best: Optional[Decimal] = None
    for level in levels:
        price, size = _parse_orderbook_level(level)
        if price is None or size is None:
            continue
        if not (0 <= price <= 1) or size <= 0:
            continue
        if best is None:
            best = price
        elif side == "bid" and price > best:
            best = price
        elif side == "ask" and price < best:
            best = price
    return best


def parse_gamma_market(raw: dict[str, Any], slug: str = "") -> Market:
    """Build a Market from a Gamma ``markets[]`` entry."""
    outcomes = [str(o) for o in parse_json_list(raw.get("outcomes", []))]
    clob_ids = [str(t) for t in parse_json_list(raw.get("clobTokenIds", []))]
    tokens: dict[TokenSide, TokenInfo] = {}
    for outcome, token_id in zip(outcomes, clob_ids):
        side = TokenSide.from_outcome(outcome)
        if side is not None and token_id:
            tokens[side] = TokenInfo(token_id=token_id, outcome=outcome)
    return Market(
        condition_id=str(raw.get("conditionId", "")),
        slug=slug or first_event_slug(raw),
        question=str(raw.get("question", "")),
        active=to_bool(raw.get("active")),
        closed=to_bool(raw.get("closed")),
        up_token=tokens.get(TokenSide.UP),
        down_token=tokens.get(TokenSide.DOWN),
    )


def parse_clob_market(raw: dict[str, Any]) -> Market:
    """Build a Market from a CLOB ``/markets/{condition_id}`` payload.

    ``resolved_side`` is set from the token flagged ``winner``, falling back
    to a token priced at >= 0.99 on a closed market.
    """
    tokens: dict[TokenSide, TokenInfo] = {}
    winner: Optional[TokenSide] = None
    priced_out: Optional[TokenSide] = None
    closed = to_bool(raw.get("closed"))
    for token in raw.get("tokens", []) or []:
        outcome = str(token.get("outcome", ""))
        side = TokenSide.from_outcome(outcome)
        if side is None:
            continue
        tokens[side] = TokenInfo(token_id=str(token.get("token_id", "")), outcome=outcome)
        if to_bool(token.get("winner")):
            winner = side
        price = to_decimal(token.get("price"))
        if price is not None and price >= _RESOLVED_PRICE:
            priced_out = side
    return Market(
        condition_id=str(raw.get("condition_id", "")),
        slug=str(raw.get("market_slug", "")),
        question=str(raw.get("question", "")),
        active=to_bool(raw.get("active")),
        closed=closed,
        up_token=tokens.get(TokenSide.UP),
        down_token=tokens.get(TokenSide.DOWN),
        resolved_side=winner or (priced_out if closed else None),
    )


class PolymarketClient:
    """Async read-only client over the Gamma and CLOB REST APIs."""

    def __init__(
        self,
        *,
        gamma_url: str = GAMMA_API,
        clob_url: str = CLOB_API,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.gamma_url = gamma_url.rstrip("/")
        self.clob_url = clob_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=timeout, headers={"User-Agent": "Mozilla/5.0"})

    @classmethod
    def from_settings(cls, polymarket: Any) -> "PolymarketClient":
        return cls(
            gamma_url=polymarket.gamma_api_url,
            clob_url=polymarket.clob_api_url,
            timeout=polymarket.request_timeout_seconds,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get_json(self, url: str, params: Optional[dict[str, Any]] = None) -> Any:
        try:
            resp = await self._client.get(url, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as exc:
            raise FeedError(f"GET {url} failed: {exc}") from exc
        except ValueError as exc:
            raise FeedError(f"GET {url} returned invalid JSON") from exc

    async def get_market_by_slug(self, slug: str) -> Market:
        events = await self._get_json(f"{self.gamma_url}/events", params={"slug": slug})
        if isinstance(events, dict):
            events = [events]
        for event in events or []:
            for raw in event.get("markets", []) or []:
                if raw.get("conditionId"):
                    return parse_gamma_market(raw, slug=event.get("slug") or slug)
        raise MarketNotFoundError(f"no market for slug {slug}")

    async def get_market_by_condition(self, condition_id: str) -> Market:
        raw = await self._get_json(f"{self.clob_url}/markets/{condition_id}")
        if not isinstance(raw, dict) or not raw.get("condition_id"):
            raise MarketNotFoundError(f"no market for condition {condition_id}")
        return parse_clob_market(raw)

    async def get_top_of_book(self, token_id: str) -> TokenPrice:
        try:
            payload = await self._get_json(
                f"{self.clob_url}/book", params={"token_id": token_id})
        except FeedError as exc:
            raise QuoteUnavailableError(str(exc)) from exc
        if not isinstance(payload, dict):
            raise QuoteUnavailableError(f"malformed book for {token_id}")
        return TokenPrice(
            bid=best_orderbook_level(payload.get("bids", []) or [], side="bid"),
            ask=best_orderbook_level(payload.get("asks", []) or [], side="ask"),
        )

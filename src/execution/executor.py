"""Executor protocol and adapters."""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from src.execution.models import OrderResult, OrderStatus


@runtime_checkable
class ExecutorProtocol(Protocol):
    """Interface the order engine needs from a signing exchange client."""

    async def authenticate(self) -> None: ...

    async def place_limit_order(
        self,
        token_id: str,
        side: str,
        price: float,
        size: float,
        order_type: str = "GTC",
    ) -> OrderResult: ...

    async def get_order(self, order_id: str) -> Optional[OrderStatus]: ...


def adapt_polymarket_response(raw: Any) -> OrderResult:
    """Convert a py-clob-client ``post_order`` response to OrderResult."""
    if not isinstance(raw, dict):
        return OrderResult(order_id="", status="error", error=f"unexpected response: {raw!r}")
    if raw.get("status") == "ERROR" or raw.get("error") or raw.get("errorMsg"):
        message = raw.get("message") or raw.get("errorMsg") or raw.get("error") or "unknown error"
        return OrderResult(order_id="", status="error", error=str(message))
    if raw.get("success") is False:
        return OrderResult(order_id="", status="error", error=str(raw.get("errorMsg", "rejected")))
    order_id = raw.get("orderID") or raw.get("orderId") or raw.get("id") or ""
    status = str(raw.get("status", "")).lower()
    return OrderResult(
        order_id=str(order_id),
        filled=status == "matched",
        status="filled" if status == "matched" else "placed",
    )


def adapt_order_status(order_id: str, raw: Any) -> Optional[OrderStatus]:
    """Convert a py-clob-client ``get_order`` payload to OrderStatus."""
    if not raw:
        return None
    if isinstance(raw, dict):
        status = raw.get("status", "")
        matched = raw.get("size_matched", 0) or 0
    else:
        status = getattr(raw, "status", "")
        matched = getattr(raw, "size_matched", 0) or 0
    try:
        size_matched = float(matched)
    except (TypeError, ValueError):
        size_matched = 0.0
    return OrderStatus(order_id=order_id, status=str(status), size_matched=size_matched)

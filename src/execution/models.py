"""Shared data structures for trade execution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class OrderResult:
    """Result from an executor's place_limit_order call."""

    order_id: str
    filled: bool = False
    status: str = "placed"  # "placed", "filled", "error"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != "error" and bool(self.order_id)


@dataclass(slots=True)
class OrderStatus:
    """Exchange-side state of a previously placed order."""

    order_id: str
    status: str  # LIVE, MATCHED, FILLED, CANCELLED, ...
    size_matched: float = 0.0

    @property
    def is_filled(self) -> bool:
        return self.status.upper() in ("MATCHED", "FILLED")

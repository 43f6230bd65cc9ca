from src.execution.models import (
    OrderResult,
    OrderStatus,
)
from src.execution.executor import (
    ExecutorProtocol,
    adapt_order_status,
    adapt_polymarket_response,
)

__all__ = [
    "OrderResult",
    "OrderStatus",
    "ExecutorProtocol",
    "adapt_order_status",
    "adapt_polymarket_response",
]

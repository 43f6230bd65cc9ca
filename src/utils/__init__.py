"""Utility modules for the poly project.

Sub-modules:
- logging: configure_logging() for structlog setup (optional history.toml tee)
- parsing: JSON/Decimal/bool helpers for exchange payloads
- crypto_markets: 15-minute up/down slug helpers (import directly from src.utils.crypto_markets)
"""

from .logging import configure_logging

__all__ = [
    "configure_logging",
]

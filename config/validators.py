"""Credential and configuration validators."""

from typing import Any

from src.exceptions import ConfigError


def validate_polymarket_credentials(polymarket: Any) -> None:
    """Raise ConfigError if Polymarket signing credentials are missing."""
    if not polymarket.private_key:
        raise ConfigError("polymarket.private_key is required for live trading")


def validate_trading(trading: Any) -> None:
    """Raise ConfigError if the order size cannot be derived."""
    if trading.dual_limit_shares is None and trading.fixed_trade_amount <= 0:
        raise ConfigError(
            "trading.fixed_trade_amount must be > 0 when trading.dual_limit_shares is unset")
    if not 0 < trading.dual_limit_price < 1:
        raise ConfigError("trading.dual_limit_price must be between 0 and 1")

"""Bot configuration: JSON config file + environment overrides.

The file layout mirrors the sections the bot reads::

    {"polymarket": {...}, "trading": {...}}

Environment variables override nothing by default but can supply secrets,
e.g. ``POLYMARKET__PRIVATE_KEY=...`` (nested with ``__``).
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from src.exceptions import ConfigError

DEFAULT_CONFIG_PATH = "config.json"


class PolymarketSettings(BaseModel):
    gamma_api_url: str = "https://gamma-api.polymarket.com"
    clob_api_url: str = "https://clob.polymarket.com"
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    api_passphrase: Optional[str] = None
    private_key: Optional[str] = None
    proxy_wallet_address: Optional[str] = None
    signature_type: Optional[int] = None
    chain_id: int = 137
    request_timeout_seconds: float = 10.0


class TradingSettings(BaseModel):
    # === Dual limit-start strategy ===
    dual_limit_price: Decimal = Field(default=Decimal("0.45"), gt=0, lt=1)
    dual_limit_shares: Optional[Decimal] = Field(default=None, gt=0)
    fixed_trade_amount: Decimal = Field(default=Decimal("1"), ge=0)

    # === Cadences ===
    check_interval_ms: int = Field(default=1000, gt=0)
    fill_check_interval_ms: int = Field(default=1000, gt=0)
    summary_interval_seconds: float = Field(default=30.0, gt=0)
    market_closure_check_interval_seconds: int = Field(default=10, gt=0)
    live_reconcile_interval_seconds: float = Field(default=15.0, gt=0)

    # === Assets (BTC always on) ===
    enable_eth_trading: bool = False
    enable_solana_trading: bool = False
    enable_xrp_trading: bool = False
    allow_btc_fallback: bool = False

    # === Simulation history ===
    history_file: str = "history.toml"
    history_dir: str = "history"


class Settings(BaseSettings):
    polymarket: PolymarketSettings = Field(default_factory=PolymarketSettings)
    trading: TradingSettings = Field(default_factory=TradingSettings)

    model_config = {"env_file": ".env", "env_nested_delimiter": "__", "extra": "ignore"}


def load_settings(path: str | Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Load settings from a JSON file, writing the defaults when it is missing.

    Raises ConfigError on unreadable JSON or values that fail validation.
    """
    config_path = Path(path)
    if not config_path.exists():
        settings = Settings()
        config_path.write_text(settings.model_dump_json(indent=2))
        return settings
    try:
        data = json.loads(config_path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot read {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a JSON object")
    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration in {config_path}: {exc}") from exc

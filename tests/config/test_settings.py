import json
from decimal import Decimal

import pytest

from config.settings import Settings, load_settings
from config.validators import validate_polymarket_credentials, validate_trading
from src.exceptions import ConfigError


def test_defaults():
    s = Settings()
    assert s.trading.dual_limit_price == Decimal("0.45")
    assert s.trading.fixed_trade_amount == Decimal("1")
    assert s.trading.check_interval_ms == 1000
    assert s.trading.market_closure_check_interval_seconds == 10
    assert s.trading.enable_eth_trading is False
    assert s.polymarket.chain_id == 137


def test_missing_file_writes_defaults(tmp_path):
    path = tmp_path / "config.json"
    s = load_settings(path)
    assert path.exists()
    data = json.loads(path.read_text())
    assert data["trading"]["dual_limit_price"] == "0.45"
    assert s.trading.history_file == "history.toml"


def test_load_overrides(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "trading": {"dual_limit_price": 0.40, "enable_solana_trading": True},
        "polymarket": {"private_key": "0xkey"},
    }))
    s = load_settings(path)
    assert s.trading.dual_limit_price == Decimal("0.4")
    assert s.trading.enable_solana_trading is True
    assert s.polymarket.private_key == "0xkey"


def test_bad_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_settings(path)


def test_invalid_value(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"trading": {"dual_limit_price": 1.5}}))
    with pytest.raises(ConfigError):
        load_settings(path)


def test_validate_trading():
    s = Settings()
    validate_trading(s.trading)
    s.trading.fixed_trade_amount = Decimal("0")
    with pytest.raises(ConfigError):
        validate_trading(s.trading)
    s.trading.dual_limit_shares = Decimal("5")
    validate_trading(s.trading)


def test_validate_credentials():
    s = Settings()
    with pytest.raises(ConfigError):
        validate_polymarket_credentials(s.polymarket)
    s.polymarket.private_key = "0xkey"
    validate_polymarket_credentials(s.polymarket)

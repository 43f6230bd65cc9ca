# tests/execution/test_executor.py
import pytest
from unittest.mock import patch

from src.exceptions import AuthenticationError, ConfigError, OrderPlacementError
from src.execution.executor import (
    ExecutorProtocol,
    adapt_order_status,
    adapt_polymarket_response,
)
from src.execution.models import OrderResult, OrderStatus


def test_adapt_polymarket_success():
    raw = {"orderID": "abc123", "status": "LIVE"}
    result = adapt_polymarket_response(raw)
    assert result.order_id == "abc123"
    assert result.status == "placed"
    assert result.ok


def test_adapt_polymarket_matched():
    result = adapt_polymarket_response({"orderID": "abc", "status": "matched"})
    assert result.filled
    assert result.status == "filled"


def test_adapt_polymarket_error():
    raw = {"status": "ERROR", "message": "insufficient funds"}
    result = adapt_polymarket_response(raw)
    assert result.status == "error"
    assert result.error == "insufficient funds"
    assert not result.ok


def test_adapt_polymarket_rejected():
    result = adapt_polymarket_response({"success": False, "errorMsg": "bad tick"})
    assert result.error == "bad tick"


def test_adapt_order_status():
    status = adapt_order_status("oid", {"status": "MATCHED", "size_matched": "2.22"})
    assert status.is_filled
    assert status.size_matched == 2.22
    assert adapt_order_status("oid", None) is None
    assert not OrderStatus(order_id="oid", status="LIVE").is_filled


def test_protocol_is_runtime_checkable():
    class FakeExecutor:
        async def authenticate(self):
            return None
        async def place_limit_order(self, token_id, side, price, size, order_type="GTC"):
            return OrderResult(order_id="fake")
        async def get_order(self, order_id):
            return None

    assert isinstance(FakeExecutor(), ExecutorProtocol)


@pytest.fixture
def clob():
    with patch("src.execution.polymarket_executor.ClobClient") as cls:
        yield cls.return_value


def make_executor(**kwargs):
    from src.execution.polymarket_executor import PolymarketExecutor
    return PolymarketExecutor(host="https://clob.polymarket.com", chain_id=137,
                              private_key="0xkey", api_key="k", api_secret="s",
                              api_passphrase="p", **kwargs)


@pytest.mark.asyncio
async def test_place_limit_order_posts_gtc(clob):
    clob.post_order.return_value = {"success": True, "orderID": "oid-1", "status": "live"}
    executor = make_executor()

    result = await executor.place_limit_order("111", "BUY", 0.45, 2.22)

    assert result.order_id == "oid-1"
    args = clob.create_order.call_args.args[0]
    assert args.price == 0.45 and args.size == 2.22 and args.side == "BUY"
    clob.set_api_creds.assert_called_once()


@pytest.mark.asyncio
async def test_place_limit_order_rejected(clob):
    clob.post_order.return_value = {"success": False, "errorMsg": "not enough balance"}
    with pytest.raises(OrderPlacementError):
        await make_executor().place_limit_order("111", "BUY", 0.45, 2.22)


@pytest.mark.asyncio
async def test_place_limit_order_exception(clob):
    clob.create_order.side_effect = RuntimeError("signing failed")
    with pytest.raises(OrderPlacementError):
        await make_executor().place_limit_order("111", "BUY", 0.45, 2.22)


@pytest.mark.asyncio
async def test_authenticate_failure(clob):
    clob.get_ok.side_effect = RuntimeError("unreachable")
    with pytest.raises(AuthenticationError):
        await make_executor().authenticate()


@pytest.mark.asyncio
async def test_get_order(clob):
    clob.get_order.return_value = {"status": "MATCHED", "size_matched": "2.22"}
    status = await make_executor().get_order("oid-1")
    assert status.is_filled


def test_from_settings_requires_private_key():
    from config.settings import PolymarketSettings
    from src.execution.polymarket_executor import PolymarketExecutor
    with pytest.raises(ConfigError):
        PolymarketExecutor.from_settings(PolymarketSettings())


def test_proxy_wallet_defaults_to_poly_proxy_signature():
    with patch("src.execution.polymarket_executor.ClobClient") as cls:
        make_executor(funder="0xproxy")
    assert cls.call_args.kwargs["signature_type"] == 1
    assert cls.call_args.kwargs["funder"] == "0xproxy"

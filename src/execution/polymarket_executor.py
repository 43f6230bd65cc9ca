"""Polymarket executor using py-clob-client."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog
from py_clob_client.client import ClobClient
from py_clob_client.clob_types import ApiCreds, OrderArgs, OrderType

from src.exceptions import AuthenticationError, OrderPlacementError
from src.execution.executor import adapt_order_status, adapt_polymarket_response
from src.execution.models import OrderResult, OrderStatus

logger = structlog.get_logger()


class PolymarketExecutor:
    """Places signed limit orders on the Polymarket CLOB."""

    def __init__(
        self,
        host: str,
        chain_id: int,
        private_key: str,
        funder: Optional[str] = None,
        signature_type: Optional[int] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        api_passphrase: Optional[str] = None,
    ) -> None:
        if not private_key:
            raise ValueError("polymarket.private_key is required for execution")

        kwargs: dict[str, Any] = {}
        if funder:
            kwargs["funder"] = funder
            # POLY_PROXY (1) unless configured: EOA signs for the proxy wallet.
            kwargs["signature_type"] = 1 if signature_type is None else signature_type
        elif signature_type is not None:
            kwargs["signature_type"] = signature_type
        self._client = ClobClient(
            host=host.rstrip("/"),
            chain_id=chain_id,
            key=private_key,
            **kwargs,
        )
        self._api_key = api_key
        self._api_secret = api_secret
        self._api_passphrase = api_passphrase
        self._creds_ready = False

    @classmethod
    def from_settings(cls, polymarket: Any) -> "PolymarketExecutor":
        """Build executor from the ``polymarket`` settings section.

        Raises ConfigError if the private key is missing.
        """
        from config.validators import validate_polymarket_credentials
        validate_polymarket_credentials(polymarket)
        return cls(
            host=polymarket.clob_api_url,
            chain_id=polymarket.chain_id,
            private_key=polymarket.private_key,
            funder=polymarket.proxy_wallet_address or None,
            signature_type=polymarket.signature_type,
            api_key=polymarket.api_key or None,
            api_secret=polymarket.api_secret or None,
            api_passphrase=polymarket.api_passphrase or None,
        )

    def _ensure_creds(self) -> None:
        if self._creds_ready:
            return

        creds: Optional[ApiCreds]
        if self._api_key and self._api_secret and self._api_passphrase:
            creds = ApiCreds(
                api_key=self._api_key,
                api_secret=self._api_secret,
                api_passphrase=self._api_passphrase,
            )
        else:
            creds = self._client.create_or_derive_api_creds()

        if not creds:
            raise AuthenticationError("Failed to create or derive Polymarket API credentials")

        self._client.set_api_creds(creds)
        self._creds_ready = True

    def _authenticate_sync(self) -> None:
        self._ensure_creds()
        self._client.get_ok()

    async def authenticate(self) -> None:
        """Derive/set API credentials and ping the CLOB.

        Raises AuthenticationError; callers treat it as a warning.
        """
        try:
            await asyncio.to_thread(self._authenticate_sync)
        except AuthenticationError:
            raise
        except Exception as e:
            raise AuthenticationError(str(e)) from e

    def _place_order_sync(
        self,
        token_id: str,
        side: str,
        price: float,
        size: float,
        order_type: str,
    ) -> dict[str, Any]:
        self._ensure_creds()

        side = side.upper()
        if side not in ("BUY", "SELL"):
            return {"status": "ERROR", "message": f"Invalid side: {side}"}
        if price <= 0 or price >= 1:
            return {"status": "ERROR", "message": "Invalid price"}
        if size <= 0:
            return {"status": "ERROR", "message": "Invalid size"}

        order_args = OrderArgs(
            token_id=token_id,
            price=price,
            size=size,
            side=side,
        )
        order = self._client.create_order(order_args)
        resolved_type = getattr(OrderType, order_type.upper(), OrderType.GTC)
        response = self._client.post_order(order, orderType=resolved_type)

        logger.info(
            "polymarket_order_posted",
            token_id=token_id,
            side=side,
            size=size,
            price=price,
            order_type=order_type,
        )
        return response if isinstance(response, dict) else {"response": response}

    async def place_limit_order(
        self,
        token_id: str,
        side: str,
        price: float,
        size: float,
        order_type: str = "GTC",
    ) -> OrderResult:
        """Place a resting limit order; ``size`` is in shares.

        Raises OrderPlacementError when the exchange rejects the order or the
        request fails.
        """
        try:
            raw = await asyncio.to_thread(
                self._place_order_sync, token_id, side, price, size, order_type)
        except Exception as e:
            logger.error("polymarket_order_failed", token_id=token_id, error=str(e))
            raise OrderPlacementError(str(e)) from e
        result = adapt_polymarket_response(raw)
        if not result.ok:
            raise OrderPlacementError(result.error or "order rejected")
        return result

    def _get_order_sync(self, order_id: str) -> Any:
        self._ensure_creds()
        try:
            return self._client.get_order(order_id)
        except Exception as exc:
            logger.warning("polymarket_get_order_failed", order_id=order_id[:16], error=str(exc))
            return None

    async def get_order(self, order_id: str) -> Optional[OrderStatus]:
        """Fetch a single order by ID (any status: LIVE, MATCHED, CANCELLED)."""
        raw = await asyncio.to_thread(self._get_order_sync, order_id)
        return adapt_order_status(order_id, raw)

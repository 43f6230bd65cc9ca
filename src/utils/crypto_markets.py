"""Slug helpers for Polymarket's recurring crypto up/down markets (15m).

Slugs look like ``btc-updown-15m-1771079400``: an asset prefix, the market
family, and the period start timestamp.
"""

from __future__ import annotations

from src.dual_limit.state import Asset

DURATION_TO_SLUG_SUFFIX: dict[int, str] = {300: "5m", 900: "15m"}

# Tried in order; Solana markets have been listed under both prefixes.
ASSET_SLUG_PREFIXES: dict[Asset, tuple[str, ...]] = {
    Asset.BTC: ("btc",),
    Asset.ETH: ("eth",),
    Asset.SOL: ("solana", "sol"),
    Asset.XRP: ("xrp",),
}

# Name used in the reserved dummy condition id of a disabled asset.
DUMMY_NAMES: dict[Asset, str] = {
    Asset.BTC: "btc",
    Asset.ETH: "eth",
    Asset.SOL: "solana",
    Asset.XRP: "xrp",
}


def build_slug(prefix: str, period_timestamp: int, slot_duration_sec: int = 900) -> str:
    suffix = DURATION_TO_SLUG_SUFFIX.get(slot_duration_sec, f"{slot_duration_sec // 60}m")
    return f"{prefix}-updown-{suffix}-{period_timestamp}"


def dummy_condition_id(asset: Asset) -> str:
    return f"dummy_{DUMMY_NAMES[asset]}_fallback"


def dummy_slug(asset: Asset) -> str:
    return f"{DUMMY_NAMES[asset]}-updown-15m-fallback"

#!/usr/bin/env python3
"""Dual limit-start bot for Polymarket 15-minute crypto Up/Down markets.

STRATEGY:
    At the open of every 15-minute period, rest a limit BUY on both the
    Up and Down token of BTC (and ETH/SOL/XRP when enabled) at a fixed
    price below $0.50 (default $0.45). One side always pays $1; if both
    fill, the pair costs $0.90 and returns $1.00. Filled positions are
    held to resolution.

USAGE:
    python -m scripts.run_dual_limit --simulation     # simulated fills, history.toml
    python -m scripts.run_dual_limit -c prod.json      # real orders
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional

import structlog

try:
    import uvloop
except ImportError:
    uvloop = None

from config.settings import DEFAULT_CONFIG_PATH, Settings, load_settings
from config.validators import validate_polymarket_credentials, validate_trading
from src.dual_limit.discovery import enabled_assets
from src.dual_limit.engine import DualLimitEngine
from src.dual_limit.history import HistoryLog
from src.dual_limit.sizing import Sizing
from src.exceptions import ConfigError, DiscoveryError
from src.feeds.polymarket import PolymarketClient
from src.utils.logging import configure_logging

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Dual limit-start bot for Polymarket 15-minute Up/Down markets")
    p.add_argument("--simulation", action="store_true",
                   help="Simulate fills from observed quotes (default: live trading)")
    p.add_argument("-c", "--config", default=DEFAULT_CONFIG_PATH,
                   help=f"JSON config file (default: {DEFAULT_CONFIG_PATH})")
    return p


def print_banner(settings: Settings, simulation: bool) -> None:
    trading = settings.trading
    assets = ", ".join(sorted(a.value for a in enabled_assets(trading)))
    mode = "SIMULATION" if simulation else "LIVE"
    print("=" * 60)
    print(f"  Dual Limit-Start Bot | mode: {mode}")
    print(f"  Limit price: ${trading.dual_limit_price}")
    print(f"  {Sizing(trading).describe()}")
    print(f"  Assets: {assets}")
    print("=" * 60, flush=True)


async def run(settings: Settings, simulation: bool) -> int:
    trading = settings.trading
    executor = None
    if not simulation:
        from src.execution.polymarket_executor import PolymarketExecutor
        executor = PolymarketExecutor.from_settings(settings.polymarket)

    history: Optional[HistoryLog] = None
    if simulation:
        history = HistoryLog(trading.history_file, trading.history_dir)

    engine = DualLimitEngine(
        client=PolymarketClient.from_settings(settings.polymarket),
        config=trading,
        executor=executor,
        history=history,
        simulation=simulation,
    )
    try:
        try:
            await engine.startup()
        except DiscoveryError as e:
            logger.error("startup_failed", error=str(e))
            return EXIT_FATAL
        await engine.run()
    finally:
        await engine.close()
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args.config)
        validate_trading(settings.trading)
    except ConfigError as e:
        configure_logging()
        logger.error("config_invalid", error=str(e))
        return EXIT_CONFIG

    configure_logging(settings.trading.history_file if args.simulation else None)
    if not args.simulation:
        try:
            validate_polymarket_credentials(settings.polymarket)
        except ConfigError as e:
            logger.error("config_invalid", error=str(e))
            return EXIT_CONFIG
    print_banner(settings, args.simulation)

    if uvloop is not None:
        uvloop.install()
    try:
        return asyncio.run(run(settings, args.simulation))
    except KeyboardInterrupt:
        logger.info("shutdown")
        return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

# src/dual_limit/history.py
"""Append-only trading history: ``history.toml`` plus one file per market.

Every record is ``[2026-01-01T00:00:00Z] message``. Per-market files live at
``history/market_{condition_id[:16]}_{period}.toml``; dummy markets only go
to the main file. Market files are opened per write, so no handle outlives a
record; the main file shares its writer with the structlog tee.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import structlog

from src.dual_limit.state import is_dummy_condition_id
from src.utils.logging import shared_append_file

logger = structlog.get_logger()


def _stamp(message: str) -> str:
    ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return f"[{ts}] {message}\n"


class HistoryLog:

    def __init__(self, main_path: str | Path = "history.toml",
                 market_dir: str | Path = "history") -> None:
        self.main_path = Path(main_path)
        self.market_dir = Path(market_dir)
        self.market_dir.mkdir(parents=True, exist_ok=True)
        self._main = shared_append_file(self.main_path)
        self._lock = asyncio.Lock()

    def market_path(self, condition_id: str, period_timestamp: int) -> Path:
        return self.market_dir / f"market_{condition_id[:16]}_{period_timestamp}.toml"

    def _append_market(self, condition_id: str, period_timestamp: int, line: str) -> None:
        if is_dummy_condition_id(condition_id):
            return
        path = self.market_path(condition_id, period_timestamp)
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as exc:
            logger.warning("market_history_write_failed", path=str(path), error=str(exc))

    async def log(self, message: str) -> None:
        async with self._lock:
            self._main.write(_stamp(message))

    async def log_market(self, condition_id: str, period_timestamp: int, message: str) -> None:
        """Write to the main log and the market's own file."""
        line = _stamp(message)
        async with self._lock:
            self._main.write(line)
            self._append_market(condition_id, period_timestamp, line)

    async def log_market_start(self, period_timestamp: int, condition_ids: dict[str, str]) -> None:
        """One MARKET START line in the main log, copied into each market file."""
        parts = " | ".join(f"{name}: {cid[:16]}" for name, cid in condition_ids.items())
        line = _stamp(f"NEW MARKET STARTED | Period: {period_timestamp} | {parts}")
        async with self._lock:
            self._main.write(line)
            for cid in condition_ids.values():
                self._append_market(cid, period_timestamp, line)

    async def log_market_end(self, name: str, period_timestamp: int, condition_id: str) -> None:
        await self.log_market(
            condition_id, period_timestamp,
            f"MARKET ENDED | Market: {name} | Period: {period_timestamp} "
            f"| Condition: {condition_id[:16]}")

    def close(self) -> None:
        self._main.close()

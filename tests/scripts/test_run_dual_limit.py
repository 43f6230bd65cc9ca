import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from scripts.run_dual_limit import EXIT_CONFIG, EXIT_FATAL, EXIT_OK, build_parser, main, run
from config.settings import Settings
from src.exceptions import MarketNotFoundError


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.simulation is False
    assert args.config == "config.json"


def test_parser_flags():
    args = build_parser().parse_args(["--simulation", "-c", "prod.json"])
    assert args.simulation is True
    assert args.config == "prod.json"


def test_invalid_config_exit_code(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"trading": {"dual_limit_price": 2}}))
    assert main(["-c", str(path)]) == EXIT_CONFIG


def test_live_without_key_exit_code(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"trading": {}}))
    with patch("scripts.run_dual_limit.print_banner"):
        assert main(["-c", str(path)]) == EXIT_CONFIG


@pytest.mark.asyncio
async def test_startup_failure_is_fatal(tmp_path):
    settings = Settings()
    settings.trading.history_file = str(tmp_path / "history.toml")
    settings.trading.history_dir = str(tmp_path / "history")
    with patch("scripts.run_dual_limit.PolymarketClient"), \
            patch("scripts.run_dual_limit.DualLimitEngine") as engine_cls:
        engine = engine_cls.return_value
        engine.startup = AsyncMock(side_effect=MarketNotFoundError("no btc"))
        engine.close = AsyncMock()
        assert await run(settings, simulation=True) == EXIT_FATAL
    engine.close.assert_awaited_once()
    engine.run.assert_not_called()


def _finish(coro):
    coro.close()
    return EXIT_OK


def test_main_installs_uvloop_before_running(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"trading": {
        "history_file": str(tmp_path / "history.toml"),
        "history_dir": str(tmp_path / "history")}}))
    fake_uvloop = MagicMock()
    with patch("scripts.run_dual_limit.uvloop", fake_uvloop), \
            patch("scripts.run_dual_limit.configure_logging"), \
            patch("scripts.run_dual_limit.print_banner"), \
            patch("scripts.run_dual_limit.asyncio.run", side_effect=_finish) as run_loop:
        assert main(["--simulation", "-c", str(path)]) == EXIT_OK
    fake_uvloop.install.assert_called_once()
    run_loop.assert_called_once()


def test_main_runs_without_uvloop(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"trading": {
        "history_file": str(tmp_path / "history.toml"),
        "history_dir": str(tmp_path / "history")}}))
    with patch("scripts.run_dual_limit.uvloop", None), \
            patch("scripts.run_dual_limit.configure_logging"), \
            patch("scripts.run_dual_limit.print_banner"), \
            patch("scripts.run_dual_limit.asyncio.run", side_effect=_finish):
        assert main(["--simulation", "-c", str(path)]) == EXIT_OK

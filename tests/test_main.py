"""
Tests for the interactive CLI (offline calculator and menu).
"""

import pytest
from unittest.mock import Mock, patch

import main
from config import load_settings
from lp_position.errors import ExcessiveTickDeviation


@pytest.fixture
def settings():
    return load_settings({})


class TestOfflineCalculator:

    def test_prints_aligned_ticks(self, settings, capsys):
        with patch("builtins.input", side_effect=["0", "3000", "500"]):
            main.offline_calculator(settings)

        out = capsys.readouterr().out
        assert "Ticks:              [-540, 480)" in out

    def test_defaults_on_empty_input(self, settings, capsys):
        with patch("builtins.input", side_effect=["", "", ""]):
            main.offline_calculator(settings)

        assert "[-540, 480)" in capsys.readouterr().out

    def test_rejected_deviation(self, settings, capsys):
        with patch("builtins.input", side_effect=["500", "3000", "500"]):
            main.offline_calculator(settings)

        assert "REJECTED: Tick deviation too high" in capsys.readouterr().out

    def test_reprompts_on_bad_input(self, settings, capsys):
        with patch("builtins.input", side_effect=["abc", "0", "1234", "500", "500"]):
            main.offline_calculator(settings)

        out = capsys.readouterr().out
        assert "Введите целое число" in out
        assert "Неизвестный fee tier" in out
        assert "[-520, 480)" in out


class TestMenu:

    def test_exit(self, capsys):
        with patch("main.load_settings", return_value=load_settings({})), \
                patch("builtins.input", side_effect=["4"]):
            main.main()

        assert capsys.readouterr().out.count("Выход") == 2

    def test_create_without_private_key(self, capsys):
        with patch("main.load_settings", return_value=load_settings({})), \
                patch("builtins.input", side_effect=["3"]):
            main.main()

        assert "PRIVATE_KEY not found" in capsys.readouterr().out

    def test_bad_config_exits(self):
        with patch("main.load_settings", side_effect=ValueError("Unknown chain_id: 7")):
            with pytest.raises(SystemExit):
                main.main()


class TestPoolPreview:
    """Ошибки чтения пула печатаются, а не роняют CLI."""

    def test_uninitialized_pool(self, settings, capsys):
        manager = Mock()
        manager.preview_position.side_effect = ValueError("Pool 0xpool is not initialized")

        with patch("main.build_manager", return_value=manager), \
                patch("builtins.input", side_effect=["0xpool", "500"]):
            main.preview_from_pool(settings)

        out = capsys.readouterr().out
        assert "ERROR: Pool 0xpool is not initialized" in out
        manager.preview_position.assert_called_once_with("0xpool", 500)

    def test_rejected_range(self, settings, capsys):
        manager = Mock()
        manager.preview_position.side_effect = ExcessiveTickDeviation(tick=900, max_deviation=200)

        with patch("main.build_manager", return_value=manager), \
                patch("builtins.input", side_effect=["0xpool", ""]):
            main.preview_from_pool(settings)

        assert "REJECTED: Tick deviation too high" in capsys.readouterr().out

    def test_create_stops_on_pool_error(self, capsys):
        settings = load_settings({"PRIVATE_KEY": "0x" + "11" * 32})
        manager = Mock()
        manager.preview_position.side_effect = ValueError("Pool 0xpool is not initialized")

        with patch("main.build_manager", return_value=manager), \
                patch("builtins.input", side_effect=["0xpool", "500", "1000", "1000"]):
            main.create_position_interactive(settings)

        assert "ERROR: Pool 0xpool is not initialized" in capsys.readouterr().out
        manager.create_liquidity_position.assert_not_called()

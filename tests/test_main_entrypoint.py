"""
Tests for main.py - Main Entry Point

Tests for:
- Logging configuration from logging_config.json
- Settings preflight (token and Lavalink node)
- Container and bot creation
- Exit codes on shutdown, crash and bad configuration
"""

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, mock_open, patch

import pytest
from pydantic import BaseModel, SecretStr, ValidationError

from newi_music_bot.domain.shared.messages import ErrorMessages
from newi_music_bot.main import (
    DEFAULT_LOGGING_CONFIG,
    EXIT_CONFIG_ERROR,
    EXIT_FAILURE,
    EXIT_OK,
    LOGGING_CONFIG_ENV,
    check_settings,
    cli,
    logging_config_path,
    main,
    setup_logging,
)


def _mock_settings(token: str = "test_token_123", host: str = "lava", password: str = "secret") -> MagicMock:
    mock_settings = MagicMock()
    mock_settings.discord.token = SecretStr(token)
    mock_settings.lavalink.host = host
    mock_settings.lavalink.password = SecretStr(password)
    mock_settings.lavalink.label = "node1"
    mock_settings.lavalink.rest_base_url = "http://lava:2333"
    mock_settings.log_level = "INFO"
    mock_settings.environment = "test"
    return mock_settings


def _validation_error() -> ValidationError:
    class _Strict(BaseModel):
        port: int

    try:
        _Strict(port="not a port")
    except ValidationError as e:
        return e
    raise AssertionError("expected a validation error")


# =============================================================================
# Logging
# =============================================================================


class TestLoggingSetup:
    def _make_valid_config(self) -> dict:
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "handlers": {},
            "loggers": {
                "discord": {"level": "WARNING"},
                "mafic": {"level": "WARNING"},
                "httpx": {"level": "WARNING"},
            },
            "root": {"level": "INFO", "handlers": []},
        }

    def test_dictconfig_called_when_json_exists(self):
        config = self._make_valid_config()
        with (
            patch("builtins.open", mock_open(read_data=json.dumps(config))),
            patch("logging.config.dictConfig") as mock_dc,
            patch("logging.basicConfig") as mock_bc,
        ):
            setup_logging(config_path=Path("logging.json"))

        mock_dc.assert_called_once_with(config)
        mock_bc.assert_not_called()

    def test_fallback_when_file_missing(self):
        with (
            patch("builtins.open", side_effect=FileNotFoundError),
            patch("logging.basicConfig") as mock_bc,
        ):
            setup_logging("WARNING", config_path=Path("missing.json"))

        mock_bc.assert_called_once()
        assert mock_bc.call_args[1]["level"] == logging.WARNING

    def test_fallback_when_json_malformed(self):
        with (
            patch("builtins.open", mock_open(read_data="{invalid json")),
            patch("logging.basicConfig") as mock_bc,
        ):
            setup_logging(config_path=Path("broken.json"))

        mock_bc.assert_called_once()

    def test_fallback_when_schema_rejected(self):
        with (
            patch("builtins.open", mock_open(read_data=json.dumps({"version": 99}))),
            patch("logging.config.dictConfig", side_effect=ValueError("bad version")),
            patch("logging.basicConfig") as mock_bc,
        ):
            setup_logging(config_path=Path("odd.json"))

        mock_bc.assert_called_once()

    def test_unknown_level_defaults_to_info(self):
        with (
            patch("builtins.open", side_effect=FileNotFoundError),
            patch("logging.basicConfig") as mock_bc,
        ):
            setup_logging("LOUD", config_path=Path("missing.json"))

        assert mock_bc.call_args[1]["level"] == logging.INFO

    def test_root_level_follows_settings(self):
        config = self._make_valid_config()
        with (
            patch("builtins.open", mock_open(read_data=json.dumps(config))),
            patch("logging.config.dictConfig"),
            patch("logging.getLogger") as mock_get_logger,
        ):
            mock_root = MagicMock()
            mock_get_logger.return_value = mock_root

            setup_logging("DEBUG", config_path=Path("logging.json"))

        mock_root.setLevel.assert_called_once_with(logging.DEBUG)

    def test_config_path_env_override(self, monkeypatch):
        monkeypatch.delenv(LOGGING_CONFIG_ENV, raising=False)
        assert logging_config_path() == DEFAULT_LOGGING_CONFIG

        monkeypatch.setenv(LOGGING_CONFIG_ENV, "/etc/newi/logging.json")
        assert logging_config_path() == Path("/etc/newi/logging.json")


# =============================================================================
# Preflight
# =============================================================================


class TestCheckSettings:
    def test_complete_settings_pass(self):
        assert check_settings(_mock_settings()) == []

    def test_every_problem_reported(self):
        problems = check_settings(_mock_settings(token="", host="  ", password=""))

        assert problems == [
            ErrorMessages.DISCORD_TOKEN_REQUIRED,
            ErrorMessages.LAVALINK_HOST_REQUIRED,
            ErrorMessages.LAVALINK_PASSWORD_REQUIRED,
        ]

    def test_real_defaults_only_miss_the_token(self, monkeypatch):
        from newi_music_bot.config.settings import Settings

        monkeypatch.delenv("DISCORD__TOKEN", raising=False)
        settings = Settings(_env_file=None)

        assert check_settings(settings) == [ErrorMessages.DISCORD_TOKEN_REQUIRED]


# =============================================================================
# main()
# =============================================================================


class TestMainFunction:
    @pytest.mark.parametrize(
        "overrides",
        [{"token": ""}, {"host": ""}, {"password": ""}],
    )
    def test_config_problems_stop_before_startup(self, overrides):
        with (
            patch("newi_music_bot.config.settings.get_settings", return_value=_mock_settings(**overrides)),
            patch("newi_music_bot.main.setup_logging"),
            patch("newi_music_bot.config.container.create_container") as mock_create_container,
        ):
            assert main() == EXIT_CONFIG_ERROR

        mock_create_container.assert_not_called()

    def test_invalid_settings_exit_with_config_error(self):
        with (
            patch("newi_music_bot.config.settings.get_settings", side_effect=_validation_error()),
            patch("newi_music_bot.main.setup_logging") as mock_setup,
            patch("newi_music_bot.config.container.create_container") as mock_create_container,
        ):
            assert main() == EXIT_CONFIG_ERROR

        mock_setup.assert_called_once_with()
        mock_create_container.assert_not_called()

    def test_main_successful_run(self):
        mock_settings = _mock_settings()
        mock_container = MagicMock()
        mock_bot = MagicMock()

        with (
            patch("newi_music_bot.config.settings.get_settings", return_value=mock_settings),
            patch("newi_music_bot.main.setup_logging") as mock_setup,
            patch(
                "newi_music_bot.config.container.create_container", return_value=mock_container
            ) as mock_create_container,
            patch(
                "newi_music_bot.infrastructure.discord.bot.create_bot", return_value=mock_bot
            ) as mock_create_bot,
        ):
            exit_code = main()

        assert exit_code == EXIT_OK
        mock_setup.assert_called_once_with("INFO")
        mock_create_container.assert_called_once_with(mock_settings)
        mock_create_bot.assert_called_once_with(mock_container, mock_settings)
        mock_bot.run_with_graceful_shutdown.assert_called_once_with("test_token_123")

    @pytest.mark.parametrize(
        ("error", "expected"),
        [(KeyboardInterrupt(), EXIT_OK), (RuntimeError("Bot crashed!"), EXIT_FAILURE)],
    )
    def test_main_exit_codes(self, error, expected):
        mock_bot = MagicMock()
        mock_bot.run_with_graceful_shutdown.side_effect = error

        with (
            patch("newi_music_bot.config.settings.get_settings", return_value=_mock_settings()),
            patch("newi_music_bot.main.setup_logging"),
            patch("newi_music_bot.config.container.create_container"),
            patch("newi_music_bot.infrastructure.discord.bot.create_bot", return_value=mock_bot),
        ):
            assert main() == expected

    def test_cli_exits_with_main_code(self):
        with patch("newi_music_bot.main.main", return_value=3), pytest.raises(SystemExit) as exc_info:
            cli()

        assert exc_info.value.code == 3

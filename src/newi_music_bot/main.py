#!/usr/bin/env python3
"""Console entry point: load settings, configure logging, check the config, run the bot.

Exit codes: 0 after a clean shutdown, 1 when the bot crashes, 2 when the
configuration is unusable and the bot never starts.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from newi_music_bot.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from newi_music_bot.config.settings import Settings
    from newi_music_bot.infrastructure.discord.bot import MusicBot

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2

DEFAULT_LOGGING_CONFIG = Path(__file__).resolve().parents[2] / "logging_config.json"
LOGGING_CONFIG_ENV = "NEWI_LOGGING_CONFIG"
FALLBACK_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

logger = logging.getLogger(__name__)


def logging_config_path() -> Path:
    override = os.environ.get(LOGGING_CONFIG_ENV)
    return Path(override) if override else DEFAULT_LOGGING_CONFIG


def _read_logging_config(path: Path) -> dict[str, Any] | None:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError):
        return None


def setup_logging(log_level: str = "INFO", config_path: Path | None = None) -> None:
    """Apply the dictConfig file, or a plain console format when it is unusable.

    ``log_level`` always wins over the root level in the file.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    path = config_path or logging_config_path()
    config = _read_logging_config(path)
    applied = False
    if config is not None:
        try:
            logging.config.dictConfig(config)
            applied = True
        except (ValueError, TypeError, AttributeError, ImportError):
            applied = False

    if not applied:
        logging.basicConfig(level=level, format=FALLBACK_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        logger.warning(LogTemplates.LOGGING_CONFIG_FALLBACK, path)

    logging.getLogger().setLevel(level)


def check_settings(settings: Settings) -> list[str]:
    """Problems that keep the bot from ever playing audio. Empty when it may start."""
    problems = []
    if not settings.discord.token.get_secret_value():
        problems.append(ErrorMessages.DISCORD_TOKEN_REQUIRED)
    if not settings.lavalink.host.strip():
        problems.append(ErrorMessages.LAVALINK_HOST_REQUIRED)
    if not settings.lavalink.password.get_secret_value():
        problems.append(ErrorMessages.LAVALINK_PASSWORD_REQUIRED)
    return problems


def run(bot: MusicBot, token: str) -> int:
    try:
        logger.info(LogTemplates.BOT_STARTING_RUN)
        bot.run_with_graceful_shutdown(token)
    except KeyboardInterrupt:
        logger.info(LogTemplates.BOT_KEYBOARD_INTERRUPT)
    except Exception as e:
        logger.exception(LogTemplates.BOT_FATAL_ERROR, e)
        return EXIT_FAILURE
    logger.info(LogTemplates.BOT_STOPPED)
    return EXIT_OK


def main() -> int:
    from newi_music_bot.config.settings import get_settings

    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        logger.error(LogTemplates.SETTINGS_INVALID, e)
        return EXIT_CONFIG_ERROR

    setup_logging(settings.log_level)

    problems = check_settings(settings)
    if problems:
        for problem in problems:
            logger.error(problem)
        return EXIT_CONFIG_ERROR

    logger.info(LogTemplates.BOT_STARTING.format(environment=settings.environment))
    logger.info(LogTemplates.BOT_LAVALINK_TARGET, settings.lavalink.label, settings.lavalink.rest_base_url)

    from newi_music_bot.config.container import create_container
    from newi_music_bot.infrastructure.discord.bot import create_bot

    bot = create_bot(create_container(settings), settings)
    return run(bot, settings.discord.token.get_secret_value())


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover

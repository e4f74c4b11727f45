#!/usr/bin/env python3
"""Process entry point: logging, startup checks, container and bot wiring."""

from __future__ import annotations

import json
import logging
import logging.config
import shutil
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from discord_audio_queue.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from discord_audio_queue.config.settings import Settings

_LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"
_FALLBACK_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "INFO") -> None:
    """Load logging_config.json via dictConfig, or fall back to basicConfig."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    try:
        with open(_LOGGING_CONFIG_PATH) as f:
            logging.config.dictConfig(json.load(f))
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        logging.basicConfig(level=level, format=_FALLBACK_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        logging.warning("Could not load %s, falling back to basic config", _LOGGING_CONFIG_PATH)

    logging.getLogger().setLevel(level)


def resolver_chain(settings: Settings) -> list[str]:
    """Names of the resolver stages that will be tried, in order."""
    chain = []
    if settings.resolver.cobalt_enabled:
        chain.append("cobalt")
    chain.append("yt-dlp")
    chain.append(str(settings.resolver.alternate_search_prefix))
    return chain


def preflight(settings: Settings) -> bool:
    """Check what the bot needs before connecting. Returns False when startup must stop."""
    if not settings.discord.token.get_secret_value():
        logger.error(ErrorMessages.DISCORD_TOKEN_REQUIRED)
        return False

    if shutil.which("ffmpeg") is None:
        logger.warning(LogTemplates.BOT_FFMPEG_MISSING)

    logger.info(LogTemplates.BOT_RESOLVER_CHAIN, " -> ".join(resolver_chain(settings)))
    return True


def main() -> int:
    from discord_audio_queue.config.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)

    if not preflight(settings):
        return 1

    logger.info(LogTemplates.BOT_STARTING, settings.environment)

    from discord_audio_queue.config.container import create_container
    from discord_audio_queue.infrastructure.discord.bot import create_bot

    bot = create_bot(create_container(settings), settings)

    try:
        bot.run_with_graceful_shutdown(settings.discord.token.get_secret_value())
    except KeyboardInterrupt:
        logger.info(LogTemplates.BOT_KEYBOARD_INTERRUPT)
        return 0
    except Exception as e:
        logger.exception(LogTemplates.BOT_FATAL_ERROR, e)
        return 1

    logger.info(LogTemplates.BOT_STOPPED)
    return 0


def cli() -> None:
    """Console script entry point (pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover

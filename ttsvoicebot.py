"""Discord text-to-speech voice bot.

Reads chat messages of a chosen text channel aloud in the author's voice channel,
using OpenAI speech synthesis. Settings come from ttsvoicebot.ini, secrets from the
environment (optionally a .env file next to this script).
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Final, NoReturn

import discord

from config.environment import EnvironmentConfigError, load_secrets
from config.loader import Config, ConfigLoader, ConfigLoaderError
from core.bot import Bot
from core.preferences import normalize_voice
from core.version import VERSION
from utils.file_utils import FileUtils
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

CFG_FILE: Final[str] = "ttsvoicebot.ini"
ENV_FILE: Final[str] = ".env"


def check_python_version() -> None:
    """Check if Python version is 3.13 or later.

    Raises:
        RuntimeError: If Python version is below 3.13.
    """
    if sys.version_info < (3, 13):
        msg = "Python 3.13 or later is required"
        raise RuntimeError(msg)


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        print(f"\n{message}\n", file=sys.stderr)
        self.print_help(sys.stderr)
        raise SystemExit(2)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = _ArgumentParser(
        description="Discord text-to-speech voice bot",
        epilog="Example: python ttsvoicebot.py --debug --voice-file voice.txt",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--voice-file", dest="voice_file", metavar="PATH", help="Override the voice preference file")
    parser.add_argument("--config", dest="config", metavar="PATH", default=CFG_FILE, help="Configuration file")
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    """Load the configuration file, apply CLI overrides and read the secrets.

    Raises:
        ConfigLoaderError: If the configuration file or the environment is invalid.
    """
    script_name: str = Path(sys.argv[0]).stem
    overrides: dict[str, object] = {"debug": args.debug, "voice_file": args.voice_file}
    config: Config = ConfigLoader(config_filename=args.config, script_name=script_name, **overrides).config
    config.GENERAL.VERSION = VERSION

    # TTS_VOICE in the environment overrides the configured default voice
    env_voice: str | None = os.getenv("TTS_VOICE")
    if env_voice:
        config.TTS.DEFAULT_VOICE = normalize_voice(env_voice, config.TTS.DEFAULT_VOICE)

    config.SECRETS = load_secrets(env_file=FileUtils.resolve_path(ENV_FILE))
    return config


def setup_logging(config: Config) -> logging.Logger:
    log_file: str = str(FileUtils.resolve_path(config.GENERAL.LOG_FILE)) if config.GENERAL.LOG_FILE else ""
    logger_utils: LoggerUtils = LoggerUtils(log_file)
    logger_utils.set_level("DEBUG" if config.GENERAL.DEBUG else "INFO")
    return LoggerUtils.get_logger(__name__)


async def main() -> None:
    check_python_version()
    args: argparse.Namespace = parse_arguments()
    try:
        config: Config = load_config(args)
    except EnvironmentConfigError as err:
        print(f"\nError: {err}", file=sys.stderr)
        raise SystemExit(1) from err
    except ConfigLoaderError as err:
        print("\nError: Failed to load configuration file.", file=sys.stderr)
        print(f"Details: {err}", file=sys.stderr)
        raise SystemExit(1) from err

    logger: logging.Logger = setup_logging(config)
    logger.info("%s ver.%s starting", config.GENERAL.SCRIPT_NAME, config.GENERAL.VERSION)

    bot: Bot = Bot(config)
    try:
        async with bot:
            await bot.start(config.SECRETS.DISCORD_TOKEN)
    except discord.LoginFailure as err:
        logger.critical("Failed to log in: %s", err)
        print(f"\nError: Failed to log in to Discord: {err}", file=sys.stderr)
        raise SystemExit(1) from err
    finally:
        logger.info("%s stopped", config.GENERAL.SCRIPT_NAME)


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutting down.", file=sys.stderr)


if __name__ == "__main__":
    run()

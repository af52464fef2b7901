"""Secret loading from the process environment.

Tokens and API keys never live in the INI file. They are read from the environment,
optionally seeded from a ``.env`` file next to the script.
"""

from __future__ import annotations

import os
from dataclasses import fields
from typing import TYPE_CHECKING, Final

from dotenv import load_dotenv

from config.loader import ConfigLoaderError
from models.config_models import Secrets
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Mapping
    from pathlib import Path

__all__: list[str] = ["REQUIRED_ENV", "EnvironmentConfigError", "load_secrets"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

REQUIRED_ENV: Final[tuple[str, ...]] = tuple(f.name for f in fields(Secrets))


class EnvironmentConfigError(ConfigLoaderError):
    """One or more required environment variables are missing."""

    def __init__(self, missing: list[str]) -> None:
        self.missing: list[str] = missing
        super().__init__(f"Missing environment variables: {', '.join(missing)}")


def load_secrets(env_file: str | Path | None = None, environ: Mapping[str, str] | None = None) -> Secrets:
    """Collect the required secrets.

    Args:
        env_file (str | Path | None): ``.env`` file to merge into ``os.environ`` first.
            Existing environment variables take precedence.
        environ (Mapping[str, str] | None): Source mapping; defaults to ``os.environ``.

    Returns:
        Secrets: Populated secrets.

    Raises:
        EnvironmentConfigError: If any required variable is missing or blank.
    """
    if environ is None:
        if env_file is not None:
            loaded: bool = load_dotenv(env_file, override=False)
            logger.debug("Environment file '%s' loaded: %s", env_file, loaded)
        environ = os.environ

    missing: list[str] = [key for key in REQUIRED_ENV if not environ.get(key, "").strip()]
    if missing:
        raise EnvironmentConfigError(missing)

    return Secrets(**{key: environ[key].strip() for key in REQUIRED_ENV})

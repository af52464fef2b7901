"""Configuration loading and validation for the voice bot.

This package loads and validates settings from the ttsvoicebot.ini file
and collects secrets from the environment.
"""

from config.environment import REQUIRED_ENV, EnvironmentConfigError, load_secrets
from config.loader import (
    ConfigFileNotFoundError,
    ConfigFormatError,
    ConfigLoader,
    ConfigLoaderError,
    ConfigTypeError,
    ConfigValueError,
)

__all__: list[str] = [
    "REQUIRED_ENV",
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ConfigLoader",
    "ConfigLoaderError",
    "ConfigTypeError",
    "ConfigValueError",
    "EnvironmentConfigError",
    "load_secrets",
]

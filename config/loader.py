"""Configuration file loader and validator.

Handles reading, formatting, and validating settings from the INI configuration file.
Raises exceptions for any issues encountered during loading.
"""

from __future__ import annotations

import ast
import configparser
from configparser import ConfigParser
from dataclasses import fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

from models.config_models import Config
from models.re_models import SERVER_URL_PATTERN
from models.voice_models import ALLOWED_VOICES
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable
    from dataclasses import Field as DataclassField
else:
    from dataclasses import Field as DataclassField

__all__: list[str] = [
    "Config",
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ConfigLoader",
    "ConfigLoaderError",
    "ConfigTypeError",
    "ConfigValueError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

ALLOWED_AUDIO_FORMATS: list[str] = ["opus", "mp3", "aac", "flac", "wav", "pcm"]

# Sections that are not read from the INI file.
_NON_INI_SECTIONS: frozenset[str] = frozenset({"SECRETS"})


class ConfigLoaderError(Exception):
    """An error occurred while processing the configuration file."""


class ConfigFileNotFoundError(ConfigLoaderError):
    """The specified configuration file does not exist."""


class ConfigFormatError(ConfigLoaderError):
    """The configuration file is not formatted correctly."""


class ConfigValueError(ConfigFormatError):
    """The configuration file contains an invalid value."""


class ConfigTypeError(ConfigFormatError):
    """The configuration file contains an invalid type."""


class ConfigLoader:
    """Handles loading and validation of configuration settings.

    Args:
        config_filename (str): INI file name to load.
        script_name (str): Executing script name, used in error messaging.
        debug (bool): Optional override enabling debug logging.
        voice_file (str | None): Optional override for the voice preference file.

    Raises:
        ConfigFileNotFoundError: If the configuration file does not exist.
        ConfigFormatError: If the file cannot be parsed or contains invalid values/types.
    """

    def __init__(
        self,
        *,
        config_filename: str,
        script_name: str,
        **args,
    ) -> None:
        config_path = Path(config_filename)
        msg: str
        if not config_path.exists():
            msg = (
                f"Configuration file '{config_filename}' not found. "
                f"Please create '{config_filename}' in the same directory as '{script_name}'."
            )
            raise ConfigFileNotFoundError(msg)

        parser: ConfigParser = ConfigParser()

        try:
            parser.read(config_filename, encoding="utf-8")
        except configparser.Error as err:
            msg = f"Failed to parse configuration file '{config_filename}': {err}"
            raise ConfigFormatError(msg) from None

        self.config = Config()
        self.config.GENERAL.SCRIPT_NAME = script_name
        self._convert_settings(parser)

        # Command-line overrides
        if args.get("debug", False):
            self.config.GENERAL.DEBUG = True
        if args.get("voice_file") is not None:
            self.config.PREFERENCES.VOICE_FILE = args["voice_file"]
        self._validate_settings()

    def _convert_settings(self, parser: ConfigParser) -> None:
        """Copy every known INI key into the matching Config attribute.

        Raises:
            ConfigFormatError: If a value cannot be parsed or coerced to the expected type.
        """
        formatter = _ConfigFormatter(self.config, parser)
        for section in fields(self.config):
            if section.name in _NON_INI_SECTIONS:
                continue
            if not parser.has_section(section.name):
                logger.debug("Section '%s' not present, using defaults", section.name)
                continue
            self._convert_section_field(parser, formatter, section)

    def _convert_section_field(
        self, parser: ConfigParser, formatter: _ConfigFormatter, section: DataclassField[Any]
    ) -> None:
        for key in fields(getattr(self.config, section.name)):
            if not parser.has_option(section.name, key.name):
                logger.debug("Skipping undefined setting: '%s.%s'", section.name, key.name)
                continue

            formatted_value = formatter.apply_format(section, key)
            setattr(getattr(self.config, section.name), key.name, formatted_value)

    def _validate_settings(self) -> None:
        """Validate voice, format and timeout settings.

        Raises:
            ConfigFormatError: If validation fails for any setting.
        """
        self._validate_default_voice()
        self._validate_server()
        self._inspect_defined_item("TTS", "FORMAT", ALLOWED_AUDIO_FORMATS)
        self._validate_timeouts()

    def _validate_default_voice(self) -> None:
        value: str = str(self.config.TTS.DEFAULT_VOICE).strip().lower()
        if value not in ALLOWED_VOICES:
            msg = f"Unsupported voice used for 'TTS.DEFAULT_VOICE': {self.config.TTS.DEFAULT_VOICE}"
            raise ConfigValueError(msg)
        self.config.TTS.DEFAULT_VOICE = value

    def _validate_server(self) -> None:
        value: str = str(self.config.TTS.SERVER).strip().rstrip("/")
        if not SERVER_URL_PATTERN.match(value):
            msg = f"Invalid URL used for 'TTS.SERVER': {self.config.TTS.SERVER}"
            raise ConfigValueError(msg)
        self.config.TTS.SERVER = value

    def _inspect_defined_item(self, section_name: str, key_name: str, defined_list: list[str]) -> None:
        """Warn about values outside the known options; the provider may still accept them.

        Raises:
            ConfigTypeError: If the configured value is not a str.
        """
        value: Any = getattr(getattr(self.config, section_name), key_name)
        field_name: str = f"{section_name}.{key_name}"

        if not isinstance(value, str):
            msg: str = f"Unsupported type used for '{field_name}': {type(value)}"
            raise ConfigTypeError(msg)
        if value not in defined_list:
            logger.warning("Unknown value '%s' is set for '%s'", value, field_name)

    def _validate_timeouts(self) -> None:
        """Every bound must be positive and the playback clamp must be ordered.

        Raises:
            ConfigValueError: If a bound is not positive or the clamp is inverted.
        """
        voice = self.config.VOICE
        for name in (
            "READY_TIMEOUT",
            "RECOVERY_WINDOW",
            "START_TIMEOUT",
            "MIN_PLAYBACK",
            "MAX_PLAYBACK",
            "PLAYBACK_PER_CHAR",
            "MONITOR_INTERVAL",
        ):
            if getattr(voice, name) <= 0:
                msg = f"'VOICE.{name}' must be greater than zero: {getattr(voice, name)}"
                raise ConfigValueError(msg)

        if voice.MIN_PLAYBACK > voice.MAX_PLAYBACK:
            msg = f"'VOICE.MIN_PLAYBACK' ({voice.MIN_PLAYBACK}) exceeds 'VOICE.MAX_PLAYBACK' ({voice.MAX_PLAYBACK})"
            raise ConfigValueError(msg)

        if voice.MAX_PENDING < 0:
            msg = f"'VOICE.MAX_PENDING' must not be negative: {voice.MAX_PENDING}"
            raise ConfigValueError(msg)

        if self.config.TTS.TIMEOUT <= 0:
            msg = f"'TTS.TIMEOUT' must be greater than zero: {self.config.TTS.TIMEOUT}"
            raise ConfigValueError(msg)


class _ConfigFormatter:
    """Converts INI string values to typed Python objects (bool, int, float, str, literals)."""

    def __init__(self, config: Config, parser: ConfigParser) -> None:
        self.config: Config = config
        self.parser: ConfigParser = parser

    def apply_format(self, section: DataclassField[Any], key: DataclassField[Any]) -> Any:
        """Convert an INI value to the type of the current Config field value.

        Raises:
            ConfigValueError: If a value cannot be coerced to the expected type.
            ConfigFormatError: If literal evaluation fails due to invalid syntax.
            ConfigTypeError: If an unexpected type is encountered during coercion.
        """
        formatters: dict[type, Callable[[DataclassField[Any], DataclassField[Any]], bool | int | float | str]] = {
            bool: self.parse_as_boolean,
            int: self.parse_as_integer,
            float: self.parse_as_float,
            str: self.parse_as_string,
        }

        formatter = formatters.get(type(getattr(getattr(self.config, section.name), key.name)))
        if formatter:
            try:
                return formatter(section, key)
            except ValueError as err:
                msg = f"Invalid value for {section.name}.{key.name}: {err}"
                raise ConfigValueError(msg) from err
            except TypeError as err:
                msg = f"Invalid value for {section.name}.{key.name}: {err}"
                raise ConfigTypeError(msg) from err

        value_str: str = self.parser[section.name][key.name]
        try:
            return ast.literal_eval(value_str)
        except ValueError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigValueError(msg) from err
        except SyntaxError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigFormatError(msg) from err

    def _stripped(self, section: DataclassField[Any], key: DataclassField[Any]) -> str:
        value: str = self.parser.get(section.name, key.name).strip()
        for char in ("'", '"', "%"):
            value = value.removeprefix(char).removesuffix(char)
        return value

    def parse_as_float(self, section: DataclassField[Any], key: DataclassField[Any]) -> float:
        return float(self._stripped(section, key))

    def parse_as_integer(self, section: DataclassField[Any], key: DataclassField[Any]) -> int:
        return int(float(self._stripped(section, key)))

    def parse_as_string(self, section: DataclassField[Any], key: DataclassField[Any]) -> str:
        return self._stripped(section, key)

    def parse_as_boolean(self, section: DataclassField[Any], key: DataclassField[Any]) -> bool:
        return self.parser.getboolean(section.name, key.name)

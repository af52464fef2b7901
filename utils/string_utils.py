from __future__ import annotations

from typing import TYPE_CHECKING, Final

from models.re_models import REPEAT_PATTERN

if TYPE_CHECKING:
    from re import Match, Pattern

__all__: list[str] = ["StringUtils"]

MAX_REPEAT: Final[int] = 4
PREVIEW_LENGTH: Final[int] = 30


class StringUtils:
    """Utility class for string manipulation and processing.

    Provides static methods for the small text transformations applied to chat
    messages before they are spoken.
    """

    @staticmethod
    def ensure_str(value: str | None) -> str:
        """Ensure that the value is a string, returning an empty string if None.

        Args:
            value (str | None): The value to ensure as a string.

        Returns:
            str: The value as a string, or empty string if None.
        """
        if not isinstance(value, str):
            value = str(value) if value is not None else ""
        return value

    @staticmethod
    def compress_blanks(value: str) -> str:
        """Compress consecutive whitespace into single spaces and trim both ends."""
        value = StringUtils.ensure_str(value)
        return " ".join(value.split())

    @staticmethod
    def limit_repeats(value: str, limit: int = MAX_REPEAT) -> str:
        """Cut every run of one character longer than ``limit`` down to ``limit``.

        Args:
            value (str): The string to process.
            limit (int): Maximum run length kept.

        Returns:
            str: The string with long runs shortened.
        """
        value = StringUtils.ensure_str(value)
        if limit < 1:
            msg = f"limit must be positive: {limit}"
            raise ValueError(msg)
        return REPEAT_PATTERN.sub(lambda m: m.group(1) * min(len(m.group(0)), limit), value)

    @staticmethod
    def expand_run(value: str, pattern: Pattern[str], replacement: str) -> str:
        """Replace each character of every ``pattern`` match with ``replacement``.

        Example:
            expand_run("ㄴㄴ", NIEUN_RUN_PATTERN, "노") -> "노노"
        """
        value = StringUtils.ensure_str(value)

        def _expand(match: Match[str]) -> str:
            return replacement * len(match.group(0))

        return pattern.sub(_expand, value)

    @staticmethod
    def preview(value: str, length: int = PREVIEW_LENGTH) -> str:
        """Shorten ``value`` for log messages."""
        value = StringUtils.ensure_str(value)
        return value if len(value) <= length else f"{value[:length]}..."

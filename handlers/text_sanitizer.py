"""Normalizes Korean chat text into something pleasant to hear.

Rules, applied in order:
1. Surrounding whitespace is trimmed.
2. A message starting with a link is replaced by a fixed notice.
3. Common consonant abbreviations are spelled out.
4. Runs of ㄴ / ㅇ become 노 / 응 per character.
5. Any character repeated five times or more is cut to four.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from models.re_models import IEUNG_RUN_PATTERN, LINK_PATTERN, NIEUN_RUN_PATTERN
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging

__all__: list[str] = ["ABBREVIATIONS", "LINK_NOTICE", "TextSanitizer"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

LINK_NOTICE: Final[str] = "링크를 첨부했어요."

# applied in order
ABBREVIATIONS: Final[tuple[tuple[str, str], ...]] = (
    ("ㄱㅊ", "괜춘"),
    ("ㅇㅎ", "아하"),
    ("ㅅㅂ", "쉬발"),
    ("ㅆㅃ", "씨빨"),
    ("ㅆㅂ", "쒸발"),
    ("ㅈㄹ", "지랄"),
)


class TextSanitizer:
    """Stateless text normalizer for chat messages."""

    @staticmethod
    def sanitize(text: str | None) -> str:
        """Return the spoken form of ``text``; an empty string means nothing to say."""
        value: str = StringUtils.ensure_str(text).strip()
        if not value:
            return ""
        if LINK_PATTERN.match(value):
            return LINK_NOTICE

        for abbreviation, spelled in ABBREVIATIONS:
            value = value.replace(abbreviation, spelled)

        value = StringUtils.expand_run(value, NIEUN_RUN_PATTERN, "노")
        value = StringUtils.expand_run(value, IEUNG_RUN_PATTERN, "응")
        value = StringUtils.limit_repeats(value)
        logger.debug("Sanitized %r -> %r", StringUtils.preview(text or ""), StringUtils.preview(value))
        return value

"""Regular expressions for chat text handling.

Patterns for links, direct-speak commands, jamo runs and repeated characters.
"""

from __future__ import annotations

import re
from re import Pattern
from typing import Final

__all__: list[str] = [
    "DIRECT_SPEAK_PREFIX",
    "IEUNG_RUN_PATTERN",
    "LINK_PATTERN",
    "NIEUN_RUN_PATTERN",
    "REPEAT_PATTERN",
    "SERVER_URL_PATTERN",
]

# Prefix of a chat message that is spoken and then deleted
# Example: "/d 안녕하세요"
DIRECT_SPEAK_PREFIX: Final[str] = "/d"

# A message starting with a link is read as a fixed notice instead of the URL
# Examples: "http://example.com", "https://www.example.com/path", "httpbin"
LINK_PATTERN: Final[Pattern[str]] = re.compile(r"^http")

# Runs of bare consonants used as chat laughter/agreement
# Example: "ㄴㄴ" -> "노노", "ㅇㅇㅇ" -> "응응응"
NIEUN_RUN_PATTERN: Final[Pattern[str]] = re.compile(r"ㄴ+")
IEUNG_RUN_PATTERN: Final[Pattern[str]] = re.compile(r"ㅇ+")

# Any character except a newline repeated five times or more
# Example: "ㅋㅋㅋㅋㅋㅋ" (6) -> "ㅋㅋㅋㅋ" (4)
REPEAT_PATTERN: Final[Pattern[str]] = re.compile(r"(.)\1{4,}")

# Base URL of an HTTP(S) API server
# Example: "https://api.openai.com/v1"
SERVER_URL_PATTERN: Final[Pattern[str]] = re.compile(r"^https?://[^\s/?#]+(?:/[^\s?#]*)?$")

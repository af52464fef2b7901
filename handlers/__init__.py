"""Message and stream handling utilities for the voice bot.

This package provides chat text sanitization, audio stream probing and
asynchronous HTTP communication.
"""

from handlers.async_comm import AsyncCommError, AsyncCommInvalidContentTypeError, AsyncCommTimeoutError, AsyncHttp
from handlers.audio_probe import probe_stream
from handlers.text_sanitizer import TextSanitizer

__all__: list[str] = [
    "AsyncCommError",
    "AsyncCommInvalidContentTypeError",
    "AsyncCommTimeoutError",
    "AsyncHttp",
    "TextSanitizer",
    "probe_stream",
]

"""Detect the container and codec of a synthesized audio stream from its header.

Opus in Ogg or WebM can be sent to the voice gateway without re-encoding; anything
else has to be decoded first. Only the first few kilobytes are inspected.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from models.voice_models import StreamType
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

__all__: list[str] = ["probe_stream"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

PROBE_SIZE: Final[int] = 4096

OGG_MAGIC: Final[bytes] = b"OggS"
OPUS_HEAD: Final[bytes] = b"OpusHead"
EBML_MAGIC: Final[bytes] = b"\x1a\x45\xdf\xa3"
EBML_DOCTYPES: Final[tuple[bytes, ...]] = (b"webm", b"matroska")
MATROSKA_OPUS_CODEC: Final[bytes] = b"A_OPUS"


def probe_stream(data: bytes) -> StreamType:
    """Classify ``data`` as Ogg/Opus, WebM/Opus or arbitrary audio.

    Args:
        data (bytes): Encoded audio, at least its beginning.

    Returns:
        StreamType: The detected type; ARBITRARY when nothing matches.
    """
    head: bytes = data[:PROBE_SIZE]
    stream_type: StreamType = StreamType.ARBITRARY
    if head.startswith(OGG_MAGIC) and OPUS_HEAD in head:
        stream_type = StreamType.OGG_OPUS
    elif (
        head.startswith(EBML_MAGIC)
        and any(doctype in head[:64] for doctype in EBML_DOCTYPES)
        and MATROSKA_OPUS_CODEC in head
    ):
        stream_type = StreamType.WEBM_OPUS
    logger.debug("Probed %d byte(s): %s", len(data), stream_type)
    return stream_type

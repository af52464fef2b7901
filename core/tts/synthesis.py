"""Speech synthesis through the OpenAI ``/audio/speech`` endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from core.voice.errors import SynthesisFailedError
from core.voice.interface import SpeechSynthesizer
from handlers.async_comm import AsyncCommError, AsyncHttp
from handlers.audio_probe import probe_stream
from models.voice_models import AudioResource, SpeechRequest, StreamType
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.config_models import TTS

__all__: list[str] = ["AUDIO_CONTENT_TYPES", "OpenAISpeechSynthesizer"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

# Bodies returned by the endpoint for the supported response formats
AUDIO_CONTENT_TYPES: Final[tuple[str, ...]] = (
    "audio/ogg",
    "audio/opus",
    "audio/webm",
    "audio/mpeg",
    "audio/aac",
    "audio/flac",
    "audio/wav",
    "audio/pcm",
    "application/octet-stream",
)


class OpenAISpeechSynthesizer(SpeechSynthesizer):
    """Synthesizes speech with OpenAI's text-to-speech models.

    Each call is one POST; nothing is retried and nothing is cached. The returned bytes
    are probed so the player knows whether they can be passed through as Opus.

    Args:
        settings (TTS): Endpoint, model, response format and request timeout.
        api_key (str): OpenAI API key.
        http (AsyncHttp | None): Shared HTTP client; one is created if omitted.
    """

    def __init__(self, settings: TTS, api_key: str, http: AsyncHttp | None = None) -> None:
        self.settings: TTS = settings
        self.http: AsyncHttp = http or AsyncHttp(headers={"Authorization": f"Bearer {api_key}"})
        for content_type in AUDIO_CONTENT_TYPES:
            self.http.add_handler(content_type, bytes)
        self.http.list_handlers()

    @property
    def url(self) -> str:
        return f"{self.settings.SERVER.rstrip('/')}/audio/speech"

    async def synthesize(self, text: str, voice: str) -> AudioResource:
        request: SpeechRequest = SpeechRequest(
            model=self.settings.MODEL,
            voice=voice,
            input=text,
            response_format=self.settings.FORMAT,
        )
        logger.debug("Synthesizing %d character(s) with voice '%s'", len(text), voice)
        try:
            body: object = await self.http.post(
                url=self.url,
                data=request.to_payload(),
                total_timeout=self.settings.TIMEOUT,
            )
        except AsyncCommError as err:
            msg = f"Speech request failed: {err}"
            raise SynthesisFailedError(msg) from err

        if not isinstance(body, bytes) or not body:
            msg = f"Speech provider returned no audio (got {type(body).__name__})"
            raise SynthesisFailedError(msg)

        stream_type: StreamType = probe_stream(body)
        logger.info("Synthesized %d byte(s) of %s for voice '%s'", len(body), stream_type, voice)
        return AudioResource(data=body, stream_type=stream_type, text=text)

    async def close(self) -> None:
        await self.http.close()

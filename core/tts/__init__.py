"""Text-to-speech synthesis.

This package provides the speech synthesis adapter used by the voice playback core.
"""

from core.tts.synthesis import AUDIO_CONTENT_TYPES, OpenAISpeechSynthesizer

__all__: list[str] = ["AUDIO_CONTENT_TYPES", "OpenAISpeechSynthesizer"]

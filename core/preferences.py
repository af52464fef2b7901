"""Per-user voice preferences.

Every user speaks with one voice from the allowed set. A user without a preference
is given the voice currently used by the fewest users, so voices stay spread out.
Preferences are kept in a plain text file, one ``user_id:voice`` per line.
"""

from __future__ import annotations

import asyncio
import random
from collections import Counter
from typing import TYPE_CHECKING

from core.voice.background import spawn
from models.voice_models import ALLOWED_VOICES, DEFAULT_VOICE
from utils.file_utils import FileUtils, FileUtilsError
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from pathlib import Path

__all__: list[str] = ["VoicePreferenceStore", "normalize_voice"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


def normalize_voice(value: str | None, default: str = DEFAULT_VOICE) -> str:
    """Lowercase and trim ``value``; anything outside the allowed set becomes ``default``."""
    if not value:
        return default
    normalized: str = value.strip().lower()
    return normalized if normalized in ALLOWED_VOICES else default


class VoicePreferenceStore:
    """user id -> voice map backed by a text file.

    Args:
        file_path (Path): Preference file.
        default_voice (str): Fallback for unknown voice names.
        rng (random.Random | None): Tie breaker between equally used voices.
    """

    def __init__(self, file_path: Path, *, default_voice: str = DEFAULT_VOICE, rng: random.Random | None = None) -> None:
        self.file_path: Path = file_path
        self.default_voice: str = normalize_voice(default_voice)
        self._rng: random.Random = rng or random.Random()  # noqa: S311
        self._voices: dict[str, str] = {}
        self._save_lock: asyncio.Lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._voices)

    def __contains__(self, user_id: object) -> bool:
        return str(user_id) in self._voices

    def get(self, user_id: int | str) -> str | None:
        return self._voices.get(str(user_id))

    def load(self) -> int:
        """Read the preference file, replacing the in-memory map.

        A missing or unreadable file leaves the store empty. Lines without an id are
        skipped and unknown voices fall back to the default voice.

        Returns:
            int: Number of preferences loaded.
        """
        try:
            lines: list[str] = FileUtils.read_lines(self.file_path)
        except FileNotFoundError:
            logger.info("Voice preference file '%s' not found, starting empty", self.file_path)
            return 0
        except (OSError, UnicodeDecodeError, FileUtilsError) as err:
            logger.warning("Voice preference file '%s' could not be read: %s", self.file_path, err)
            return 0

        voices: dict[str, str] = {}
        for raw in lines:
            line: str = raw.strip()
            if not line:
                continue
            user_id, _, voice = line.partition(":")
            user_id = user_id.strip()
            if not user_id:
                logger.debug("Skipping invalid preference line: %r", line)
                continue
            voices[user_id] = normalize_voice(voice, self.default_voice)

        self._voices = voices
        logger.info("Loaded %d voice preference(s) from '%s'", len(voices), self.file_path)
        return len(voices)

    def dumps(self) -> str:
        return "\n".join(f"{user_id}:{voice}" for user_id, voice in self._voices.items())

    async def save(self) -> None:
        """Overwrite the preference file with the current map.

        Raises:
            FilePermissionError: If the file is not writable.
            OSError: On any other write failure.
        """
        async with self._save_lock:
            content: str = self.dumps()
            loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
            await loop.run_in_executor(None, FileUtils.write_text_atomic, self.file_path, content)
            logger.debug("Saved %d voice preference(s) to '%s'", len(self._voices), self.file_path)

    async def set(self, user_id: int | str, voice: str) -> str:
        """Store ``voice`` for ``user_id`` and persist it.

        Returns:
            str: The normalized voice actually stored.
        """
        selected: str = normalize_voice(voice, self.default_voice)
        self._voices[str(user_id)] = selected
        logger.info("Voice of user %s set to '%s'", user_id, selected)
        await self.save()
        return selected

    def least_used_voice(self) -> str:
        """Pick the voice assigned to the fewest users, randomly among ties."""
        counts: Counter[str] = Counter({voice: 0 for voice in ALLOWED_VOICES})
        counts.update(voice for voice in self._voices.values() if voice in counts)
        fewest: int = min(counts.values())
        candidates: list[str] = [voice for voice in ALLOWED_VOICES if counts[voice] == fewest]
        return self._rng.choice(candidates) if candidates else self.default_voice

    def resolve(self, user_id: int | str) -> str:
        """Return the user's voice, assigning one on first use.

        A new assignment is saved in the background so the caller never waits on disk.
        Must be called from the event loop.
        """
        existing: str | None = self.get(user_id)
        if existing is not None:
            return existing

        voice: str = self.least_used_voice()
        self._voices[str(user_id)] = voice
        logger.info("Assigned voice '%s' to user %s", voice, user_id)
        spawn(self._save_quietly(), name="voice-preferences-save")
        return voice

    async def _save_quietly(self) -> None:
        try:
            await self.save()
        except (OSError, FileUtilsError) as err:
            logger.warning("Failed to save voice preferences: %s", err)

"""Narration service for synthesizing voice-over audio using ElevenLabs."""

import logging
import re
from pathlib import Path
from typing import Any, List, Optional

from src.models.script import Script
from src.utils.errors import NarrationError

logger = logging.getLogger(__name__)

DEFAULT_NARRATION = (
    "Welcome to this innovative SaaS application. Discover powerful features that "
    "will transform your workflow. See how easy it is to get started and experience "
    "the difference our platform makes. Join thousands of satisfied users who have "
    "already revolutionized their productivity."
)


class NarrationService:
    """Service for converting a Script into one narration audio file."""

    def __init__(
        self,
        elevenlabs_api_key: str,
        voice_id: str = "21m00Tcm4TlvDq8ikWAM",
        model_id: str = "eleven_monolingual_v1",
        temp_dir: Path | str = "temp",
        client: Optional[Any] = None,
    ) -> None:
        """
        Initialize the NarrationService.

        Args:
            elevenlabs_api_key: API key for ElevenLabs; empty disables narration
            voice_id: ElevenLabs voice used for the narrator
            model_id: ElevenLabs model ID
            temp_dir: Directory narration files are written to
            client: Pre-built AsyncElevenLabs client (optional)
        """
        self.api_key = elevenlabs_api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.temp_dir = Path(temp_dir)
        self._client: Optional[Any] = client

    @property
    def available(self) -> bool:
        return bool(self.api_key) or self._client is not None

    async def _get_client(self) -> Any:
        """Get or create the ElevenLabs async client."""
        if self._client is None:
            from elevenlabs import AsyncElevenLabs

            self._client = AsyncElevenLabs(api_key=self.api_key)
        return self._client

    @staticmethod
    def build_narration_text(script: Optional[Script]) -> str:
        """
        Join segment captions into one narration paragraph.

        Captions are separated by sentence-ending punctuation and
        whitespace is collapsed.
        """
        if script is None or not script.segments:
            return DEFAULT_NARRATION

        narration = ". ".join(segment.caption for segment in script.segments)
        narration = re.sub(r"\s+", " ", narration)
        # "Go!. Next" -> "Go! Next"
        narration = re.sub(r"([.!?])\s*[.!?]+", r"\1", narration)
        return narration.strip()

    def _voice_settings(self) -> Any:
        from elevenlabs import VoiceSettings

        return VoiceSettings(
            stability=0.75,
            similarity_boost=0.75,
            style=0.5,
            use_speaker_boost=True,
        )

    async def synthesize(self, script: Optional[Script], job_id: str) -> Optional[Path]:
        """
        Synthesize the narration for a job.

        Args:
            script: Script whose captions are narrated
            job_id: Job identifier used to name the audio file

        Returns:
            Path to the MP3 file, or None when narration is unavailable

        Raises:
            NarrationError: If the client is misconfigured (no voice ID)
        """
        if not self.available:
            logger.info("No ElevenLabs API key, skipping narration")
            return None
        if not self.voice_id:
            raise NarrationError("No ElevenLabs voice ID configured")

        text = self.build_narration_text(script)
        logger.info(f"Generating narration for job {job_id}: {len(text)} characters")

        try:
            client = await self._get_client()
            audio_stream = client.text_to_speech.convert(
                voice_id=self.voice_id,
                text=text,
                model_id=self.model_id,
                voice_settings=self._voice_settings(),
                output_format="mp3_44100_128",
            )

            # Collect audio bytes from generator
            audio_chunks: List[bytes] = []
            async for chunk in audio_stream:
                audio_chunks.append(chunk)
            audio = b"".join(audio_chunks)

        except Exception as e:
            status_code = getattr(e, "status_code", None)
            if status_code == 401:
                logger.error("Invalid ElevenLabs API key")
            elif status_code == 429:
                logger.error("ElevenLabs rate limit exceeded")
            else:
                logger.error(f"ElevenLabs narration failed: {e}")
            return None

        if not audio:
            logger.error(f"ElevenLabs returned no audio for job {job_id}")
            return None

        self.temp_dir.mkdir(parents=True, exist_ok=True)
        audio_path = self.temp_dir / f"narration_{job_id}.mp3"
        audio_path.write_bytes(audio)
        logger.info(f"Narration generated: {audio_path} ({len(audio) / 1024 / 1024:.2f} MB)")
        return audio_path


def create_narration_service() -> NarrationService:
    """
    Create a NarrationService instance using application settings.

    Returns:
        Configured NarrationService instance
    """
    from src.config import get_settings

    settings = get_settings()
    if not settings.elevenlabs_api_key:
        logger.warning("ElevenLabs API key not found - narration disabled")
    return NarrationService(
        elevenlabs_api_key=settings.elevenlabs_api_key,
        voice_id=settings.elevenlabs_voice_id,
        model_id=settings.elevenlabs_model,
        temp_dir=settings.temp_dir,
    )

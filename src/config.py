"""Application settings from environment variables."""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings from environment."""

    # API Keys
    gemini_api_key: str = ""
    elevenlabs_api_key: str = ""

    # Supabase storage
    supabase_url: str = ""
    supabase_key: str = ""
    storage_bucket: str = "demo-videos"

    # Content analysis
    analysis_model: str = "google-gla:gemini-2.5-flash"
    use_ai_script: bool = False
    max_retry_attempts: int = 2
    base_delay_seconds: float = 5.0

    # ElevenLabs
    elevenlabs_voice_id: str = "21m00Tcm4TlvDq8ikWAM"
    elevenlabs_model: str = "eleven_monolingual_v1"

    # Working directories
    upload_dir: str = "uploads"
    temp_dir: str = "temp"
    output_dir: str = "output"

    # Intake
    max_upload_mb: int = 500
    frontend_url: str = "http://localhost:3000"

    # Transcoder
    ffmpeg_binary: str = "ffmpeg"

    # Process
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000
    max_concurrent_jobs: int = 0
    combine_strategy: str = "narration"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def storage_configured(self) -> bool:
        """Whether durable storage credentials are present."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    def working_dirs(self) -> dict[str, Path]:
        """The three working directories keyed by role."""
        return {
            "uploads": Path(self.upload_dir),
            "temp": Path(self.temp_dir),
            "output": Path(self.output_dir),
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()

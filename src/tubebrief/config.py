"""Configuration management for tubebrief."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable overrides.

    All settings can be overridden via environment variables
    prefixed with TUBEBRIEF_ (e.g. TUBEBRIEF_DATA_DIR, TUBEBRIEF_PORT).
    """

    model_config = {"env_prefix": "TUBEBRIEF_"}

    # Storage
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".tubebrief",
        description="Root directory for all tubebrief data",
    )

    # Server
    host: str = "127.0.0.1"
    port: int = 9094
    public_url: str = "http://127.0.0.1:9094"
    log_level: str = "INFO"

    # Sessions and invitations
    session_secret: str = "tubebrief-dev-secret"
    session_max_age: int = 60 * 60 * 24 * 7  # seconds
    invitation_ttl_days: int = 7

    # LLM
    default_model: str = "gpt-4o"
    vision_model: str = "gpt-4o"
    summary_temperature: float = 0.2
    terms_temperature: float = 0.1
    transcript_char_limit: int = 14000
    max_concurrent_llm_calls: int = 4

    # Network
    http_timeout: float = 30.0
    preview_timeout: float = 5.0
    caption_languages: list[str] = Field(default_factory=lambda: ["en", "en-US", "en-GB"])

    @property
    def db_path(self) -> Path:
        """SQLite database path."""
        return self.data_dir / "tubebrief.db"

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton: import this throughout the app
settings = Settings()

"""Configuration management for LightSplit."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LIGHTSPLIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database path (set to None for a purely in-memory ledger)
    database_path: Path | None = Path.home() / ".lightsplit" / "lightsplit.db"

    # Room ids: bytes of randomness fed to secrets.token_urlsafe
    room_id_bytes: int = Field(default=6, ge=4)

    # Cache assembled results between writes
    cache_results: bool = True

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        if self.database_path is not None:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your LIGHTSPLIT_* environment "
            f"variables or .env file.\n"
            f"Error: {e}"
        ) from e

"""
PromptShelf Configuration

Application settings loaded from environment variables.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROMPTSHELF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Application
    app_name: str = "PromptShelf"
    app_version: str = "0.1.0"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    json_logs: bool = False

    # Storage
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".promptshelf",
        description="Directory holding the collection file and downloaded media",
    )
    store_file: str = "prompts.json"
    media_dir: str = "media"

    # Gemini
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "gemini_api_key",
            "PROMPTSHELF_GEMINI_API_KEY",
            "GEMINI_API_KEY",
            "API_KEY",
        ),
        description="Gemini API key",
    )
    text_model: str = "gemini-2.5-flash"
    image_model: str = "imagen-4.0-generate-001"
    video_model: str = "veo-2.0-generate-001"
    video_poll_interval: float = 10.0  # seconds
    request_timeout: float = 120.0  # seconds

    @property
    def store_path(self) -> Path:
        return self.data_dir / self.store_file

    @property
    def media_path(self) -> Path:
        return self.data_dir / self.media_dir


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Configuration management for FM Club."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent.resolve()
CONFIG_DIR = PROJECT_ROOT / "config"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "FM Club"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        alias="FM_CLUB_LOG_LEVEL",
    )

    # Persistence
    save_dir: str = Field(default="", alias="FM_CLUB_SAVE_DIR")
    save_name: str = Field(default="career", alias="FM_CLUB_SAVE_NAME")

    # Simulation
    random_seed: int | None = Field(default=None, alias="FM_CLUB_SEED")
    holiday_tick_ms: int = Field(default=300, alias="FM_CLUB_HOLIDAY_TICK_MS")

    @property
    def save_path(self) -> Path:
        """Directory holding save files."""
        if self.save_dir:
            return Path(self.save_dir).expanduser()
        return Path.home() / ".fm_club" / "saves"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()

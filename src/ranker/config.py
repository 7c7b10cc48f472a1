"""Application configuration via environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RANKER_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database
    db_path: Path = Field(
        default=Path.home() / ".config" / "ranker" / "ranker.db",
        description="Path to SQLite database file",
    )
    db_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait on a locked database before failing",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level for the server process",
    )

    # Server
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()

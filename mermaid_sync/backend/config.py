"""
Configuration settings.

Settings are read from environment variables prefixed with MERMAID_SYNC_
(or a local .env file), e.g. MERMAID_SYNC_SETTLE_DELAY=0.2.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.models import Dialect


class Settings(BaseSettings):
    """Server and sync-engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MERMAID_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="127.0.0.1", description="Bind address for the API server")
    port: int = Field(default=8765, description="Port for the API server")
    default_dialect: Dialect = Field(default=Dialect.FLOWCHART, description="Dialect of a new diagram")
    settle_delay: float = Field(
        default=0.1,
        ge=0,
        description="Seconds the controller stays suppressed after publishing text",
    )
    autosave_delay: float = Field(
        default=2.0,
        ge=0,
        description="Quiet period in seconds before diagram text is written to disk",
    )
    autosave_path: Optional[Path] = Field(
        default=None,
        description="File the diagram text is saved to (disabled when unset)",
    )
    log_level: str = Field(default="INFO", description="Logging level")
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
        description="Origins allowed to call the API from a browser",
    )


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()

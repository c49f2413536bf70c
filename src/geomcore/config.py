"""geomcore configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
and .env files.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Arena
    ARENA_BLOCK_SIZE: int = Field(default=65536, gt=0)  # Bytes per arena block
    ARENA_MAX_BYTES: int = Field(default=0, ge=0)  # 0 = unlimited

    # Precondition checks (index range, buffer length, use after reset)
    DEBUG_CHECKS: bool = False

    # WKT diagnostics
    WKT_ERROR_CONTEXT: int = Field(default=32, gt=0)  # Chars of left context

    # WKB output
    WKB_BYTE_ORDER: Literal["little", "big"] = "little"


# Singleton instance for import convenience
settings = Settings()

"""Configuration management using Pydantic Settings."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIB = 1024 * 1024

# Global settings singleton
_settings: Optional[AtelierSettings] = None


def _default_data_dir() -> Path:
    return Path.home() / ".config" / "atelier-catalog"


class AtelierSettings(BaseSettings):
    """Atelier Catalog settings loaded from environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ATELIER_",
        extra="ignore",
    )

    # Local persistence
    data_dir: Path = Field(default_factory=_default_data_dir)
    db_path: Path | None = Field(default=None)
    credentials_path: Path | None = Field(default=None)

    # Remote backup (GitHub Gist)
    api_base: str = Field(default="https://api.github.com")
    request_timeout: float = Field(default=30.0, gt=0)
    backup_description: str = Field(default="L'Atelier de Stickers - Backup")
    backup_filename: str = Field(default="sticker-sets.json")
    max_payload_bytes: int = Field(default=10 * MIB, gt=0)
    warn_payload_bytes: int = Field(default=5 * MIB, gt=0)

    # Image codec
    image_max_width: int = Field(default=800, gt=0)
    image_quality: float = Field(default=0.85, gt=0, le=1)
    flatten_background: str = Field(default="#FFFFFF")

    # Catalog defaults
    default_item_count: int = Field(default=40, ge=0)

    # Logging
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)

    @field_validator("flatten_background")
    @classmethod
    def _check_background(cls, value: str) -> str:
        hex_value = value.lstrip("#")
        if len(hex_value) != 6 or any(c not in "0123456789abcdefABCDEF" for c in hex_value):
            raise ValueError(f"flatten_background must be #RRGGBB, got {value!r}")
        return f"#{hex_value.upper()}"

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level {value!r}")
        return level

    @property
    def database_path(self) -> Path:
        """SQLite file holding the catalog."""
        return self.db_path or self.data_dir / "catalog.sqlite3"

    @property
    def credentials_file(self) -> Path:
        """JSON file holding the token and the cached gist id."""
        return self.credentials_path or self.data_dir / "credentials.json"

    @property
    def logging_level(self) -> int:
        """Numeric level for the root logger; debug mode forces DEBUG."""
        if self.debug:
            return logging.DEBUG
        return getattr(logging, self.log_level)

    @property
    def background_rgb(self) -> tuple[int, int, int]:
        """Flatten colour as an RGB triple."""
        hex_value = self.flatten_background.lstrip("#")
        return (
            int(hex_value[0:2], 16),
            int(hex_value[2:4], 16),
            int(hex_value[4:6], 16),
        )


def get_settings() -> AtelierSettings:
    """Get or create the global settings singleton."""
    global _settings
    if _settings is None:
        _settings = AtelierSettings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings (for testing)."""
    global _settings
    _settings = None

"""
Runtime settings for the Fantom search core.

Uses pydantic-settings to load configuration from environment variables
with proper validation.
"""

from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = PACKAGE_CONFIG_DIR / "fantom.config.jsonc"


class FantomSettings(BaseSettings):
    """
    Settings loaded from environment variables prefixed with ``FANTOM_``.

    The Redis URL additionally honours the bare ``REDIS_URL`` variable.
    """

    model_config = SettingsConfigDict(
        env_prefix="FANTOM_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Redis Configuration
    redis_url: str = Field(
        "redis://localhost:6379",
        validation_alias=AliasChoices("FANTOM_REDIS_URL", "REDIS_URL", "redis_url"),
        description="Redis connection URL",
    )
    redis_db: int = Field(5, ge=0, le=15, description="Logical database holding searchable records")
    socket_timeout_seconds: float = Field(5.0, gt=0)
    socket_connect_timeout_seconds: float = Field(5.0, gt=0)
    scan_batch_size: Optional[int] = Field(None, ge=1, description="COUNT hint for SCAN")

    # Ranking
    config_path: Path = Field(DEFAULT_CONFIG_PATH, description="User-to-algorithm configuration document")
    fallback_algorithm: str = Field("bm25", description="Algorithm used when no user default exists")
    result_limit: int = Field(10, ge=1)

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    json_logs: bool = Field(True, description="Whether to output JSON format logs")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("config_path")
    @classmethod
    def resolve_config_path(cls, v: Path) -> Path:
        # Relative paths are anchored at the package config directory
        if not v.is_absolute():
            return PACKAGE_CONFIG_DIR / v
        return v


def load_settings(**overrides: Any) -> FantomSettings:
    """
    Load settings from environment variables.

    Args:
        **overrides: Explicit values that take precedence over the environment

    Returns:
        Configured FantomSettings instance
    """
    return FantomSettings(**overrides)


# Global settings instance (lazy-loaded)
_settings: Optional[FantomSettings] = None


def get_cached_settings() -> FantomSettings:
    """
    Get cached settings instance.

    Returns:
        Cached FantomSettings instance
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings_cache() -> None:
    """Reset the cached settings instance (useful for testing)"""
    global _settings
    _settings = None

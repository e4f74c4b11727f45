"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.types import (
    CommandPrefixStr,
    NonNegativeFloat,
    PlaylistLimit,
    SearchLimit,
    TimeoutSeconds,
    VolumePercent,
)
from ..domain.shared.validators import parse_id_list


class DiscordSettings(BaseModel):
    """Discord bot configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    token: SecretStr = Field(
        default=SecretStr(""), validation_alias=AliasChoices("token", "bot_token", "discord_token")
    )
    command_prefix: CommandPrefixStr = Field(
        default="!", validation_alias=AliasChoices("command_prefix", "prefix")
    )
    test_guild_ids: tuple[int, ...] = Field(
        default_factory=tuple, validation_alias=AliasChoices("test_guild_ids", "test_guilds")
    )
    sync_on_startup: bool = True

    @field_validator("test_guild_ids", mode="before")
    @classmethod
    def validate_snowflake_ids(cls, v: Any) -> tuple[int, ...]:
        """Validate Discord snowflake IDs; accept lists and comma-separated strings."""
        return parse_id_list(v)


class AudioSettings(BaseModel):
    """Audio playback configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    default_volume: VolumePercent = 50
    max_song_duration_seconds: int = Field(
        default=3600,
        ge=61,
        validation_alias=AliasChoices("max_song_duration_seconds", "max_song_duration"),
    )
    max_playlist_items: PlaylistLimit = 50
    advance_delay_seconds: NonNegativeFloat = Field(default=1.0, le=30.0)
    ffmpeg_options: dict[str, str] = Field(
        default_factory=lambda: {
            "before_options": "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5",
            "options": "-vn",
        }
    )
    ytdlp_format: str = "bestaudio/best"


class ResolverSettings(BaseModel):
    """Track resolution chain configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    cobalt_api_url: str = Field(
        default="https://api.cobalt.tools/api/json",
        validation_alias=AliasChoices("cobalt_api_url", "cobalt_url"),
    )
    cobalt_enabled: bool = True
    cobalt_timeout_seconds: TimeoutSeconds = 30.0
    ytdlp_timeout_seconds: TimeoutSeconds = 30.0
    alternate_search_prefix: str = Field(default="scsearch", min_length=1)
    alternate_timeout_seconds: TimeoutSeconds = 20.0
    search_result_limit: SearchLimit = 15

    @field_validator("cobalt_api_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Cobalt API URL must start with http:// or https://")
        return v


class IdleSettings(BaseModel):
    """Empty-channel disconnect configuration."""

    model_config = SettingsConfigDict(frozen=True)

    disconnect_grace_seconds: NonNegativeFloat = 30.0


class SearchSettings(BaseModel):
    """Search session configuration."""

    model_config = SettingsConfigDict(frozen=True)

    session_ttl_seconds: float = Field(default=300.0, gt=0.0)
    sweep_interval_seconds: float = Field(default=60.0, gt=0.0)


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DISCORD__TOKEN, DISCORD__TEST_GUILD_IDS, ... (nested with ``__``)
    - AUDIO__DEFAULT_VOLUME, RESOLVER__COBALT_ENABLED, IDLE__DISCONNECT_GRACE_SECONDS, ...
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    idle: IdleSettings = Field(default_factory=IdleSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()

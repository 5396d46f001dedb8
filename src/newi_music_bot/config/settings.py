"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.messages import ErrorMessages


class DiscordSettings(BaseModel):
    """Discord bot configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    token: SecretStr = Field(
        default=SecretStr(""), validation_alias=AliasChoices("token", "bot_token", "discord_token")
    )
    command_prefix: str = Field(
        default="/",
        min_length=1,
        max_length=5,
        validation_alias=AliasChoices("command_prefix", "prefix"),
    )
    test_guild_ids: tuple[int, ...] = Field(
        default_factory=tuple, validation_alias=AliasChoices("test_guild_ids", "test_guilds")
    )
    sync_on_startup: bool = False

    @field_validator("test_guild_ids", mode="before")
    @classmethod
    def validate_snowflake_ids(cls, v: tuple[int, ...] | list[int]) -> tuple[int, ...]:
        if isinstance(v, list):
            v = tuple(v)
        for snowflake in v:
            if snowflake <= 0 or snowflake >= 2**64:
                raise ValueError(ErrorMessages.INVALID_SNOWFLAKE)
        return v


class LavalinkSettings(BaseModel):
    """Lavalink node connection."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    host: str = "127.0.0.1"
    port: int = Field(default=2333, ge=1, le=65535)
    password: SecretStr = Field(
        default=SecretStr("youshallnotpass"),
        validation_alias=AliasChoices("password", "lavalink_password"),
    )
    label: str = Field(default="node1", min_length=1)
    secure: bool = False

    @property
    def rest_base_url(self) -> str:
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.host}:{self.port}"


class AudioSettings(BaseModel):
    """Audio playback configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    default_volume: int = Field(default=50, ge=0, le=100)
    max_queue_size: int = Field(default=200, ge=1, le=5000)
    max_history_size: int = Field(default=1000, ge=1, le=10000)
    search_platform: str = Field(
        default="ytmsearch",
        validation_alias=AliasChoices("search_platform", "default_search_platform"),
    )
    queue_display_count: int = Field(default=10, ge=1, le=25)
    playlist_page_size: int = Field(default=20, ge=5, le=40)


class UISettings(BaseModel):
    """Status message timing. All durations are seconds."""

    model_config = SettingsConfigDict(frozen=True)

    refresh_interval_s: float = Field(default=2.0, gt=0.0, le=60.0)
    fast_update_interval_s: float = Field(default=0.5, ge=0.0, le=5.0)
    immediate_update_interval_s: float = Field(default=0.1, ge=0.0, le=5.0)
    skip_refresh_delay_s: float = Field(default=0.5, ge=0.0, le=10.0)
    track_start_refresh_delay_s: float = Field(default=1.0, ge=0.0, le=10.0)
    queue_end_min_display_s: float = Field(default=2.0, ge=0.0, le=30.0)
    stop_confirmation_timeout_s: float = Field(default=10.0, gt=0.0, le=300.0)
    pause_auto_stop_s: float = Field(default=1200.0, gt=0.0)
    message_max_age_s: float = Field(default=3600.0, gt=0.0)
    button_cooldown_s: float = Field(default=1.0, ge=0.0, le=60.0)
    collector_timeout_s: float | None = Field(default=None, gt=0.0)
    progress_bar_length: int = Field(default=18, ge=1, le=40)


class HealthSettings(BaseModel):
    """Lavalink health probing."""

    model_config = SettingsConfigDict(frozen=True)

    quick_check_interval_s: float = Field(default=10.0, gt=0.0)
    deep_check_interval_s: float = Field(default=30.0, gt=0.0)
    probe_timeout_s: float = Field(default=5.0, gt=0.0, le=60.0)


class ReconnectSettings(BaseModel):
    """Backoff for Lavalink node reconnects."""

    model_config = SettingsConfigDict(frozen=True)

    base_delay_s: float = Field(default=5.0, ge=0.0)
    max_attempts: int = Field(default=5, ge=1, le=50)
    auto_resume: bool = False


class CleanupSettings(BaseModel):
    """Periodic sweep configuration."""

    model_config = SettingsConfigDict(frozen=True)

    stale_message_interval_minutes: float = Field(default=30, gt=0)
    message_max_age_minutes: float = Field(default=60, gt=0)
    orphan_player_interval_minutes: float = Field(default=5, gt=0)
    cooldown_retention_minutes: float = Field(default=5, gt=0)


class Settings(BaseSettings):
    """Application settings container.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DISCORD__TOKEN, LAVALINK__HOST, UI__REFRESH_INTERVAL_S, ... (nested groups)
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
    lavalink: LavalinkSettings = Field(default_factory=LavalinkSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    ui: UISettings = Field(default_factory=UISettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    reconnect: ReconnectSettings = Field(default_factory=ReconnectSettings)
    cleanup: CleanupSettings = Field(default_factory=CleanupSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels))
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()

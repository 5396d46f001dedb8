"""
Unit Tests for Application Settings Configuration

Tests for:
- Default values for every settings group
- Nested environment variables
- Range validation
- Custom validators (log level, snowflake IDs)
- Settings caching and clearing
"""

import pytest
from pydantic import SecretStr, ValidationError

from newi_music_bot.config.settings import (
    AudioSettings,
    DiscordSettings,
    LavalinkSettings,
    ReconnectSettings,
    Settings,
    UISettings,
    clear_settings_cache,
    get_settings,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep host environment variables out of settings under test."""
    for key in ("DISCORD__TOKEN", "LAVALINK__HOST", "LOG_LEVEL", "ENVIRONMENT", "UI__REFRESH_INTERVAL_S"):
        monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# DiscordSettings Tests
# =============================================================================


class TestDiscordSettings:
    def test_defaults(self):
        discord = DiscordSettings()

        assert discord.token.get_secret_value() == ""
        assert discord.command_prefix == "/"
        assert discord.test_guild_ids == ()
        assert discord.sync_on_startup is False

    def test_token_alias(self):
        discord = DiscordSettings(bot_token="abc")
        assert discord.token == SecretStr("abc")

    def test_guild_ids_list_coerced(self):
        assert DiscordSettings(test_guild_ids=[1, 2]).test_guild_ids == (1, 2)

    def test_invalid_snowflake(self):
        with pytest.raises(ValidationError):
            DiscordSettings(test_guild_ids=[0])


# =============================================================================
# LavalinkSettings / AudioSettings Tests
# =============================================================================


class TestLavalinkSettings:
    def test_defaults(self):
        lavalink = LavalinkSettings()

        assert lavalink.host == "127.0.0.1"
        assert lavalink.port == 2333
        assert lavalink.label == "node1"
        assert lavalink.rest_base_url == "http://127.0.0.1:2333"

    def test_secure_url(self):
        assert LavalinkSettings(host="lava.example", port=443, secure=True).rest_base_url == (
            "https://lava.example:443"
        )

    def test_port_out_of_range(self):
        with pytest.raises(ValidationError):
            LavalinkSettings(port=70000)


class TestAudioSettings:
    def test_defaults(self):
        audio = AudioSettings()
        assert audio.default_volume == 50
        assert audio.max_queue_size == 200
        assert audio.search_platform == "ytmsearch"

    def test_volume_bounds(self):
        with pytest.raises(ValidationError):
            AudioSettings(default_volume=101)


# =============================================================================
# UISettings / ReconnectSettings Tests
# =============================================================================


class TestUISettings:
    def test_defaults(self):
        ui = UISettings()

        assert ui.refresh_interval_s == 2.0
        assert ui.stop_confirmation_timeout_s == 10.0
        assert ui.pause_auto_stop_s == 1200.0
        assert ui.message_max_age_s == 3600.0
        assert ui.button_cooldown_s == 1.0
        assert ui.collector_timeout_s is None

    def test_refresh_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            UISettings(refresh_interval_s=0)

    def test_frozen(self):
        ui = UISettings()
        with pytest.raises(ValidationError):
            ui.refresh_interval_s = 5.0


class TestReconnectSettings:
    def test_defaults(self):
        reconnect = ReconnectSettings()
        assert reconnect.base_delay_s == 5.0
        assert reconnect.max_attempts == 5
        assert reconnect.auto_resume is False


# =============================================================================
# Settings Tests
# =============================================================================


class TestSettings:
    def test_nested_env(self, monkeypatch):
        monkeypatch.setenv("DISCORD__TOKEN", "secret")
        monkeypatch.setenv("LAVALINK__HOST", "lavalink")
        monkeypatch.setenv("UI__REFRESH_INTERVAL_S", "3.5")

        settings = Settings(_env_file=None)

        assert settings.discord.token.get_secret_value() == "secret"
        assert settings.lavalink.host == "lavalink"
        assert settings.ui.refresh_interval_s == 3.5

    def test_log_level_uppercased(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="staging")

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_clear_settings_cache(self):
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first

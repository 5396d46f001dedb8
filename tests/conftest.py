from unittest.mock import AsyncMock, MagicMock

import pytest

# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def ui_settings():
    """UI timings shrunk so timer-driven paths finish within a test."""
    from newi_music_bot.config.settings import UISettings

    return UISettings(
        refresh_interval_s=0.05,
        fast_update_interval_s=0.0,
        immediate_update_interval_s=0.0,
        skip_refresh_delay_s=0.0,
        track_start_refresh_delay_s=0.0,
        queue_end_min_display_s=0.0,
        stop_confirmation_timeout_s=0.05,
        pause_auto_stop_s=0.05,
        message_max_age_s=3600.0,
        button_cooldown_s=1.0,
    )


@pytest.fixture
def settings(ui_settings):
    """Full settings object that ignores the environment and .env."""
    from newi_music_bot.config.settings import (
        CleanupSettings,
        HealthSettings,
        ReconnectSettings,
        Settings,
    )

    return Settings(
        _env_file=None,
        ui=ui_settings,
        health=HealthSettings(quick_check_interval_s=0.05, deep_check_interval_s=0.05, probe_timeout_s=0.1),
        reconnect=ReconnectSettings(base_delay_s=0.0, max_attempts=3),
        cleanup=CleanupSettings(),
    )


# ============================================================================
# Domain Entity Fixtures
# ============================================================================


@pytest.fixture
def make_track():
    """Factory for sample tracks; keyword overrides replace the defaults."""
    from newi_music_bot.domain.music.entities import Track

    counter = iter(range(1, 10_000))

    def _make(title: str | None = None, **overrides):
        n = next(counter)
        data = {
            "identifier": f"track-{n}",
            "title": title or f"Song {n}",
            "author": "Test Artist",
            "duration_ms": 180_000,
            "uri": f"https://example.com/watch?v={n}",
            "artwork_url": f"https://example.com/art/{n}.jpg",
        }
        data.update(overrides)
        return Track(**data)

    return _make


@pytest.fixture
def sample_track(make_track):
    return make_track("Test Track")


@pytest.fixture
def make_session():
    from newi_music_bot.domain.music.entities import PlaybackSession

    def _make(guild_id: int = 111, **kwargs):
        kwargs.setdefault("text_channel_id", 222)
        kwargs.setdefault("voice_channel_id", 333)
        kwargs.setdefault("node_label", "node1")
        return PlaybackSession(guild_id=guild_id, **kwargs)

    return _make


@pytest.fixture
def playing_session(make_session, make_track):
    """A session playing its current track with two upcoming and one in history."""
    session = make_session()
    session.history.append(make_track("Earlier"))
    session.start(make_track("Now"))
    session.enqueue_many([make_track("Next"), make_track("Later")])
    session.connected = True
    return session


@pytest.fixture
def paused_session(playing_session):
    playing_session.mark_paused(42_000)
    return playing_session


@pytest.fixture
def idle_session(make_session):
    """Connected to voice but nothing ever queued."""
    session = make_session()
    session.connected = True
    return session


@pytest.fixture
def stopped_session(playing_session):
    playing_session.clear()
    return playing_session


# ============================================================================
# Engine / Discord Doubles
# ============================================================================


@pytest.fixture
def fake_engine():
    """AudioEngine double: async calls are AsyncMocks, lookups return happy defaults."""
    from newi_music_bot.application.interfaces.audio_engine import AudioEngine

    engine = MagicMock(spec=AudioEngine)
    for name in (
        "search",
        "connect",
        "disconnect",
        "destroy_player",
        "play",
        "skip",
        "stop_playing",
        "pause",
        "resume",
        "seek",
        "set_volume",
        "set_speed",
    ):
        setattr(engine, name, AsyncMock())
    engine.disconnect.return_value = True
    engine.has_player.return_value = True
    engine.is_voice_connected.return_value = True
    engine.node_label_for.return_value = "node1"
    engine.get_position.return_value = 0
    engine.nodes.return_value = []
    return engine


@pytest.fixture
def mock_message():
    message = MagicMock()
    message.id = 9001
    message.channel = MagicMock()
    message.channel.id = 222
    message.edit = AsyncMock()
    message.delete = AsyncMock()
    return message


@pytest.fixture
def mock_channel(mock_message):
    channel = MagicMock()
    channel.id = 222
    channel.send = AsyncMock(return_value=mock_message)
    mock_message.channel = channel
    return channel


@pytest.fixture
def mock_view_factory():
    """Stand-in for NowPlayingView so no discord.ui objects need a running loop."""

    def _factory(**kwargs):
        view = MagicMock()
        view.guild_id = kwargs["guild_id"]
        view.controls = kwargs["controls"]
        view.timeout = kwargs["timeout"]
        view.message = None

        def _set_message(message):
            view.message = message

        view.set_message.side_effect = _set_message
        return view

    return MagicMock(side_effect=_factory)

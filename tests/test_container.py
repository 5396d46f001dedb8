"""
Unit Tests for Dependency Injection Container

Tests for:
- Container initialization with settings
- Lazy initialization and caching of every component
- Bot instance management (set_bot, bot property, error when not set)
- Lifecycle methods (initialize, shutdown)
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from newi_music_bot.application.services.playback_events import PlaybackEventHandler
from newi_music_bot.application.services.player_controls import PlayerControls
from newi_music_bot.application.services.session_registry import SessionRegistry
from newi_music_bot.config.container import Container, create_container
from newi_music_bot.domain.shared.events import EventBus, NodeConnected, TrackEnded
from newi_music_bot.infrastructure.audio.mafic_engine import MaficAudioEngine
from newi_music_bot.infrastructure.audio.reconnect_monitor import ReconnectMonitor
from newi_music_bot.infrastructure.discord.services.cleanup_manager import CleanupManager
from newi_music_bot.infrastructure.discord.services.now_playing_manager import NowPlayingManager


@pytest.fixture
def mock_bot():
    bot = MagicMock()
    bot.user.id = 123456789
    return bot


@pytest.fixture
def container(settings, mock_bot):
    container = Container(settings=settings)
    container.set_bot(mock_bot)
    return container


@pytest.fixture
def engine_double():
    engine = MagicMock()
    engine.start = AsyncMock()
    engine.nodes.return_value = []
    return engine


# =============================================================================
# Container Initialization Tests
# =============================================================================


class TestContainerInitialization:
    def test_create_container_factory(self, settings):
        container = create_container(settings)

        assert isinstance(container, Container)
        assert container.settings is settings

    def test_bot_not_set_raises(self, settings):
        container = Container(settings=settings)

        with pytest.raises(RuntimeError):
            _ = container.bot

    def test_set_bot(self, container, mock_bot):
        assert container.bot is mock_bot


# =============================================================================
# Lazy Properties
# =============================================================================


class TestLazyProperties:
    def test_session_registry_uses_audio_limits(self, container, settings):
        registry = container.session_registry

        assert isinstance(registry, SessionRegistry)
        assert registry is container.session_registry
        session = registry.get_or_create(1)
        assert session.max_queue_size == settings.audio.max_queue_size

    def test_event_bus_cached(self, container):
        assert isinstance(container.event_bus, EventBus)
        assert container.event_bus is container.event_bus

    def test_audio_engine(self, container, mock_bot):
        with patch("newi_music_bot.infrastructure.audio.mafic_engine.mafic.NodePool") as mock_pool:
            engine = container.audio_engine

        assert isinstance(engine, MaficAudioEngine)
        assert engine is container.audio_engine
        mock_pool.assert_called_once_with(mock_bot)

    def test_refresh_gate_interval(self, container, settings):
        assert container.refresh_gate._min_interval == settings.ui.refresh_interval_s

    @pytest.mark.parametrize(
        ("name", "expected_type"),
        [
            ("now_playing_manager", NowPlayingManager),
            ("player_controls", PlayerControls),
            ("playback_event_handler", PlaybackEventHandler),
            ("reconnect_monitor", ReconnectMonitor),
            ("cleanup_manager", CleanupManager),
        ],
    )
    def test_services_cached(self, container, engine_double, name, expected_type):
        container._audio_engine = engine_double

        first = getattr(container, name)

        assert isinstance(first, expected_type)
        assert getattr(container, name) is first


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_initialize_wires_subscribers(self, container, engine_double):
        container._audio_engine = engine_double

        await container.initialize()
        try:
            engine_double.start.assert_awaited_once()
            assert container.event_bus.handler_count(TrackEnded) == 1
            assert container.event_bus.handler_count(NodeConnected) == 1
            assert container.reconnect_monitor.is_running is True
            assert container.now_playing_manager.controls is container.player_controls
        finally:
            await container.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_tears_down_sessions(self, container, engine_double, make_track):
        container._audio_engine = engine_double
        await container.initialize()
        session = container.session_registry.get_or_create(1)
        session.start(make_track())

        await container.shutdown()

        assert len(container.session_registry) == 0
        assert session.current is None
        assert container.reconnect_monitor.is_running is False
        assert container.event_bus.handler_count(TrackEnded) == 0

    @pytest.mark.asyncio
    async def test_shutdown_before_initialize(self, settings):
        await Container(settings=settings).shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_survives_monitor_failure(self, container):
        monitor = MagicMock()
        monitor.stop = AsyncMock(side_effect=RuntimeError("boom"))
        container._reconnect_monitor = monitor
        cleanup = MagicMock()
        cleanup.stop = AsyncMock()
        container._cleanup_manager = cleanup

        await container.shutdown()

        cleanup.stop.assert_awaited_once()

"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for the session registry, audio engine, now-playing
UI, event handlers, and background monitors. Components are created on-demand
and cached for reuse throughout the application.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..domain.shared.messages import ErrorMessages

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from discord.ext.commands import Bot

    from ..application.interfaces.audio_engine import AudioEngine
    from ..application.services.playback_events import PlaybackEventHandler
    from ..application.services.player_controls import PlayerControls
    from ..application.services.session_registry import SessionRegistry
    from ..domain.shared.events import EventBus
    from ..infrastructure.audio.reconnect_monitor import ReconnectMonitor
    from ..infrastructure.discord.services.cleanup_manager import CleanupManager
    from ..infrastructure.discord.services.message_state_manager import MessageStateManager
    from ..infrastructure.discord.services.now_playing_manager import NowPlayingManager
    from ..infrastructure.discord.services.refresh_gate import RefreshGate
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    This container manages all application dependencies and their lifecycle.
    Components are lazily initialized when first accessed.
    """

    settings: Settings
    _bot: Bot | None = None

    # Core state
    _event_bus: EventBus | None = None
    _session_registry: SessionRegistry | None = None

    # Infrastructure adapters
    _audio_engine: AudioEngine | None = None

    # Now-playing UI
    _refresh_gate: RefreshGate | None = None
    _now_playing_manager: NowPlayingManager | None = None
    _message_state_manager: MessageStateManager | None = None

    # Application services
    _player_controls: PlayerControls | None = None
    _playback_event_handler: PlaybackEventHandler | None = None

    # Background monitors
    _reconnect_monitor: ReconnectMonitor | None = None
    _cleanup_manager: CleanupManager | None = None

    def set_bot(self, bot: Bot) -> None:
        """Set the Discord bot instance."""
        self._bot = bot

    @property
    def bot(self) -> Bot:
        """Get the Discord bot instance."""
        if self._bot is None:
            raise RuntimeError(ErrorMessages.BOT_NOT_INITIALIZED)
        return self._bot

    # === Core State ===

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            from ..domain.shared.events import EventBus

            self._event_bus = EventBus()
        return self._event_bus

    @property
    def session_registry(self) -> SessionRegistry:
        """Get the guild -> session registry."""
        if self._session_registry is None:
            from ..application.services.session_registry import SessionRegistry

            audio = self.settings.audio
            self._session_registry = SessionRegistry(
                max_queue_size=audio.max_queue_size,
                max_history_size=audio.max_history_size,
            )
        return self._session_registry

    # === Infrastructure Adapters ===

    @property
    def audio_engine(self) -> AudioEngine:
        """Get the Lavalink-backed audio engine."""
        if self._audio_engine is None:
            from ..infrastructure.audio.mafic_engine import MaficAudioEngine

            self._audio_engine = MaficAudioEngine(
                self.bot,
                self.settings.lavalink,
                search_platform=self.settings.audio.search_platform,
            )
        return self._audio_engine

    # === Now-Playing UI ===

    @property
    def refresh_gate(self) -> RefreshGate:
        if self._refresh_gate is None:
            from ..infrastructure.discord.services.refresh_gate import RefreshGate

            self._refresh_gate = RefreshGate(min_interval_s=self.settings.ui.refresh_interval_s)
        return self._refresh_gate

    @property
    def now_playing_manager(self) -> NowPlayingManager:
        """Get the now-playing message manager."""
        if self._now_playing_manager is None:
            from ..infrastructure.discord.services.now_playing_manager import NowPlayingManager

            self._now_playing_manager = NowPlayingManager(
                registry=self.session_registry,
                engine=self.audio_engine,
                gate=self.refresh_gate,
                settings=self.settings.ui,
                prefix=self.settings.discord.command_prefix,
                display_count=self.settings.audio.queue_display_count,
                channel_resolver=self.bot.get_channel,
            )
        return self._now_playing_manager

    @property
    def message_state_manager(self) -> MessageStateManager:
        if self._message_state_manager is None:
            from ..infrastructure.discord.services.message_state_manager import MessageStateManager

            self._message_state_manager = MessageStateManager()
        return self._message_state_manager

    # === Application Services ===

    @property
    def player_controls(self) -> PlayerControls:
        if self._player_controls is None:
            from ..application.services.player_controls import PlayerControls

            self._player_controls = PlayerControls(
                engine=self.audio_engine,
                ui=self.now_playing_manager,
                default_volume=self.settings.audio.default_volume,
                pause_auto_stop_s=self.settings.ui.pause_auto_stop_s,
            )
        return self._player_controls

    @property
    def playback_event_handler(self) -> PlaybackEventHandler:
        if self._playback_event_handler is None:
            from ..application.services.playback_events import PlaybackEventHandler

            ui = self.settings.ui
            self._playback_event_handler = PlaybackEventHandler(
                registry=self.session_registry,
                engine=self.audio_engine,
                ui=self.now_playing_manager,
                event_bus=self.event_bus,
                track_start_refresh_delay_s=ui.track_start_refresh_delay_s,
                queue_end_min_display_s=ui.queue_end_min_display_s,
            )
        return self._playback_event_handler

    # === Background Monitors ===

    @property
    def reconnect_monitor(self) -> ReconnectMonitor:
        """Get the Lavalink health/reconnect monitor."""
        if self._reconnect_monitor is None:
            from ..infrastructure.audio.reconnect_monitor import ReconnectMonitor

            self._reconnect_monitor = ReconnectMonitor(
                engine=self.audio_engine,
                registry=self.session_registry,
                ui=self.now_playing_manager,
                event_bus=self.event_bus,
                health=self.settings.health,
                reconnect=self.settings.reconnect,
                auto_resume=self.settings.reconnect.auto_resume,
            )
        return self._reconnect_monitor

    @property
    def cleanup_manager(self) -> CleanupManager:
        """Get the periodic cleanup manager."""
        if self._cleanup_manager is None:
            from ..infrastructure.discord.services.cleanup_manager import CleanupManager

            self._cleanup_manager = CleanupManager(
                client=self.bot,
                registry=self.session_registry,
                engine=self.audio_engine,
                message_state=self.message_state_manager,
                now_playing=self.now_playing_manager,
                settings=self.settings.cleanup,
            )
        return self._cleanup_manager

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Connect the Lavalink node and start cross-cutting subscribers."""
        await self.audio_engine.start()

        # Buttons on the status message dispatch through player controls.
        self.now_playing_manager.attach_controls(self.player_controls)

        self.playback_event_handler.subscribe()
        self.reconnect_monitor.subscribe()
        self.reconnect_monitor.start()

    async def shutdown(self) -> None:
        """Stop monitors, tear down live sessions and drop event handlers."""
        try:
            if self._reconnect_monitor is not None:
                self._reconnect_monitor.unsubscribe()
                await self._reconnect_monitor.stop()
        except Exception as exc:
            logger.warning("Failed stopping reconnect monitor: %r", exc)

        try:
            if self._cleanup_manager is not None:
                await self._cleanup_manager.stop()
        except Exception as exc:
            logger.warning("Failed stopping cleanup manager: %r", exc)

        if self._playback_event_handler is not None:
            self._playback_event_handler.unsubscribe()

        if self._session_registry is not None:
            for session in self._session_registry.all():
                session.ui.reset()
                session.clear()
                self._session_registry.remove(session.guild_id)

        if self._event_bus is not None:
            self._event_bus.clear()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)

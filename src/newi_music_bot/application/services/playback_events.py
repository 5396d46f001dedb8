"""Reacts to track lifecycle events from the audio engine."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from newi_music_bot.domain.music.value_objects import TrackEndReason
from newi_music_bot.domain.shared.events import (
    QueueEnded,
    TrackEnded,
    TrackFailed,
    TrackStarted,
)
from newi_music_bot.domain.shared.exceptions import AudioEngineError
from newi_music_bot.domain.shared.messages import DiscordUIMessages, LogTemplates

if TYPE_CHECKING:
    from ...domain.music.entities import PlaybackSession
    from ...domain.shared.events import EventBus
    from ..interfaces.audio_engine import AudioEngine
    from ..interfaces.now_playing_ui import NowPlayingUI
    from .session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class PlaybackEventHandler:
    """Advances the queue on track end and keeps the status message in step."""

    def __init__(
        self,
        *,
        registry: SessionRegistry,
        engine: AudioEngine,
        ui: NowPlayingUI,
        event_bus: EventBus,
        track_start_refresh_delay_s: float = 1.0,
        queue_end_min_display_s: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._engine = engine
        self._ui = ui
        self._bus = event_bus
        self._track_start_delay = track_start_refresh_delay_s
        self._queue_end_min_display = queue_end_min_display_s
        self._clock = clock

    def subscribe(self) -> None:
        self._bus.subscribe(TrackStarted, self.on_track_started)
        self._bus.subscribe(TrackEnded, self.on_track_ended)
        self._bus.subscribe(TrackFailed, self.on_track_failed)
        self._bus.subscribe(QueueEnded, self.on_queue_ended)

    def unsubscribe(self) -> None:
        self._bus.unsubscribe(TrackStarted, self.on_track_started)
        self._bus.unsubscribe(TrackEnded, self.on_track_ended)
        self._bus.unsubscribe(TrackFailed, self.on_track_failed)
        self._bus.unsubscribe(QueueEnded, self.on_queue_ended)

    async def on_track_started(self, event: TrackStarted) -> None:
        session = self._registry.get(event.guild_id)
        if session is None:
            return

        logger.info(LogTemplates.TRACK_STARTED, event.track_title, event.guild_id)
        session.track_started_at = self._clock()
        if session.current is not None:
            session.playing = True
        session.paused = False
        session.paused_position_ms = None
        session.position_ms = 0

        # Voice state needs a moment to settle before the first render.
        self._ui.schedule_refresh(session, self._track_start_delay)

    async def on_track_ended(self, event: TrackEnded) -> None:
        logger.debug(LogTemplates.TRACK_ENDED, event.track_title, event.guild_id, event.reason.value)
        if not event.reason.may_start_next:
            return

        session = self._registry.get(event.guild_id)
        if session is None or session.current is None:
            return

        if event.reason is TrackEndReason.LOAD_FAILED:
            await self._ui.notify(
                session, DiscordUIMessages.NOTICE_LOAD_FAILED.format(title=session.current.title)
            )

        await self._play_next(session)

    async def _play_next(self, session: PlaybackSession) -> None:
        while True:
            track = session.advance()
            if track is None:
                await self._bus.publish(QueueEnded(guild_id=session.guild_id))
                return
            try:
                await self._engine.play(session.guild_id, track)
                session.playing = True
                return
            except AudioEngineError as e:
                logger.warning(LogTemplates.TRACK_PLAY_FAILED, track.title, session.guild_id, e)
                await self._ui.notify(
                    session, DiscordUIMessages.NOTICE_TRACK_UNAVAILABLE.format(title=track.title)
                )

    async def on_track_failed(self, event: TrackFailed) -> None:
        logger.error(LogTemplates.TRACK_FAILED, event.track_title, event.guild_id, event.message)
        session = self._registry.get(event.guild_id)
        if session is None:
            return

        if "unavailable" in event.message:
            text = DiscordUIMessages.NOTICE_TRACK_UNAVAILABLE.format(title=event.track_title)
        else:
            text = DiscordUIMessages.NOTICE_TRACK_ERROR.format(
                title=event.track_title, error=event.message
            )
        await self._ui.notify(session, text)

    async def on_queue_ended(self, event: QueueEnded) -> None:
        session = self._registry.get(event.guild_id)
        if session is None:
            return

        logger.info(LogTemplates.QUEUE_ENDED, event.guild_id)
        started = session.track_started_at
        elapsed = self._clock() - started if started is not None else self._queue_end_min_display
        remaining = self._queue_end_min_display - elapsed
        if remaining > 0:
            # Keep a very short last track on screen before showing "stopped".
            await asyncio.sleep(remaining)

        if session.current is not None or self._registry.get(event.guild_id) is not session:
            return

        session.clear()
        await self._ui.show_stopped(session)

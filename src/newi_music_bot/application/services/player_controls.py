"""Apply user intents (pause, skip, stop, ...) to a session and cascade the resets."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from newi_music_bot.domain.shared.exceptions import AudioEngineError
from newi_music_bot.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...domain.music.entities import PlaybackSession, Track
    from ..interfaces.audio_engine import AudioEngine
    from ..interfaces.now_playing_ui import NowPlayingUI

logger = logging.getLogger(__name__)

MIN_SPEED = 0.25
MAX_SPEED = 3.0


@dataclass(slots=True, frozen=True)
class EnqueueOutcome:
    started: Track | None = None
    queued: int = 0
    position: int | None = None
    dropped: int = 0


class PlayerControls:
    def __init__(
        self,
        *,
        engine: AudioEngine,
        ui: NowPlayingUI,
        default_volume: int = 50,
        pause_auto_stop_s: float = 1200.0,
    ) -> None:
        self._engine = engine
        self._ui = ui
        self._default_volume = default_volume
        self._pause_auto_stop_s = pause_auto_stop_s

    # ── Play / enqueue ──────────────────────────────────────────────

    async def enqueue_and_play(self, session: PlaybackSession, tracks: list[Track]) -> EnqueueOutcome:
        """Start the first track when idle, otherwise append to the queue.

        If the engine refuses to play, the session is left as it was so the
        same request can simply be retried.
        """
        if not tracks:
            return EnqueueOutcome()

        if session.current is None:
            first, rest = tracks[0], tracks[1:]
            session.start(first)
            try:
                await self._engine.play(session.guild_id, first)
            except AudioEngineError:
                session.current = None
                session.playing = False
                raise
            added = session.enqueue_many(rest)
            return EnqueueOutcome(started=first, queued=added, dropped=len(rest) - added)

        if len(tracks) == 1:
            position = session.enqueue(tracks[0])
            return EnqueueOutcome(queued=1, position=position)

        added = session.enqueue_many(tracks)
        return EnqueueOutcome(queued=added, dropped=len(tracks) - added)

    # ── Pause / resume ──────────────────────────────────────────────

    async def toggle_play_pause(self, session: PlaybackSession) -> bool:
        """Flip pause state; returns True when the session is now paused."""
        state = session.ui
        if session.paused:
            state.cancel_pause_stop()
            await self._engine.resume(session.guild_id)
            session.mark_resumed()
            logger.info(LogTemplates.PLAYBACK_RESUMED, session.guild_id)
            return False

        if session.current is None:
            return False

        position = self._engine.get_position(session.guild_id)
        await self._engine.pause(session.guild_id)
        session.mark_paused(position)
        state.cancel_pause_stop()
        state.pause_stop_task = asyncio.create_task(self._stop_after_long_pause(session))
        logger.info(LogTemplates.PLAYBACK_PAUSED, session.guild_id, position)
        return True

    async def _stop_after_long_pause(self, session: PlaybackSession) -> None:
        await asyncio.sleep(self._pause_auto_stop_s)
        session.ui.pause_stop_task = None
        if not session.paused:
            return
        logger.info(LogTemplates.PLAYBACK_AUTO_STOP, session.guild_id, self._pause_auto_stop_s)
        try:
            await self.perform_stop(session)
        except Exception:
            logger.exception(LogTemplates.SESSION_TEARDOWN_FAILED, session.guild_id, "auto-stop")

    # ── Skip / previous / jump ──────────────────────────────────────

    async def perform_skip(self, session: PlaybackSession) -> bool:
        """Ask the engine to end the current track; the track-end event advances the queue."""
        if not session.upcoming:
            return False

        session.ui.cancel_pause_stop()
        session.paused = False
        session.paused_position_ms = None
        await self._engine.skip(session.guild_id)
        logger.info(LogTemplates.TRACK_SKIPPED, session.guild_id)
        return True

    async def perform_previous(self, session: PlaybackSession) -> Track | None:
        before = session.snapshot()
        previous = session.step_back()
        if previous is None:
            return None

        await self._play_or_restore(session, previous, before)
        logger.info(LogTemplates.TRACK_PREVIOUS, previous.title, session.guild_id)
        return previous

    async def jump(self, session: PlaybackSession, index: int) -> Track:
        before = session.snapshot()
        target = session.jump_to(index)
        await self._play_or_restore(session, target, before)
        logger.info(LogTemplates.TRACK_JUMPED, target.title, index, session.guild_id)
        return target

    async def _play_or_restore(self, session: PlaybackSession, track: Track, before: dict) -> None:
        try:
            await self._engine.play(session.guild_id, track)
        except AudioEngineError:
            session.restore(before)
            raise
        session.ui.cancel_pause_stop()
        session.playing = True

    def shuffle(self, session: PlaybackSession) -> bool:
        if len(session.upcoming) < 2:
            return False
        session.shuffle_upcoming()
        logger.info(LogTemplates.QUEUE_SHUFFLED, len(session.upcoming), session.guild_id)
        return True

    def clear_queue(self, session: PlaybackSession) -> int:
        """Empty upcoming and history, leaving the current track playing."""
        removed = session.clear_queue()
        if removed:
            logger.info(LogTemplates.QUEUE_CLEARED, removed, session.guild_id)
        return removed

    # ── Volume / seek ───────────────────────────────────────────────

    async def set_volume(self, session: PlaybackSession, volume: int) -> int:
        volume = max(0, min(100, volume))
        await self._engine.set_volume(session.guild_id, volume)
        session.volume = volume
        return volume

    async def set_speed(self, session: PlaybackSession, speed: float) -> float:
        speed = round(max(MIN_SPEED, min(MAX_SPEED, speed)), 2)
        await self._engine.set_speed(session.guild_id, speed)
        session.speed = speed
        logger.info(LogTemplates.PLAYBACK_SPEED_SET, speed, session.guild_id)
        return speed

    async def seek(self, session: PlaybackSession, position_ms: int) -> int:
        if session.current is None:
            return 0
        if session.current.duration_ms:
            position_ms = min(position_ms, session.current.duration_ms)
        position_ms = max(0, position_ms)
        await self._engine.seek(session.guild_id, position_ms)
        session.position_ms = position_ms
        if session.paused:
            session.paused_position_ms = position_ms
        return position_ms

    # ── Stop ────────────────────────────────────────────────────────

    async def perform_stop(self, session: PlaybackSession) -> None:
        """Stop playback, clear every queue and leave a "stopped" status message.

        Safe to call repeatedly. Session state is cleared before the engine
        call so a track-end event arriving mid-await finds nothing to advance.
        """
        guild_id = session.guild_id
        session.ui.cancel_pause_stop()
        session.ui.cancel_confirmation()
        session.clear()

        try:
            await self._engine.stop_playing(guild_id)
        except AudioEngineError as e:
            logger.warning(LogTemplates.PLAYBACK_ENGINE_STOP_FAILED, guild_id, e)

        session.ui.detach_collector()
        session.ui.cancel_periodic()
        session.ui.cancel_pending_refresh()

        session.volume = self._default_volume
        try:
            await self._engine.set_volume(guild_id, self._default_volume)
        except AudioEngineError as e:
            logger.warning(LogTemplates.PLAYBACK_VOLUME_RESET_FAILED, guild_id, e)

        await self._ui.show_stopped(session)
        logger.info(LogTemplates.PLAYBACK_STOPPED, guild_id)

    # ── Teardown ────────────────────────────────────────────────────

    async def teardown(self, session: PlaybackSession, *, leave_voice: bool = True) -> None:
        """Drop every UI handle, optionally leave voice, and release the engine player.

        The caller removes the session from the registry afterwards.
        """
        guild_id = session.guild_id
        session.ui.reset()
        session.clear()
        session.connected = False
        if leave_voice:
            await self._engine.disconnect(guild_id)
        try:
            await self._engine.destroy_player(guild_id)
        except AudioEngineError as e:
            logger.warning(LogTemplates.SESSION_TEARDOWN_FAILED, guild_id, e)

"""Periodic sweeps for stale side messages and orphaned players."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from newi_music_bot.domain.shared.exceptions import AudioEngineError
from newi_music_bot.domain.shared.messages import LogTemplates
from newi_music_bot.domain.shared.types import NonNegativeInt, utcnow

if TYPE_CHECKING:
    from ....application.interfaces.audio_engine import AudioEngine
    from ....application.services.session_registry import SessionRegistry
    from ....config.settings import CleanupSettings
    from ....domain.music.entities import PlaybackSession
    from .message_state_manager import MessageStateManager
    from .now_playing_manager import NowPlayingManager

logger = logging.getLogger(__name__)


class CleanupStats(BaseModel):
    stale_messages: NonNegativeInt = 0
    cooldowns_pruned: NonNegativeInt = 0
    orphaned_players: NonNegativeInt = 0


class CleanupManager:
    """Runs the stale-message and orphaned-player sweeps on their own intervals.

    Event-driven teardown covers most cases; these sweeps catch what slips
    through (a guild vanishing while the bot was offline, a voice kick missed
    during a gateway reconnect).
    """

    def __init__(
        self,
        *,
        client: Any,
        registry: SessionRegistry,
        engine: AudioEngine,
        message_state: MessageStateManager,
        now_playing: NowPlayingManager,
        settings: CleanupSettings,
    ) -> None:
        self._client = client
        self._registry = registry
        self._engine = engine
        self._message_state = message_state
        self._now_playing = now_playing
        self._settings = settings
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        if self._tasks:
            logger.warning(LogTemplates.CLEANUP_ALREADY_RUNNING)
            return

        self._tasks["messages"] = asyncio.create_task(
            self._run_loop("messages", self._message_cycle, self._settings.stale_message_interval_minutes)
        )
        self._tasks["players"] = asyncio.create_task(
            self._run_loop("players", self.sweep_orphaned_players, self._settings.orphan_player_interval_minutes)
        )
        logger.info(LogTemplates.CLEANUP_STARTED)

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if tasks:
            logger.info(LogTemplates.CLEANUP_STOPPED)

    async def _run_loop(self, name: str, sweep: Callable[[], Awaitable[int]], interval_minutes: float) -> None:
        interval_seconds = interval_minutes * 60
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await sweep()
            except Exception:
                logger.exception(LogTemplates.CLEANUP_SWEEP_FAILED, name)

    async def run_cleanup(self) -> CleanupStats:
        """Run both sweeps once, outside the timers."""
        stats = CleanupStats()
        stats.stale_messages = await self.sweep_stale_messages()
        stats.cooldowns_pruned = self.prune_cooldowns()
        stats.orphaned_players = await self.sweep_orphaned_players()
        return stats

    # ── Stale side messages ─────────────────────────────────────────

    async def sweep_stale_messages(self) -> int:
        max_age = self._settings.message_max_age_minutes * 60
        now = utcnow()
        removed = 0
        for entry in self._message_state.entries():
            if entry.message is None or entry.age_seconds(now) > max_age:
                self._message_state.discard(entry.message_id)
                removed += 1

        if removed:
            logger.info(LogTemplates.CLEANUP_STALE_REMOVED, removed)
        return removed

    def prune_cooldowns(self) -> int:
        return self._now_playing.prune_cooldowns(self._settings.cooldown_retention_minutes * 60)

    async def _message_cycle(self) -> int:
        removed = await self.sweep_stale_messages()
        self.prune_cooldowns()
        return removed

    # ── Orphaned players ────────────────────────────────────────────

    def _orphan_reason(self, session: PlaybackSession) -> str | None:
        guild = self._client.get_guild(session.guild_id)
        if guild is None:
            return "guild gone"
        user = self._client.user
        if session.voice_channel_id is None or user is None:
            return None

        channel = guild.get_channel(session.voice_channel_id)
        if channel is None:
            return "voice channel gone"
        if not any(member.id == user.id for member in getattr(channel, "members", ())):
            return "bot not in voice"
        return None

    async def sweep_orphaned_players(self) -> int:
        removed = 0
        for session in self._registry.all():
            guild_id = session.guild_id
            try:
                reason = self._orphan_reason(session)
                if reason is None:
                    continue
                session.ui.reset()
                session.clear()
                await self._engine.destroy_player(guild_id)
                logger.info(LogTemplates.CLEANUP_ORPHAN_REMOVED, guild_id, reason)
            except AudioEngineError as e:
                logger.error(LogTemplates.CLEANUP_ORPHAN_FAILED, guild_id, e)
            except Exception as e:
                logger.exception(LogTemplates.CLEANUP_ORPHAN_FAILED, guild_id, e)
                continue
            self._registry.remove(guild_id)
            removed += 1
        return removed

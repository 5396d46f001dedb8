"""
Lavalink node health monitoring and reconnect handling.

Every "node is down" signal (disconnect, error and destroy events, plus a
failed health probe) lands in :meth:`ReconnectMonitor.handle_node_down`,
which tears down the sessions on that node and schedules backoff
reconnects. A per-node guard keeps overlapping signals from running the
cleanup twice.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from newi_music_bot.domain.shared.events import NODE_DOWN_EVENTS, NodeConnected
from newi_music_bot.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...application.interfaces.audio_engine import AudioEngine, AudioNode
    from ...application.interfaces.now_playing_ui import NowPlayingUI
    from ...application.services.session_registry import SessionRegistry
    from ...config.settings import HealthSettings, ReconnectSettings
    from ...domain.music.entities import PlaybackSession, Track
    from ...domain.shared.events import DomainEvent, EventBus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResumeSnapshot:
    """What was playing in a guild when its node went down."""

    guild_id: int
    node_label: str | None
    text_channel_id: int | None
    voice_channel_id: int
    track: Track
    upcoming: tuple[Track, ...]
    position_ms: int
    volume: int


class ReconnectMonitor:
    def __init__(
        self,
        *,
        engine: AudioEngine,
        registry: SessionRegistry,
        ui: NowPlayingUI,
        event_bus: EventBus,
        health: HealthSettings,
        reconnect: ReconnectSettings,
        auto_resume: bool = False,
    ) -> None:
        self._engine = engine
        self._registry = registry
        self._ui = ui
        self._bus = event_bus
        self._health = health
        self._reconnect = reconnect
        self._auto_resume = auto_resume

        self._cleanup_in_progress: set[str] = set()
        self._attempts: dict[str, int] = {}
        self._abandoned: set[str] = set()
        self._reconnect_tasks: dict[str, asyncio.Task[None]] = {}
        self._resume_snapshots: dict[int, ResumeSnapshot] = {}

        self.quick_task: asyncio.Task[None] | None = None
        self.deep_task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self.quick_task is not None or self.deep_task is not None

    def attempts(self, label: str) -> int:
        return self._attempts.get(label, 0)

    def is_reconnecting(self, label: str) -> bool:
        task = self._reconnect_tasks.get(label)
        return task is not None and not task.done()

    # ── Wiring ──────────────────────────────────────────────────────

    def subscribe(self) -> None:
        self._bus.subscribe(NodeConnected, self.on_node_connected)
        for event_type in NODE_DOWN_EVENTS:
            self._bus.subscribe(event_type, self.on_node_down)

    def unsubscribe(self) -> None:
        self._bus.unsubscribe(NodeConnected, self.on_node_connected)
        for event_type in NODE_DOWN_EVENTS:
            self._bus.unsubscribe(event_type, self.on_node_down)

    def start(self) -> None:
        if self.quick_task is None:
            self.quick_task = asyncio.create_task(self._quick_loop())
        if self.deep_task is None:
            self.deep_task = asyncio.create_task(self._deep_loop())
        logger.info(
            LogTemplates.HEALTH_MONITOR_STARTED,
            self._health.quick_check_interval_s,
            self._health.deep_check_interval_s,
        )

    async def stop(self) -> None:
        tasks = [t for t in (self.quick_task, self.deep_task, *self._reconnect_tasks.values()) if t is not None]
        self.quick_task = None
        self.deep_task = None
        self._reconnect_tasks.clear()

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if tasks:
            logger.info(LogTemplates.HEALTH_MONITOR_STOPPED)

    # ── Node down ───────────────────────────────────────────────────

    async def on_node_down(self, event: DomainEvent) -> None:
        await self.handle_node_down(event.node_label, getattr(event, "reason", "") or type(event).__name__)

    async def handle_node_down(self, label: str, reason: str) -> int:
        """Tear down every session on ``label`` and schedule a reconnect.

        Returns the number of sessions removed; 0 when another cleanup for the
        same node is already running.
        """
        if label in self._cleanup_in_progress:
            logger.debug(LogTemplates.NODE_CLEANUP_IN_PROGRESS, label, reason)
            return 0

        self._cleanup_in_progress.add(label)
        logger.warning(LogTemplates.NODE_DOWN, label, reason)
        removed = 0
        try:
            for session in self._registry.for_node(label):
                await self._cleanup_session(session, label, reason)
                removed += 1
            logger.info(LogTemplates.NODE_CLEANUP_DONE, label, removed)
        finally:
            self._cleanup_in_progress.discard(label)

        self.schedule_reconnect(label)
        return removed

    async def _cleanup_session(self, session: PlaybackSession, label: str, reason: str) -> None:
        guild_id = session.guild_id
        logger.warning(LogTemplates.NODE_CLEANUP_SESSION, guild_id, label, reason)
        try:
            if not self._engine.is_voice_connected(guild_id):
                session.ui.reset()
                session.clear()
            elif session.current is not None or session.playing:
                self._remember_for_resume(session, label)
                session.clear()
                await self._ui.show_stopped(session)
                await self._engine.disconnect(guild_id)
                await self._engine.destroy_player(guild_id)
            else:
                session.ui.reset()
                await self._engine.disconnect(guild_id)
                await self._engine.destroy_player(guild_id)
        except Exception:
            logger.exception(LogTemplates.NODE_CLEANUP_SESSION_FAILED, guild_id)
            await self._force_teardown(session)
        finally:
            self._registry.remove(guild_id)

    async def _force_teardown(self, session: PlaybackSession) -> None:
        guild_id = session.guild_id
        session.clear()
        try:
            await self._ui.show_stopped(session)
        except Exception as e:
            logger.error(LogTemplates.NODE_CLEANUP_FORCE_FAILED, guild_id, e)
        try:
            await self._engine.disconnect(guild_id)
            await self._engine.destroy_player(guild_id)
        except Exception as e:
            logger.error(LogTemplates.NODE_CLEANUP_FORCE_FAILED, guild_id, e)
        session.ui.reset()

    def _remember_for_resume(self, session: PlaybackSession, label: str) -> None:
        if not self._auto_resume or session.current is None or session.voice_channel_id is None:
            return
        self._resume_snapshots[session.guild_id] = ResumeSnapshot(
            guild_id=session.guild_id,
            node_label=label,
            text_channel_id=session.text_channel_id,
            voice_channel_id=session.voice_channel_id,
            track=session.current,
            upcoming=tuple(session.upcoming),
            position_ms=session.display_position_ms,
            volume=session.volume,
        )

    # ── Reconnect ───────────────────────────────────────────────────

    def _node(self, label: str) -> AudioNode | None:
        return next((n for n in self._engine.nodes() if n.label == label), None)

    def schedule_reconnect(self, label: str) -> None:
        if self.is_reconnecting(label) or label in self._abandoned:
            return
        self._reconnect_tasks[label] = asyncio.create_task(self._reconnect_loop(label))

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the 1-based ``attempt``: base, 2x base, 4x base, ..."""
        return self._reconnect.base_delay_s * 2 ** (attempt - 1)

    async def _reconnect_loop(self, label: str) -> None:
        node = self._node(label)
        if node is None:
            return

        max_attempts = self._reconnect.max_attempts
        while True:
            attempt = self._attempts.get(label, 0) + 1
            if attempt > max_attempts:
                self._abandoned.add(label)
                logger.error(LogTemplates.NODE_RECONNECT_ABANDONED, label, max_attempts)
                return

            self._attempts[label] = attempt
            delay = self.backoff_delay(attempt)
            logger.info(LogTemplates.NODE_RECONNECT_SCHEDULED, label, delay, attempt, max_attempts)
            await asyncio.sleep(delay)

            if node.connected:
                self._attempts.pop(label, None)
                return
            try:
                await node.connect()
            except Exception as e:
                logger.warning(LogTemplates.NODE_RECONNECT_FAILED, attempt, label, e)
                continue

            self._attempts.pop(label, None)
            return

    async def on_node_connected(self, event: NodeConnected) -> None:
        label = event.node_label
        self._attempts.pop(label, None)
        self._abandoned.discard(label)
        logger.info(LogTemplates.NODE_CONNECTED, label)

        if not self._auto_resume:
            return

        pending = [s for s in self._resume_snapshots.values() if s.node_label in (label, None)]
        for snapshot in pending:
            self._resume_snapshots.pop(snapshot.guild_id, None)
            await self._resume(snapshot)

    async def _resume(self, snapshot: ResumeSnapshot) -> None:
        guild_id = snapshot.guild_id
        session = self._registry.get_or_create(
            guild_id,
            text_channel_id=snapshot.text_channel_id,
            voice_channel_id=snapshot.voice_channel_id,
            volume=snapshot.volume,
        )
        if session.current is not None:
            return

        logger.info(LogTemplates.AUTO_RESUME, snapshot.track.title, guild_id)
        try:
            await self._engine.connect(guild_id, snapshot.voice_channel_id)
            session.node_label = self._engine.node_label_for(guild_id)
            session.connected = True
            session.start(snapshot.track)
            session.enqueue_many(snapshot.upcoming)
            await self._engine.play(guild_id, snapshot.track, start_ms=snapshot.position_ms or None)
            await self._engine.set_volume(guild_id, snapshot.volume)
        except Exception as e:
            logger.warning(LogTemplates.AUTO_RESUME_FAILED, guild_id, e)
            session.ui.reset()
            session.clear()
            self._registry.remove(guild_id)

    # ── Health checks ───────────────────────────────────────────────

    def _should_probe(self, node: AudioNode) -> bool:
        label = node.label
        return not (label in self._cleanup_in_progress or label in self._abandoned or self.is_reconnecting(label))

    async def check_quick(self) -> None:
        for node in self._engine.nodes():
            if node.connected or not self._should_probe(node):
                continue
            logger.warning(LogTemplates.HEALTH_QUICK_FAILED, node.label)
            await self.handle_node_down(node.label, "health check: not connected")

    async def check_deep(self) -> None:
        for node in self._engine.nodes():
            if not node.connected or not self._should_probe(node):
                continue
            try:
                await node.fetch_stats(timeout=self._health.probe_timeout_s)
            except Exception as e:
                logger.warning(LogTemplates.HEALTH_DEEP_FAILED, node.label, e)
                await self.handle_node_down(node.label, f"health probe failed: {e!r}")

    async def _quick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._health.quick_check_interval_s)
            try:
                await self.check_quick()
            except Exception:
                logger.exception(LogTemplates.HEALTH_CHECK_ERROR, "quick")

    async def _deep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._health.deep_check_interval_s)
            try:
                await self.check_deep()
            except Exception:
                logger.exception(LogTemplates.HEALTH_CHECK_ERROR, "deep")

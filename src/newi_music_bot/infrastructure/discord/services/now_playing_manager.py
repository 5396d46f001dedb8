"""Lifecycle of the single now-playing status message per guild.

The manager owns sending, editing and recreating the status message, the
button collector bound to it, the stop-confirmation sub-dialog, and the
periodic re-render while playback is ongoing. All runtime handles live on
``session.ui`` so they can be cancelled together with the session.

States per session::

    NoMessage -> Active -> (ConfirmingStop) -> Active | Destroyed
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import discord

from newi_music_bot.application.interfaces.now_playing_ui import NowPlayingUI
from newi_music_bot.domain.shared.messages import LogTemplates
from newi_music_bot.infrastructure.discord.services.now_playing_renderer import (
    ControlAction,
    ControlSpec,
    RenderedFrame,
    render_confirm_controls,
    render_frame,
    render_stopped,
    to_embed,
)
from newi_music_bot.infrastructure.discord.services.refresh_gate import RefreshDecision
from newi_music_bot.infrastructure.discord.services.safe_transport import safe_delete, safe_edit
from newi_music_bot.infrastructure.discord.views.now_playing_view import NowPlayingView

if TYPE_CHECKING:
    from ....application.interfaces.audio_engine import AudioEngine
    from ....application.services.player_controls import PlayerControls
    from ....application.services.session_registry import SessionRegistry
    from ....config.settings import UISettings
    from ....domain.music.entities import NowPlayingState, PlaybackSession
    from .refresh_gate import RefreshGate

logger = logging.getLogger(__name__)

ViewFactory = Callable[..., Any]


class NowPlayingManager(NowPlayingUI):
    def __init__(
        self,
        *,
        registry: SessionRegistry,
        engine: AudioEngine,
        gate: RefreshGate,
        settings: UISettings,
        prefix: str = "/",
        display_count: int = 10,
        channel_resolver: Callable[[int], Any] | None = None,
        view_factory: ViewFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._engine = engine
        self._gate = gate
        self._settings = settings
        self._prefix = prefix
        self._display_count = display_count
        self._channel_resolver = channel_resolver
        self._view_factory = view_factory or NowPlayingView
        self._clock = clock
        self._controls: PlayerControls | None = None
        self._cooldowns: dict[int, float] = {}
        self._handlers: dict[ControlAction, Callable[[PlaybackSession], Awaitable[None]]] = {
            ControlAction.STOP: self._on_stop,
            ControlAction.CONFIRM_STOP: self._on_confirm_stop,
            ControlAction.CANCEL_STOP: self._on_cancel_stop,
            ControlAction.PREVIOUS: self._on_previous,
            ControlAction.PLAY_PAUSE: self._on_play_pause,
            ControlAction.SKIP: self._on_skip,
            ControlAction.SHUFFLE: self._on_shuffle,
        }

    def attach_controls(self, controls: PlayerControls) -> None:
        self._controls = controls

    @property
    def controls(self) -> PlayerControls:
        if self._controls is None:
            raise RuntimeError("PlayerControls not attached")
        return self._controls

    # ── Rendering helpers ───────────────────────────────────────────

    def _render(self, session: PlaybackSession) -> RenderedFrame | None:
        return render_frame(
            session,
            prefix=self._prefix,
            bar_length=self._settings.progress_bar_length,
            display_count=self._display_count,
        )

    def _sync_position(self, session: PlaybackSession) -> None:
        if session.playing and not session.paused:
            session.position_ms = max(0, self._engine.get_position(session.guild_id))

    def _resolve_channel(self, session: PlaybackSession, channel: Any | None) -> Any | None:
        if channel is not None:
            return channel
        if session.ui.message is not None:
            return session.ui.message.channel
        if self._channel_resolver is not None and session.text_channel_id is not None:
            return self._channel_resolver(session.text_channel_id)
        return None

    def _is_stale(self, state: NowPlayingState) -> bool:
        if state.message_sent_at is None:
            return False
        return self._clock() - state.message_sent_at > self._settings.message_max_age_s

    def _new_view(self, session: PlaybackSession, controls: tuple[ControlSpec, ...]) -> Any:
        return self._view_factory(
            handler=self,
            guild_id=session.guild_id,
            controls=controls,
            timeout=self._settings.collector_timeout_s,
        )

    def _invalidate(self, state: NowPlayingState) -> None:
        state.detach_collector()
        state.forget_message()

    # ── Message lifecycle ───────────────────────────────────────────

    async def ensure_message(self, session: PlaybackSession, channel: Any | None = None) -> discord.Message | None:
        """Return the live status message, sending a fresh one when there is none.

        A message older than ``message_max_age_s`` is deleted and replaced so
        the panel stays near the bottom of the channel.
        """
        state = session.ui
        if state.message is not None and not self._is_stale(state):
            return state.message

        target = self._resolve_channel(session, channel)

        if state.message is not None:
            logger.info(LogTemplates.NOW_PLAYING_STALE, session.guild_id, self._settings.message_max_age_s)
            old = state.message
            self._invalidate(state)
            try:
                await safe_delete(old)
            except discord.DiscordException as e:
                logger.debug(LogTemplates.NOW_PLAYING_SEND_FAILED, session.guild_id, e)

        frame = self._render(session)
        if frame is None:
            return None
        if target is None:
            logger.debug(LogTemplates.NOW_PLAYING_NO_CHANNEL, session.guild_id)
            return None

        state.detach_collector()
        view = self._new_view(session, frame.controls)
        try:
            message = await target.send(embed=to_embed(frame.embed), view=view)
        except discord.DiscordException as e:
            view.stop()
            logger.warning(LogTemplates.NOW_PLAYING_SEND_FAILED, session.guild_id, e)
            return None

        view.set_message(message)
        state.message = message
        state.message_sent_at = self._clock()
        state.collector = view
        self._gate.record(state, frame)
        self._ensure_periodic(session)
        logger.info(LogTemplates.NOW_PLAYING_SENT, message.id, session.guild_id)
        return message

    async def refresh(self, session: PlaybackSession, channel: Any | None = None, *, fast: bool = False) -> bool:
        state = session.ui
        self._sync_position(session)
        frame = self._render(session)
        if frame is None:
            return False

        if state.message is None or self._is_stale(state):
            return await self.ensure_message(session, channel) is not None

        if state.confirming:
            frame = frame.model_copy(update={"controls": render_confirm_controls()})

        decision = self._gate.decide(state, frame, fast=fast)
        if decision is RefreshDecision.SKIP:
            return False
        if decision is RefreshDecision.DEFER:
            self._schedule_trailing(session)
            return False

        return await self._push(session, frame)

    async def _push(self, session: PlaybackSession, frame: RenderedFrame) -> bool:
        state = session.ui
        embed = to_embed(frame.embed)

        if state.confirming:
            # Leave the confirm/cancel row alone; only the text moves on.
            ok = await safe_edit(state.message, embed=embed)
        else:
            view = state.collector
            if view is None:
                view = self._new_view(session, frame.controls)
                view.set_message(state.message)
                state.collector = view
            else:
                view.apply_controls(frame.controls)
            ok = await safe_edit(state.message, embed=embed, view=view)

        if not ok:
            logger.info(LogTemplates.NOW_PLAYING_LOST, session.guild_id)
            self._invalidate(state)
            return False

        self._gate.record(state, frame)
        self._ensure_periodic(session)
        return True

    async def repost(self, session: PlaybackSession, channel: Any) -> bool:
        """Replace the status message with a fresh one in ``channel``."""
        state = session.ui
        if state.refreshing:
            return False

        state.refreshing = True
        try:
            old = state.message
            self._invalidate(state)
            if old is not None:
                try:
                    await safe_delete(old)
                except discord.DiscordException as e:
                    logger.debug(LogTemplates.NOW_PLAYING_SEND_FAILED, session.guild_id, e)
            self._sync_position(session)
            return await self.ensure_message(session, channel) is not None
        finally:
            state.refreshing = False

    async def show_stopped(self, session: PlaybackSession) -> None:
        state = session.ui
        message = state.message
        state.cancel_timers()
        state.detach_collector()
        state.forget_message()
        if message is None:
            return

        try:
            await safe_edit(message, embed=to_embed(render_stopped(self._prefix)), view=None)
        except discord.DiscordException as e:
            logger.warning(LogTemplates.NOW_PLAYING_STOPPED_RENDER_FAILED, session.guild_id, e)

    async def notify(self, session: PlaybackSession, text: str) -> None:
        channel = self._resolve_channel(session, None)
        if channel is None:
            return
        try:
            await channel.send(text)
        except discord.DiscordException as e:
            logger.warning(LogTemplates.NOTICE_SEND_FAILED, session.guild_id, e)

    async def on_collector_end(self, view: Any) -> None:
        """Strip the buttons from a message whose collector expired."""
        session = self._registry.get(view.guild_id)
        if session is not None and session.ui.collector is view:
            session.ui.collector = None

        message = view.message
        if message is None:
            return
        try:
            await safe_edit(message, view=None)
        except discord.DiscordException as e:
            logger.debug(LogTemplates.NOW_PLAYING_CLEAR_CONTROLS_FAILED, view.guild_id, e)

    # ── Timers ──────────────────────────────────────────────────────

    def schedule_refresh(self, session: PlaybackSession, delay: float, *, fast: bool = False) -> None:
        state = session.ui
        state.cancel_pending_refresh()
        state.pending_refresh = asyncio.create_task(self._refresh_after(session, delay, fast=fast))

    def _schedule_trailing(self, session: PlaybackSession) -> None:
        state = session.ui
        if state.pending_refresh is not None and not state.pending_refresh.done():
            return
        delay = self._gate.remaining(state)
        state.pending_refresh = asyncio.create_task(self._refresh_after(session, delay))

    async def _refresh_after(self, session: PlaybackSession, delay: float, *, fast: bool = False) -> None:
        try:
            if delay > 0:
                await asyncio.sleep(delay)
            if session.ui.pending_refresh is asyncio.current_task():
                session.ui.pending_refresh = None
            if self._registry.get(session.guild_id) is not session:
                return
            await self.refresh(session, fast=fast)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(LogTemplates.NOW_PLAYING_REFRESH_FAILED, session.guild_id)

    def _ensure_periodic(self, session: PlaybackSession) -> None:
        state = session.ui
        if not session.is_active:
            return
        if state.periodic_task is not None and not state.periodic_task.done():
            return
        state.periodic_task = asyncio.create_task(self._periodic(session))

    async def _periodic(self, session: PlaybackSession) -> None:
        state = session.ui
        try:
            while True:
                await asyncio.sleep(self._settings.refresh_interval_s)
                if not session.is_active or self._registry.get(session.guild_id) is not session:
                    break
                try:
                    await self.refresh(session)
                except Exception:
                    logger.exception(LogTemplates.NOW_PLAYING_REFRESH_FAILED, session.guild_id)
        finally:
            if state.periodic_task is asyncio.current_task():
                state.periodic_task = None
            logger.debug(LogTemplates.NOW_PLAYING_PERIODIC_ENDED, session.guild_id)

    # ── Button dispatch ─────────────────────────────────────────────

    async def handle_interaction(self, guild_id: int, interaction: discord.Interaction, action: ControlAction) -> None:
        user_id = interaction.user.id
        now = self._clock()
        last = self._cooldowns.get(user_id)
        if last is not None and now - last < self._settings.button_cooldown_s:
            logger.debug(LogTemplates.BUTTON_COOLDOWN, action, user_id)
            await self._acknowledge(interaction, action)
            return
        self._cooldowns[user_id] = now

        await self._acknowledge(interaction, action)

        session = self._registry.get(guild_id)
        handler = self._handlers.get(action)
        if session is None or handler is None:
            return

        try:
            await handler(session)
        except Exception:
            logger.exception(LogTemplates.BUTTON_HANDLER_FAILED, action, guild_id)

    async def _acknowledge(self, interaction: discord.Interaction, action: ControlAction) -> None:
        if interaction.response.is_done():
            return
        try:
            await interaction.response.defer()
        except discord.HTTPException as e:
            logger.debug(LogTemplates.BUTTON_ACK_FAILED, action, e)

    def prune_cooldowns(self, max_age_s: float) -> int:
        cutoff = self._clock() - max_age_s
        expired = [user_id for user_id, at in self._cooldowns.items() if at < cutoff]
        for user_id in expired:
            del self._cooldowns[user_id]
        return len(expired)

    async def _on_stop(self, session: PlaybackSession) -> None:
        state = session.ui
        if state.confirming or state.message is None:
            return

        view = state.collector
        if view is None:
            view = self._new_view(session, render_confirm_controls())
            view.set_message(state.message)
            state.collector = view
        else:
            view.show_confirmation()

        timeout = self._settings.stop_confirmation_timeout_s
        state.confirm_expires_at = self._clock() + timeout
        state.confirm_task = asyncio.create_task(self._expire_confirmation(session, timeout))

        if not await safe_edit(state.message, view=view):
            state.cancel_confirmation()
            self._invalidate(state)

    async def _expire_confirmation(self, session: PlaybackSession, timeout: float) -> None:
        await asyncio.sleep(timeout)
        state = session.ui
        if state.confirm_task is not asyncio.current_task():
            return
        state.confirm_task = None
        state.confirm_expires_at = None

        logger.info(LogTemplates.STOP_CONFIRM_EXPIRED, session.guild_id)
        try:
            await self._restore_controls(session)
        except Exception:
            logger.exception(LogTemplates.BUTTON_HANDLER_FAILED, ControlAction.STOP, session.guild_id)

    async def _restore_controls(self, session: PlaybackSession) -> None:
        if session.current is None:
            return
        await self.refresh(session, fast=True)

    async def _on_confirm_stop(self, session: PlaybackSession) -> None:
        session.ui.cancel_confirmation()
        await self.controls.perform_stop(session)
        session.ui.detach_collector()

    async def _on_cancel_stop(self, session: PlaybackSession) -> None:
        session.ui.cancel_confirmation()
        await self._restore_controls(session)

    async def _on_previous(self, session: PlaybackSession) -> None:
        if await self.controls.perform_previous(session) is not None:
            self.schedule_refresh(session, self._settings.immediate_update_interval_s, fast=True)

    async def _on_play_pause(self, session: PlaybackSession) -> None:
        await self.controls.toggle_play_pause(session)
        self.schedule_refresh(session, self._settings.immediate_update_interval_s, fast=True)

    async def _on_skip(self, session: PlaybackSession) -> None:
        # The track-end event advances the queue; give it a moment to land first.
        if await self.controls.perform_skip(session):
            self.schedule_refresh(session, self._settings.skip_refresh_delay_s, fast=True)

    async def _on_shuffle(self, session: PlaybackSession) -> None:
        if self.controls.shuffle(session):
            self.schedule_refresh(session, self._settings.immediate_update_interval_s, fast=True)

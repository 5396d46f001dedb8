"""Slash-command music cog delegating to the session registry, player controls and now-playing UI."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from newi_music_bot.domain.music.value_objects import LoadType
from newi_music_bot.domain.shared.exceptions import AudioEngineError, DomainError
from newi_music_bot.domain.shared.messages import DiscordUIMessages, ErrorMessages
from newi_music_bot.infrastructure.discord.services.message_state_manager import MessageKind
from newi_music_bot.infrastructure.discord.views.clear_confirm_view import ClearConfirmView
from newi_music_bot.infrastructure.discord.views.playlist_view import PlaylistView
from newi_music_bot.infrastructure.discord.views.search_view import MAX_RESULTS, SearchView
from newi_music_bot.utils.reply import (
    format_clock,
    format_track_title,
    is_url,
    parse_timestamp,
    truncate,
)

if TYPE_CHECKING:
    from ....config.container import Container
    from ....domain.music.entities import PlaybackSession, Track

logger = logging.getLogger(__name__)

QUEUE_LISTING_LIMIT = 10


class MusicCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    async def _reply(self, interaction: discord.Interaction, message: str, *, ephemeral: bool = False) -> None:
        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=ephemeral)
        else:
            await interaction.response.send_message(message, ephemeral=ephemeral)

    async def _send_ephemeral(self, interaction: discord.Interaction, message: str) -> None:
        await self._reply(interaction, message, ephemeral=True)

    async def _reply_error(self, interaction: discord.Interaction, error: DomainError) -> None:
        if isinstance(error, AudioEngineError):
            logger.warning("Audio engine failure during '%s': %s", error.operation, error.message)
            await self._send_ephemeral(interaction, DiscordUIMessages.ERROR_ENGINE_RETRY)
        else:
            await self._send_ephemeral(interaction, error.message)

    async def _get_member(self, interaction: discord.Interaction) -> discord.Member | None:
        if not interaction.guild:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return None

        user = interaction.user
        if not isinstance(user, discord.Member):
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_VERIFY_VOICE_FAILED)
            return None

        return user

    async def _get_voice_member(self, interaction: discord.Interaction) -> discord.Member | None:
        member = await self._get_member(interaction)
        if member is None:
            return None

        if not member.voice or not member.voice.channel:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_MUST_BE_IN_VOICE)
            return None

        return member

    async def _get_playing_session(self, interaction: discord.Interaction) -> PlaybackSession | None:
        if not interaction.guild:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return None

        session = self.container.session_registry.get(interaction.guild.id)
        if session is None or session.current is None:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_NOTHING_PLAYING)
            return None

        return session

    async def _join(self, interaction: discord.Interaction, member: discord.Member) -> PlaybackSession:
        """Get or create the guild session and make sure the bot sits in the member's channel.

        Raises AudioEngineError when the voice connection fails.
        """
        assert interaction.guild is not None
        assert member.voice is not None and member.voice.channel is not None

        guild_id = interaction.guild.id
        channel_id = member.voice.channel.id
        engine = self.container.audio_engine

        session = self.container.session_registry.get_or_create(
            guild_id,
            text_channel_id=interaction.channel_id,
            voice_channel_id=channel_id,
            volume=self.container.settings.audio.default_volume,
        )

        if not engine.is_voice_connected(guild_id):
            await engine.connect(guild_id, channel_id)
            session.connected = True
        session.node_label = engine.node_label_for(guild_id)
        return session

    def _refresh_soon(self, session: PlaybackSession, delay: float | None = None) -> None:
        ui = self.container.settings.ui
        self.container.now_playing_manager.schedule_refresh(
            session, ui.immediate_update_interval_s if delay is None else delay, fast=True
        )

    async def _enqueue(
        self,
        interaction: discord.Interaction,
        session: PlaybackSession,
        tracks: list[Track],
        *,
        playlist_name: str | None = None,
    ) -> None:
        outcome = await self.container.player_controls.enqueue_and_play(session, tracks)

        lines: list[str] = []
        if outcome.started is not None:
            lines.append(DiscordUIMessages.ACTION_NOW_PLAYING.format(title=self._display_title(outcome.started)))
        if playlist_name is not None:
            count = outcome.queued + (1 if outcome.started is not None else 0)
            summary = DiscordUIMessages.ACTION_PLAYLIST_QUEUED.format(count=count, name=playlist_name)
            if outcome.dropped:
                summary += DiscordUIMessages.ACTION_PLAYLIST_TRUNCATED.format(dropped=outcome.dropped)
            lines.append(summary)
        elif outcome.position is not None:
            lines.append(
                DiscordUIMessages.ACTION_QUEUED.format(
                    title=self._display_title(tracks[0]), position=outcome.position
                )
            )

        if lines:
            await self._reply(interaction, "\n".join(lines))
        self._refresh_soon(session)

    @staticmethod
    def _display_title(track: Track) -> str:
        return truncate(format_track_title(track.title, track.author, track.requested_as_url), 80)

    @staticmethod
    def _stamp(tracks: tuple[Track, ...] | list[Track], member: discord.Member, *, as_url: bool) -> list[Track]:
        return [t.with_request(as_url=as_url, user_id=member.id, user_name=member.display_name) for t in tracks]

    # ─────────────────────────────────────────────────────────────────
    # Play / Search
    # ─────────────────────────────────────────────────────────────────

    @app_commands.command(name="play", description="Play a song by URL or search query.")
    @app_commands.describe(query="URL or search query")
    async def play(self, interaction: discord.Interaction, query: str) -> None:
        member = await self._get_voice_member(interaction)
        if member is None:
            return

        # Defer early because the lookup and voice connection can exceed the 3-second interaction deadline
        await interaction.response.defer()

        try:
            result = await self.container.audio_engine.search(query)
            if result.load_type in (LoadType.EMPTY, LoadType.ERROR) or result.is_empty:
                await self._send_ephemeral(interaction, DiscordUIMessages.ERROR_NO_RESULTS.format(query=query))
                return

            as_url = is_url(query)
            if result.load_type is LoadType.PLAYLIST:
                tracks = self._stamp(result.tracks, member, as_url=as_url)
                playlist_name = result.playlist_name or query
            else:
                tracks = self._stamp(result.tracks[:1], member, as_url=as_url)
                playlist_name = None

            session = await self._join(interaction, member)
            await self._enqueue(interaction, session, tracks, playlist_name=playlist_name)
        except DomainError as e:
            await self._reply_error(interaction, e)

    @app_commands.command(name="search", description="Search and pick from up to 10 results.")
    @app_commands.describe(query="Search query")
    async def search(self, interaction: discord.Interaction, query: str) -> None:
        member = await self._get_voice_member(interaction)
        if member is None:
            return

        await interaction.response.defer()

        try:
            result = await self.container.audio_engine.search(query)
        except AudioEngineError as e:
            await self._reply_error(interaction, e)
            return

        if result.is_empty:
            await self._send_ephemeral(interaction, DiscordUIMessages.ERROR_NO_RESULTS.format(query=query))
            return

        assert interaction.guild is not None
        tracker = self.container.message_state_manager

        def forget(view: SearchView) -> None:
            if view.message is not None:
                tracker.discard(view.message.id)

        view = SearchView(
            guild_id=interaction.guild.id,
            requester_id=member.id,
            tracks=result.tracks[:MAX_RESULTS],
            on_pick=self._on_search_pick,
            on_expire=forget,
        )
        message = await interaction.followup.send(
            DiscordUIMessages.SEARCH_PROMPT.format(query=truncate(query, 80)),
            view=view,
            wait=True,
        )
        view.set_message(message)
        tracker.track(message, kind=MessageKind.SEARCH, guild_id=interaction.guild.id)

    async def _on_search_pick(self, interaction: discord.Interaction, track: Track) -> None:
        member = await self._get_voice_member(interaction)
        if member is None:
            return

        try:
            session = await self._join(interaction, member)
            await self._enqueue(interaction, session, self._stamp([track], member, as_url=False))
        except DomainError as e:
            await self._reply_error(interaction, e)

    # ─────────────────────────────────────────────────────────────────
    # Transport Controls
    # ─────────────────────────────────────────────────────────────────

    @app_commands.command(name="pause", description="Pause or resume playback.")
    async def pause(self, interaction: discord.Interaction) -> None:
        session = await self._get_playing_session(interaction)
        if session is None:
            return

        try:
            paused = await self.container.player_controls.toggle_play_pause(session)
        except DomainError as e:
            await self._reply_error(interaction, e)
            return

        await self._reply(interaction, DiscordUIMessages.ACTION_PAUSED if paused else DiscordUIMessages.ACTION_RESUMED)
        self._refresh_soon(session)

    @app_commands.command(name="skip", description="Skip to the next track.")
    async def skip(self, interaction: discord.Interaction) -> None:
        session = await self._get_playing_session(interaction)
        if session is None:
            return

        try:
            skipped = await self.container.player_controls.perform_skip(session)
        except DomainError as e:
            await self._reply_error(interaction, e)
            return

        if not skipped:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_QUEUE_EMPTY)
            return

        await self._reply(interaction, DiscordUIMessages.ACTION_SKIPPED)
        self._refresh_soon(session, self.container.settings.ui.skip_refresh_delay_s)

    @app_commands.command(name="previous", description="Play the previous track again.")
    async def previous(self, interaction: discord.Interaction) -> None:
        session = await self._get_playing_session(interaction)
        if session is None:
            return

        try:
            track = await self.container.player_controls.perform_previous(session)
        except DomainError as e:
            await self._reply_error(interaction, e)
            return

        if track is None:
            await self._send_ephemeral(interaction, DiscordUIMessages.ERROR_NO_PREVIOUS)
            return

        await self._reply(interaction, DiscordUIMessages.ACTION_PREVIOUS.format(title=self._display_title(track)))
        self._refresh_soon(session)

    @app_commands.command(name="stop", description="Stop playback and clear the queue.")
    async def stop(self, interaction: discord.Interaction) -> None:
        session = await self._get_playing_session(interaction)
        if session is None:
            return

        await self.container.player_controls.perform_stop(session)
        await self._reply(interaction, DiscordUIMessages.ACTION_STOPPED)

    @app_commands.command(name="shuffle", description="Shuffle the upcoming tracks.")
    async def shuffle(self, interaction: discord.Interaction) -> None:
        session = await self._get_playing_session(interaction)
        if session is None:
            return

        if not self.container.player_controls.shuffle(session):
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_NOT_ENOUGH_TRACKS_TO_SHUFFLE)
            return

        await self._reply(interaction, DiscordUIMessages.ACTION_SHUFFLED)
        self._refresh_soon(session)

    @app_commands.command(name="jump", description="Jump to a track by its queue number (negative for history).")
    @app_commands.describe(index="Number shown by /queue: 1 is the next track, -1 the last one played")
    async def jump(self, interaction: discord.Interaction, index: int) -> None:
        session = await self._get_playing_session(interaction)
        if session is None:
            return

        try:
            track = await self.container.player_controls.jump(session, index)
        except DomainError as e:
            await self._reply_error(interaction, e)
            return

        await self._reply(interaction, DiscordUIMessages.ACTION_JUMPED.format(title=self._display_title(track)))
        self._refresh_soon(session)

    @app_commands.command(name="volume", description="Set the playback volume.")
    @app_commands.describe(level="Volume from 0 to 100")
    async def volume(self, interaction: discord.Interaction, level: app_commands.Range[int, 0, 100]) -> None:
        session = await self._get_playing_session(interaction)
        if session is None:
            return

        try:
            applied = await self.container.player_controls.set_volume(session, level)
        except DomainError as e:
            await self._reply_error(interaction, e)
            return

        await self._reply(interaction, DiscordUIMessages.ACTION_VOLUME_SET.format(volume=applied))

    @app_commands.command(name="seek", description="Seek within the current track.")
    @app_commands.describe(timestamp="Position as seconds, mm:ss or hh:mm:ss")
    async def seek(self, interaction: discord.Interaction, timestamp: str) -> None:
        seconds = parse_timestamp(timestamp)
        if seconds is None:
            await self._send_ephemeral(interaction, DiscordUIMessages.ERROR_INVALID_TIMESTAMP)
            return

        session = await self._get_playing_session(interaction)
        if session is None:
            return

        try:
            position = await self.container.player_controls.seek(session, seconds * 1000)
        except DomainError as e:
            await self._reply_error(interaction, e)
            return

        await self._reply(interaction, DiscordUIMessages.ACTION_SEEKED.format(position=format_clock(position)))
        self._refresh_soon(session)

    @app_commands.command(name="speed", description="Change the playback speed.")
    @app_commands.describe(rate="Speed multiplier, e.g. 1.25 for 25% faster")
    async def speed(self, interaction: discord.Interaction, rate: app_commands.Range[float, 0.25, 3.0]) -> None:
        session = await self._get_playing_session(interaction)
        if session is None:
            return

        try:
            applied = await self.container.player_controls.set_speed(session, rate)
        except DomainError as e:
            await self._reply_error(interaction, e)
            return

        await self._reply(interaction, DiscordUIMessages.ACTION_SPEED_SET.format(speed=f"{applied:g}"))
        self._refresh_soon(session)

    # ─────────────────────────────────────────────────────────────────
    # Queue / Panel
    # ─────────────────────────────────────────────────────────────────

    @app_commands.command(name="queue", description="Show upcoming and recently played tracks.")
    async def queue(self, interaction: discord.Interaction) -> None:
        if not interaction.guild:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        session = self.container.session_registry.get(interaction.guild.id)
        if session is None or (session.current is None and not session.upcoming and not session.history):
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_QUEUE_EMPTY)
            return

        embed = build_queue_embed(session)
        await interaction.response.send_message(embed=embed)
        message = await interaction.original_response()
        self.container.message_state_manager.track(message, kind=MessageKind.QUEUE, guild_id=interaction.guild.id)

    @app_commands.command(name="clear", description="Clear the queue and history, keeping the current track.")
    async def clear(self, interaction: discord.Interaction) -> None:
        session = await self._get_playing_session(interaction)
        if session is None:
            return

        if not session.upcoming and not session.history:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_NOTHING_TO_CLEAR)
            return

        tracker = self.container.message_state_manager

        async def confirm() -> None:
            self.container.player_controls.clear_queue(session)
            self._refresh_soon(session)

        def forget(view: ClearConfirmView) -> None:
            if view.message is not None:
                tracker.discard(view.message.id)

        view = ClearConfirmView(
            guild_id=session.guild_id,
            requester_id=interaction.user.id,
            on_confirm=confirm,
            on_close=forget,
        )
        await interaction.response.send_message(DiscordUIMessages.CLEAR_PROMPT, view=view)
        message = await interaction.original_response()
        view.set_message(message)
        tracker.track(message, kind=MessageKind.CONFIRM, guild_id=session.guild_id)

    @app_commands.command(name="playlist", description="Show history, current track and queue page by page.")
    async def playlist(self, interaction: discord.Interaction) -> None:
        session = await self._get_playing_session(interaction)
        if session is None:
            return

        settings = self.container.settings
        tracker = self.container.message_state_manager

        def forget(view: PlaylistView) -> None:
            if view.message is not None:
                tracker.discard(view.message.id)

        view = PlaylistView(
            session=session,
            page_size=settings.audio.playlist_page_size,
            prefix=settings.discord.command_prefix,
            on_close=forget,
        )
        if len(view.pages) == 1:
            await interaction.response.send_message(embed=view.build_embed())
            return

        await interaction.response.send_message(embed=view.build_embed(), view=view)
        message = await interaction.original_response()
        view.set_message(message)
        tracker.track(message, kind=MessageKind.PLAYLIST, guild_id=session.guild_id)

    @app_commands.command(name="nowplaying", description="Re-post the now-playing panel in this channel.")
    async def nowplaying(self, interaction: discord.Interaction) -> None:
        session = await self._get_playing_session(interaction)
        if session is None:
            return

        if session.ui.refreshing:
            await self._send_ephemeral(interaction, DiscordUIMessages.ERROR_PANEL_BUSY)
            return

        await interaction.response.defer(ephemeral=True)
        session.text_channel_id = interaction.channel_id
        if await self.container.now_playing_manager.repost(session, interaction.channel):
            await self._send_ephemeral(interaction, DiscordUIMessages.ACTION_PANEL_REFRESHED)
        else:
            await self._send_ephemeral(interaction, DiscordUIMessages.ERROR_PANEL_FAILED)

    @app_commands.command(name="disconnect", description="Leave the voice channel.")
    async def disconnect(self, interaction: discord.Interaction) -> None:
        if not interaction.guild:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        guild_id = interaction.guild.id
        registry = self.container.session_registry
        engine = self.container.audio_engine
        session = registry.get(guild_id)

        if session is None and not engine.has_player(guild_id):
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_NOT_CONNECTED_TO_VOICE)
            return

        try:
            if session is not None:
                await self.container.player_controls.teardown(session)
            else:
                await engine.disconnect(guild_id)
                await engine.destroy_player(guild_id)
        except DomainError as e:
            logger.warning("Disconnect in guild %s hit an error: %s", guild_id, e)
        finally:
            registry.remove(guild_id)

        await self._reply(interaction, DiscordUIMessages.ACTION_DISCONNECTED)


def build_queue_embed(session: PlaybackSession, limit: int = QUEUE_LISTING_LIMIT) -> discord.Embed:
    """Upcoming tracks numbered from 1 and history numbered from -1, newest first.

    The numbers are the ones ``/jump`` accepts.
    """
    embed = discord.Embed(title=DiscordUIMessages.EMBED_QUEUE_TITLE, color=discord.Color.blurple())

    if session.current is not None:
        current = session.current
        embed.description = DiscordUIMessages.EMBED_QUEUE_NOW.format(
            title=truncate(format_track_title(current.title, current.author, current.requested_as_url), 80)
        )

    upcoming = [
        f"`{i}.` {truncate(format_track_title(t.title, t.author, t.requested_as_url), 60)} ({format_clock(t.duration_ms)})"
        for i, t in enumerate(session.upcoming[:limit], start=1)
    ]
    if len(session.upcoming) > limit:
        upcoming.append(f"… and {len(session.upcoming) - limit} more")
    embed.add_field(
        name=DiscordUIMessages.EMBED_QUEUE_UPCOMING,
        value="\n".join(upcoming) or DiscordUIMessages.QUEUE_NO_UPCOMING,
        inline=False,
    )

    recent = list(reversed(session.history[-limit:]))
    history = [
        f"`{-i}.` {truncate(format_track_title(t.title, t.author, t.requested_as_url), 60)}"
        for i, t in enumerate(recent, start=1)
    ]
    embed.add_field(
        name=DiscordUIMessages.EMBED_QUEUE_HISTORY,
        value="\n".join(history) or DiscordUIMessages.QUEUE_NO_HISTORY,
        inline=False,
    )
    return embed


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(MusicCog(bot, container))

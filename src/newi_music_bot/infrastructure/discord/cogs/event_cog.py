"""Discord event listeners for lifecycle, voice, and guild events."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from newi_music_bot.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ....config.container import Container

logger = logging.getLogger(__name__)


class EventCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container
        self._resumed_logged_once = False

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle Events
    # ─────────────────────────────────────────────────────────────────

    @commands.Cog.listener()
    async def on_connect(self) -> None:
        logger.info("WebSocket connected")

    @commands.Cog.listener()
    async def on_disconnect(self) -> None:
        logger.warning("WebSocket disconnected")

    @commands.Cog.listener()
    async def on_resumed(self) -> None:
        if not self._resumed_logged_once:
            logger.info("WebSocket session resumed")
            self._resumed_logged_once = True

    # ─────────────────────────────────────────────────────────────────
    # Guild Events
    # ─────────────────────────────────────────────────────────────────

    @commands.Cog.listener()
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        logger.info(LogTemplates.GUILD_REMOVED, guild.name, guild.id)

        dropped = self.container.message_state_manager.reset(guild.id)
        if dropped:
            logger.debug("Dropped %d tracked message(s) for guild %s", dropped, guild.id)

        await self._teardown(guild.id, leave_voice=False)

    # ─────────────────────────────────────────────────────────────────
    # Voice Events
    # ─────────────────────────────────────────────────────────────────

    @commands.Cog.listener()
    async def on_voice_state_update(
        self, member: discord.Member, before: discord.VoiceState, after: discord.VoiceState
    ) -> None:
        user = self.bot.user
        if user is None or member.id != user.id:
            return

        guild_id = member.guild.id
        old_id = getattr(before.channel, "id", None)
        new_id = getattr(after.channel, "id", None)
        logger.debug("Bot moved in guild %s: %s -> %s", guild_id, old_id, new_id)

        if after.channel is None:
            if before.channel is not None:
                logger.info(LogTemplates.VOICE_BOT_REMOVED, guild_id)
                await self._teardown(guild_id, leave_voice=False)
            return

        session = self.container.session_registry.get(guild_id)
        if session is not None:
            session.voice_channel_id = new_id

    async def _teardown(self, guild_id: int, *, leave_voice: bool) -> None:
        registry = self.container.session_registry
        session = registry.get(guild_id)
        if session is None:
            return

        try:
            await self.container.player_controls.teardown(session, leave_voice=leave_voice)
        except Exception as e:
            logger.error(LogTemplates.SESSION_TEARDOWN_FAILED, guild_id, e)
        finally:
            registry.remove(guild_id)


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(EventCog(bot, container))

"""Translate mafic listener events into typed events on the container's bus."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import mafic
from discord.ext import commands

from newi_music_bot.domain.music.value_objects import TrackEndReason
from newi_music_bot.domain.shared.events import (
    NodeConnected,
    NodeDisconnected,
    TrackEnded,
    TrackFailed,
    TrackStarted,
)
from newi_music_bot.domain.shared.messages import ErrorMessages

if TYPE_CHECKING:
    from ....config.container import Container

logger = logging.getLogger(__name__)

END_REASONS: dict[mafic.EndReason, TrackEndReason] = {
    mafic.EndReason.FINISHED: TrackEndReason.FINISHED,
    mafic.EndReason.LOAD_FAILED: TrackEndReason.LOAD_FAILED,
    mafic.EndReason.STOPPED: TrackEndReason.STOPPED,
    mafic.EndReason.REPLACED: TrackEndReason.REPLACED,
    mafic.EndReason.CLEANUP: TrackEndReason.CLEANUP,
}


def _title(track: mafic.Track | None) -> str:
    return getattr(track, "title", "") or ""


class LavalinkCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

    @commands.Cog.listener()
    async def on_node_ready(self, node: mafic.Node) -> None:
        await self.container.event_bus.publish(NodeConnected(node_label=node.label))

    @commands.Cog.listener()
    async def on_node_unavailable(self, node: mafic.Node) -> None:
        await self.container.event_bus.publish(
            NodeDisconnected(node_label=node.label, reason="websocket closed")
        )

    @commands.Cog.listener()
    async def on_track_start(self, event: mafic.TrackStartEvent) -> None:
        await self.container.event_bus.publish(
            TrackStarted(guild_id=event.player.guild.id, track_title=_title(event.track))
        )

    @commands.Cog.listener()
    async def on_track_end(self, event: mafic.TrackEndEvent) -> None:
        reason = END_REASONS.get(event.reason, TrackEndReason.FINISHED)
        await self.container.event_bus.publish(
            TrackEnded(guild_id=event.player.guild.id, reason=reason, track_title=_title(event.track))
        )

    @commands.Cog.listener()
    async def on_track_exception(self, event: mafic.TrackExceptionEvent) -> None:
        error = event.exception
        message = getattr(error, "message", None) or str(error)
        await self.container.event_bus.publish(
            TrackFailed(guild_id=event.player.guild.id, track_title=_title(event.track), message=message)
        )

    @commands.Cog.listener()
    async def on_track_stuck(self, event: mafic.TrackStuckEvent) -> None:
        # Lavalink follows a stuck track with a track-end event; this only reports it.
        logger.warning("Track '%s' stuck for %sms", _title(event.track), event.threshold_ms)
        await self.container.event_bus.publish(
            TrackFailed(
                guild_id=event.player.guild.id,
                track_title=_title(event.track),
                message=f"stuck for {event.threshold_ms}ms",
            )
        )


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(LavalinkCog(bot, container))

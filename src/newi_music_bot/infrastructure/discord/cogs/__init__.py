"""Discord cogs - command handlers and event bridges."""

from newi_music_bot.infrastructure.discord.cogs.event_cog import EventCog
from newi_music_bot.infrastructure.discord.cogs.lavalink_cog import LavalinkCog
from newi_music_bot.infrastructure.discord.cogs.music_cog import MusicCog

__all__ = [
    "MusicCog",
    "LavalinkCog",
    "EventCog",
]

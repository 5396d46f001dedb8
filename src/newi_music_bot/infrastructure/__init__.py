"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Audio (mafic / Lavalink engine, node reconnect and health monitoring)
- Discord (bot, cogs, views, now-playing services)
"""

from newi_music_bot.infrastructure.audio.mafic_engine import MaficAudioEngine
from newi_music_bot.infrastructure.discord.bot import create_bot

__all__ = [
    "create_bot",
    "MaficAudioEngine",
]

"""Audio infrastructure - Lavalink engine adapter and node health monitoring."""

from newi_music_bot.infrastructure.audio.mafic_engine import (
    LavalinkNode,
    MaficAudioEngine,
    to_domain_track,
)
from newi_music_bot.infrastructure.audio.reconnect_monitor import ReconnectMonitor, ResumeSnapshot

__all__ = [
    "LavalinkNode",
    "MaficAudioEngine",
    "ReconnectMonitor",
    "ResumeSnapshot",
    "to_domain_track",
]

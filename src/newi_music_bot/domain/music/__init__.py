"""
Music Bounded Context

Domain logic for tracks, queues and per-guild playback sessions.
"""

from newi_music_bot.domain.music.entities import (
    NowPlayingState,
    PlaybackSession,
    SearchResult,
    Track,
)
from newi_music_bot.domain.music.value_objects import LoadType, PlaybackStatus, TrackEndReason

__all__ = [
    # Entities
    "Track",
    "PlaybackSession",
    "NowPlayingState",
    "SearchResult",
    # Value Objects
    "PlaybackStatus",
    "TrackEndReason",
    "LoadType",
]

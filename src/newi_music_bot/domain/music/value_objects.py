"""Immutable value objects for the music bounded context."""

from __future__ import annotations

from enum import Enum, StrEnum


class PlaybackStatus(StrEnum):
    """Caption shown on the status message."""

    PLAYING = "Playing"
    PAUSED = "Paused"
    STOPPED = "Stopped"


class TrackEndReason(Enum):
    """Why the engine stopped emitting audio for a track."""

    FINISHED = "finished"
    LOAD_FAILED = "load_failed"
    STOPPED = "stopped"
    REPLACED = "replaced"
    CLEANUP = "cleanup"

    @property
    def may_start_next(self) -> bool:
        return self in (TrackEndReason.FINISHED, TrackEndReason.LOAD_FAILED, TrackEndReason.STOPPED)


class LoadType(Enum):
    TRACK = "track"
    PLAYLIST = "playlist"
    SEARCH = "search"
    EMPTY = "empty"
    ERROR = "error"


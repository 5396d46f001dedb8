"""In-memory map of live playback sessions keyed by guild."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from newi_music_bot.domain.music.entities import PlaybackSession
from newi_music_bot.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Owns every live :class:`PlaybackSession`.

    Accessed only from the event loop, so no lock is needed; every removal
    path tolerates an already-absent guild.
    """

    def __init__(self, *, max_queue_size: int = 200, max_history_size: int = 1000) -> None:
        self._sessions: dict[int, PlaybackSession] = {}
        self._max_queue_size = max_queue_size
        self._max_history_size = max_history_size

    def get(self, guild_id: int) -> PlaybackSession | None:
        return self._sessions.get(guild_id)

    def get_or_create(
        self,
        guild_id: int,
        *,
        text_channel_id: int | None = None,
        voice_channel_id: int | None = None,
        volume: int = 50,
    ) -> PlaybackSession:
        session = self._sessions.get(guild_id)
        if session is None:
            session = PlaybackSession(
                guild_id=guild_id,
                text_channel_id=text_channel_id,
                voice_channel_id=voice_channel_id,
                volume=volume,
                max_queue_size=self._max_queue_size,
                max_history_size=self._max_history_size,
            )
            self._sessions[guild_id] = session
            logger.debug(LogTemplates.SESSION_CREATED, guild_id)
            return session

        if text_channel_id is not None:
            session.text_channel_id = text_channel_id
        if voice_channel_id is not None:
            session.voice_channel_id = voice_channel_id
        return session

    def remove(self, guild_id: int) -> PlaybackSession | None:
        session = self._sessions.pop(guild_id, None)
        if session is not None:
            logger.debug(LogTemplates.SESSION_REMOVED, guild_id)
        return session

    def all(self) -> list[PlaybackSession]:
        """Snapshot of live sessions, safe to iterate while removing."""
        return list(self._sessions.values())

    def for_node(self, label: str) -> list[PlaybackSession]:
        return [s for s in self._sessions.values() if s.node_label in (label, None)]

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, guild_id: object) -> bool:
        return guild_id in self._sessions

    def __iter__(self) -> Iterator[PlaybackSession]:
        return iter(self.all())

"""Tracks interactive side messages (search pickers, queue listings) so they can expire."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from newi_music_bot.domain.shared.types import DiscordSnowflake, UtcDatetimeField, utcnow

logger = logging.getLogger(__name__)


class MessageKind(StrEnum):
    SEARCH = "search"
    QUEUE = "queue"
    PLAYLIST = "playlist"
    CONFIRM = "confirm"


class TrackedMessage(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    channel_id: DiscordSnowflake
    message_id: DiscordSnowflake
    guild_id: DiscordSnowflake | None = None
    kind: MessageKind
    created_at: UtcDatetimeField = Field(default_factory=utcnow)
    message: Any = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_message(cls, message: Any, *, kind: MessageKind, guild_id: int | None = None) -> TrackedMessage:
        created_at = getattr(message, "created_at", None)
        return cls(
            channel_id=message.channel.id,
            message_id=message.id,
            guild_id=guild_id,
            kind=kind,
            created_at=created_at if isinstance(created_at, datetime) else utcnow(),
            message=message,
        )

    def age_seconds(self, now: datetime | None = None) -> float:
        return ((now or utcnow()) - self.created_at).total_seconds()


class MessageStateManager:
    """In-memory registry of interactive messages keyed by message id."""

    def __init__(self) -> None:
        self._entries: dict[int, TrackedMessage] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def track(self, message: Any, *, kind: MessageKind, guild_id: int | None = None) -> TrackedMessage:
        tracked = TrackedMessage.from_message(message, kind=kind, guild_id=guild_id)
        self._entries[tracked.message_id] = tracked
        return tracked

    def get(self, message_id: int) -> TrackedMessage | None:
        return self._entries.get(message_id)

    def discard(self, message_id: int) -> bool:
        return self._entries.pop(message_id, None) is not None

    def reset(self, guild_id: int) -> int:
        stale = [mid for mid, entry in self._entries.items() if entry.guild_id == guild_id]
        for message_id in stale:
            del self._entries[message_id]
        logger.debug("Cleaned up message state for guild %s", guild_id)
        return len(stale)

    def entries(self) -> list[TrackedMessage]:
        return list(self._entries.values())

    def clear_all(self) -> None:
        self._entries.clear()

"""Port interfaces for the audio engine (Lavalink) boundary."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from newi_music_bot.domain.shared.types import DiscordSnowflake

if TYPE_CHECKING:
    from ...domain.music.entities import SearchResult, Track


class AudioNode(ABC):
    """One audio transport endpoint whose connectivity is monitored."""

    @property
    @abstractmethod
    def label(self) -> str: ...

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Liveness flag as last reported by the websocket."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """(Re)open the node connection; raises on failure."""
        ...

    @abstractmethod
    async def fetch_stats(self, *, timeout: float) -> dict[str, Any]:
        """Round-trip a stats request; raises on timeout or refusal."""
        ...


class AudioEngine(ABC):
    """Interface for the audio engine client."""

    @abstractmethod
    async def search(self, query: str, source: str | None = None) -> SearchResult:
        """Resolve a URL or search query into tracks."""
        ...

    @abstractmethod
    async def connect(self, guild_id: DiscordSnowflake, channel_id: DiscordSnowflake) -> None:
        """Join a voice channel, creating the engine player if needed."""
        ...

    @abstractmethod
    async def disconnect(self, guild_id: DiscordSnowflake) -> bool:
        """Leave voice through every available path. Never raises."""
        ...

    @abstractmethod
    async def destroy_player(self, guild_id: DiscordSnowflake) -> None:
        """Release the engine-side player object."""
        ...

    @abstractmethod
    def has_player(self, guild_id: DiscordSnowflake) -> bool: ...

    @abstractmethod
    def is_voice_connected(self, guild_id: DiscordSnowflake) -> bool: ...

    @abstractmethod
    def node_label_for(self, guild_id: DiscordSnowflake) -> str | None: ...

    @abstractmethod
    async def play(self, guild_id: DiscordSnowflake, track: Track, *, start_ms: int | None = None) -> None: ...

    @abstractmethod
    async def skip(self, guild_id: DiscordSnowflake) -> None:
        """End the current track so the engine reports it as stopped."""
        ...

    @abstractmethod
    async def stop_playing(self, guild_id: DiscordSnowflake) -> None: ...

    @abstractmethod
    async def pause(self, guild_id: DiscordSnowflake) -> None: ...

    @abstractmethod
    async def resume(self, guild_id: DiscordSnowflake) -> None: ...

    @abstractmethod
    async def seek(self, guild_id: DiscordSnowflake, position_ms: int) -> None: ...

    @abstractmethod
    async def set_volume(self, guild_id: DiscordSnowflake, volume: int) -> None: ...

    @abstractmethod
    async def set_speed(self, guild_id: DiscordSnowflake, speed: float) -> None:
        """Apply a timescale filter; 1.0 is normal speed."""
        ...

    @abstractmethod
    def get_position(self, guild_id: DiscordSnowflake) -> int:
        """Current playback position in milliseconds (0 when unknown)."""
        ...

    @abstractmethod
    def nodes(self) -> list[AudioNode]: ...

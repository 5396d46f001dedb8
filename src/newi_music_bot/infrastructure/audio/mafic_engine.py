"""
Mafic Audio Engine

Adapter exposing a Lavalink node pool through the AudioEngine port.
Players are mafic voice clients attached to each guild.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
import mafic

from newi_music_bot.application.interfaces.audio_engine import AudioEngine, AudioNode
from newi_music_bot.domain.music.entities import SearchResult, Track
from newi_music_bot.domain.music.value_objects import LoadType
from newi_music_bot.domain.shared.exceptions import AudioEngineError
from newi_music_bot.domain.shared.messages import ErrorMessages, LogTemplates
from newi_music_bot.utils.reply import is_url

if TYPE_CHECKING:
    from discord import Client

    from ...config.settings import LavalinkSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

SPEED_FILTER_LABEL = "speed"


class LavalinkNode(AudioNode):
    """Wraps a ``mafic.Node`` and adds a REST round-trip for deep health checks."""

    def __init__(
        self,
        node: mafic.Node,
        settings: LavalinkSettings,
        *,
        http_factory: Callable[..., httpx.AsyncClient] = httpx.AsyncClient,
    ) -> None:
        self._node = node
        self._settings = settings
        self._http_factory = http_factory

    @property
    def label(self) -> str:
        return self._node.label

    @property
    def connected(self) -> bool:
        return bool(self._node.available)

    @property
    def node(self) -> mafic.Node:
        return self._node

    async def connect(self) -> None:
        await self._node.connect()

    async def fetch_stats(self, *, timeout: float) -> dict[str, Any]:
        headers = {"Authorization": self._settings.password.get_secret_value()}
        async with self._http_factory(timeout=timeout) as client:
            response = await client.get(f"{self._settings.rest_base_url}/v4/stats", headers=headers)
            response.raise_for_status()
            return response.json()


def to_domain_track(track: mafic.Track) -> Track:
    is_stream = bool(getattr(track, "stream", False))
    return Track(
        identifier=track.identifier,
        title=track.title,
        author=track.author or None,
        duration_ms=0 if is_stream else max(0, int(track.length or 0)),
        uri=track.uri,
        artwork_url=getattr(track, "artwork_url", None),
        is_stream=is_stream,
        engine_track=track,
    )


class MaficAudioEngine(AudioEngine):
    def __init__(
        self,
        client: Client,
        settings: LavalinkSettings,
        *,
        search_platform: str = "ytmsearch",
        pool: mafic.NodePool | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._search_platform = search_platform
        self._pool = pool if pool is not None else mafic.NodePool(client)
        self._nodes: dict[str, LavalinkNode] = {}

    async def start(self) -> None:
        """Register the configured node with the pool and open its websocket."""
        s = self._settings
        try:
            node = await self._pool.create_node(
                host=s.host,
                port=s.port,
                label=s.label,
                password=s.password.get_secret_value(),
                secure=s.secure,
            )
        except Exception as e:
            raise AudioEngineError("start", ErrorMessages.ENGINE_CALL_FAILED.format(operation="start", error=e)) from e

        self._nodes[s.label] = LavalinkNode(node, s)
        logger.info(LogTemplates.ENGINE_NODE_CREATED, s.label, s.host, s.port)

    def nodes(self) -> list[AudioNode]:
        return list(self._nodes.values())

    # ── Player lookup ───────────────────────────────────────────────

    def _player(self, guild_id: int) -> mafic.Player | None:
        guild = self._client.get_guild(guild_id)
        if guild is None:
            return None
        vc = guild.voice_client
        return vc if isinstance(vc, mafic.Player) else None

    def _require_player(self, guild_id: int, operation: str) -> mafic.Player:
        player = self._player(guild_id)
        if player is None:
            raise AudioEngineError(operation, ErrorMessages.ENGINE_NO_PLAYER.format(guild_id=guild_id))
        return player

    async def _call(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await call()
        except AudioEngineError:
            raise
        except Exception as e:
            raise AudioEngineError(
                operation, ErrorMessages.ENGINE_CALL_FAILED.format(operation=operation, error=e)
            ) from e

    def has_player(self, guild_id: int) -> bool:
        return self._player(guild_id) is not None

    def is_voice_connected(self, guild_id: int) -> bool:
        player = self._player(guild_id)
        return player is not None and bool(player.connected)

    def node_label_for(self, guild_id: int) -> str | None:
        player = self._player(guild_id)
        node = getattr(player, "node", None) if player is not None else None
        return getattr(node, "label", None)

    def get_position(self, guild_id: int) -> int:
        player = self._player(guild_id)
        if player is None:
            return 0
        return int(player.position or 0)

    # ── Search ──────────────────────────────────────────────────────

    async def search(self, query: str, source: str | None = None) -> SearchResult:
        platform = source or self._search_platform
        fetcher: Any = next(
            (n.node for n in self._nodes.values() if n.connected),
            None,
        )
        if fetcher is None:
            raise AudioEngineError("search", ErrorMessages.ENGINE_NO_NODE)

        try:
            result = await self._call("search", lambda: fetcher.fetch_tracks(query, search_type=platform))
        except AudioEngineError as e:
            if isinstance(e.__cause__, mafic.TrackLoadException):
                return SearchResult(load_type=LoadType.ERROR)
            raise

        if not result:
            return SearchResult(load_type=LoadType.EMPTY)
        if isinstance(result, mafic.Playlist):
            return SearchResult(
                load_type=LoadType.PLAYLIST,
                tracks=tuple(to_domain_track(t) for t in result.tracks),
                playlist_name=result.name,
            )

        tracks = tuple(to_domain_track(t) for t in result)
        if is_url(query):
            return SearchResult(load_type=LoadType.TRACK, tracks=tracks[:1])
        return SearchResult(load_type=LoadType.SEARCH, tracks=tracks)

    # ── Voice ───────────────────────────────────────────────────────

    async def connect(self, guild_id: int, channel_id: int) -> None:
        guild = self._client.get_guild(guild_id)
        channel = guild.get_channel(channel_id) if guild is not None else None
        if channel is None:
            raise AudioEngineError("connect", ErrorMessages.ENGINE_CHANNEL_NOT_FOUND.format(channel_id=channel_id))

        player = self._player(guild_id)
        if player is not None:
            current = getattr(player.channel, "id", None)
            if player.connected and current == channel_id:
                return
            # A player left over from a failed join is reused rather than stacked.
            await self._call("connect", lambda: guild.change_voice_state(channel=channel, self_deaf=True))
        else:
            await self._call("connect", lambda: channel.connect(cls=mafic.Player, self_deaf=True))
        logger.info(LogTemplates.ENGINE_VOICE_CONNECTED, channel_id, guild_id)

    async def disconnect(self, guild_id: int) -> bool:
        ok = False
        player = self._player(guild_id)
        if player is not None:
            try:
                await player.disconnect(force=True)
                ok = True
            except Exception as e:
                logger.warning(LogTemplates.ENGINE_DISCONNECT_PRIMARY_FAILED, guild_id, e)

        guild = self._client.get_guild(guild_id)
        if guild is not None and guild.voice_client is not None and not ok:
            try:
                await guild.change_voice_state(channel=None)
                ok = True
            except Exception as e:
                logger.warning(LogTemplates.ENGINE_DISCONNECT_FALLBACK_FAILED, guild_id, e)
        return ok

    async def destroy_player(self, guild_id: int) -> None:
        player = self._player(guild_id)
        if player is None:
            return
        try:
            await player.destroy()
        except Exception as e:
            logger.warning(LogTemplates.ENGINE_DESTROY_FAILED, guild_id, e)
            raise AudioEngineError("destroy", ErrorMessages.ENGINE_CALL_FAILED.format(operation="destroy", error=e)) from e

    # ── Playback ────────────────────────────────────────────────────

    async def _engine_track(self, player: mafic.Player, track: Track) -> mafic.Track:
        if track.engine_track is not None:
            return track.engine_track

        query = track.uri or track.identifier
        found = await self._call("play", lambda: player.fetch_tracks(query, search_type=self._search_platform))
        if isinstance(found, mafic.Playlist):
            found = found.tracks
        if not found:
            raise AudioEngineError("play", ErrorMessages.ENGINE_CALL_FAILED.format(operation="play", error="track not found"))
        return found[0]

    async def play(self, guild_id: int, track: Track, *, start_ms: int | None = None) -> None:
        player = self._require_player(guild_id, "play")
        engine_track = await self._engine_track(player, track)
        await self._call("play", lambda: player.play(engine_track, start_time=start_ms, replace=True))

    async def skip(self, guild_id: int) -> None:
        player = self._require_player(guild_id, "skip")
        await self._call("skip", player.stop)

    async def stop_playing(self, guild_id: int) -> None:
        player = self._require_player(guild_id, "stop")
        await self._call("stop", player.stop)

    async def pause(self, guild_id: int) -> None:
        player = self._require_player(guild_id, "pause")
        await self._call("pause", player.pause)

    async def resume(self, guild_id: int) -> None:
        player = self._require_player(guild_id, "resume")
        await self._call("resume", player.resume)

    async def seek(self, guild_id: int, position_ms: int) -> None:
        player = self._require_player(guild_id, "seek")
        await self._call("seek", lambda: player.seek(position_ms))

    async def set_volume(self, guild_id: int, volume: int) -> None:
        player = self._require_player(guild_id, "volume")
        await self._call("volume", lambda: player.set_volume(volume))

    async def set_speed(self, guild_id: int, speed: float) -> None:
        player = self._require_player(guild_id, "speed")
        speed_filter = mafic.Filter(timescale=mafic.Timescale(speed=speed, pitch=1.0, rate=1.0))
        # Re-adding under the same label replaces the previous timescale.
        await self._call("speed", lambda: player.add_filter(speed_filter, label=SPEED_FILTER_LABEL, fast_apply=True))

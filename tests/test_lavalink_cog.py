"""Tests for LavalinkCog: mafic listener events are republished on the event bus."""

from unittest.mock import AsyncMock, MagicMock

import mafic
import pytest

from newi_music_bot.domain.music.value_objects import TrackEndReason
from newi_music_bot.domain.shared.events import (
    EventBus,
    NodeConnected,
    NodeDisconnected,
    TrackEnded,
    TrackFailed,
    TrackStarted,
)
from newi_music_bot.infrastructure.discord.cogs.lavalink_cog import LavalinkCog, setup

GUILD_ID = 111


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def received(bus):
    handler = AsyncMock()
    for event_type in (NodeConnected, NodeDisconnected, TrackStarted, TrackEnded, TrackFailed):
        bus.subscribe(event_type, handler)
    return handler


@pytest.fixture
def cog(bus):
    container = MagicMock()
    container.event_bus = bus
    return LavalinkCog(MagicMock(), container)


def _event(**attrs):
    event = MagicMock()
    event.player.guild.id = GUILD_ID
    event.track = MagicMock()
    event.track.title = "Song"
    for key, value in attrs.items():
        setattr(event, key, value)
    return event


def _published(received):
    return received.call_args.args[0]


class TestLavalinkCog:
    @pytest.mark.asyncio
    async def test_node_ready(self, cog, received):
        node = MagicMock()
        node.label = "node1"

        await cog.on_node_ready(node)

        event = _published(received)
        assert isinstance(event, NodeConnected)
        assert event.node_label == "node1"

    @pytest.mark.asyncio
    async def test_node_unavailable(self, cog, received):
        node = MagicMock()
        node.label = "node1"

        await cog.on_node_unavailable(node)

        event = _published(received)
        assert isinstance(event, NodeDisconnected)
        assert event.node_label == "node1"

    @pytest.mark.asyncio
    async def test_track_start(self, cog, received):
        await cog.on_track_start(_event())

        event = _published(received)
        assert isinstance(event, TrackStarted)
        assert event.guild_id == GUILD_ID
        assert event.track_title == "Song"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("reason", "expected"),
        [
            (mafic.EndReason.FINISHED, TrackEndReason.FINISHED),
            (mafic.EndReason.LOAD_FAILED, TrackEndReason.LOAD_FAILED),
            (mafic.EndReason.STOPPED, TrackEndReason.STOPPED),
            (mafic.EndReason.REPLACED, TrackEndReason.REPLACED),
            (mafic.EndReason.CLEANUP, TrackEndReason.CLEANUP),
        ],
    )
    async def test_track_end_reasons(self, cog, received, reason, expected):
        await cog.on_track_end(_event(reason=reason))

        event = _published(received)
        assert isinstance(event, TrackEnded)
        assert event.reason is expected

    @pytest.mark.asyncio
    async def test_track_exception(self, cog, received):
        error = MagicMock()
        error.message = "This video is unavailable"

        await cog.on_track_exception(_event(exception=error))

        event = _published(received)
        assert isinstance(event, TrackFailed)
        assert event.message == "This video is unavailable"

    @pytest.mark.asyncio
    async def test_track_stuck(self, cog, received):
        await cog.on_track_stuck(_event(threshold_ms=10_000))

        event = _published(received)
        assert isinstance(event, TrackFailed)
        assert event.message == "stuck for 10000ms"

    @pytest.mark.asyncio
    async def test_missing_track_title(self, cog, received):
        await cog.on_track_start(_event(track=None))

        assert _published(received).track_title == ""


class TestSetup:
    @pytest.mark.asyncio
    async def test_setup_requires_container(self):
        with pytest.raises(RuntimeError):
            await setup(MagicMock(spec=[]))

    @pytest.mark.asyncio
    async def test_setup_adds_cog(self):
        bot = MagicMock()
        bot.add_cog = AsyncMock()

        await setup(bot)

        assert isinstance(bot.add_cog.call_args.args[0], LavalinkCog)

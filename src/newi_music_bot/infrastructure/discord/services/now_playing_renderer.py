"""Pure rendering of session state into now-playing embed and control payloads.

Nothing here touches Discord or mutates the session. Payloads are frozen
pydantic models so the refresh gate can compare two renders by value.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

import discord
from pydantic import BaseModel, ConfigDict

from newi_music_bot.domain.shared.messages import DiscordUIMessages
from newi_music_bot.utils.reply import (
    build_progress_bar,
    format_clock,
    format_track_title,
    truncate,
)

if TYPE_CHECKING:
    from ....domain.music.entities import PlaybackSession

NOW_PLAYING_COLOR = 0x57F287
STOPPED_COLOR = 0xED4245
QUEUE_TITLE_MAX_LENGTH = 45


class ControlAction(StrEnum):
    """Stable custom ids for the status-message buttons."""

    PREVIOUS = "previous"
    PLAY_PAUSE = "playpause"
    SKIP = "skip"
    SHUFFLE = "shuffle"
    STOP = "stop"
    CONFIRM_STOP = "confirmStop"
    CANCEL_STOP = "cancelStop"


class ButtonTone(StrEnum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUCCESS = "success"
    DANGER = "danger"

    @property
    def style(self) -> discord.ButtonStyle:
        return getattr(discord.ButtonStyle, self.value)


class ControlSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: ControlAction
    label: str
    tone: ButtonTone
    disabled: bool = False


class EmbedField(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str
    inline: bool = False


class NowPlayingPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str | None = None
    color: int
    fields: tuple[EmbedField, ...] = ()
    footer: str
    thumbnail_url: str | None = None


class RenderedFrame(BaseModel):
    """An embed together with the control row shown beneath it."""

    model_config = ConfigDict(frozen=True)

    embed: NowPlayingPayload
    controls: tuple[ControlSpec, ...] = ()


def _footer(status: str, prefix: str) -> str:
    return DiscordUIMessages.EMBED_FOOTER.format(status=status, prefix=prefix)


def _queue_summary(session: PlaybackSession, display_count: int) -> str:
    upcoming = session.upcoming
    if not upcoming:
        return DiscordUIMessages.EMBED_QUEUE_EMPTY

    lines = []
    for i, track in enumerate(upcoming[:display_count], start=1):
        title = format_track_title(track.title, track.author, track.requested_as_url)
        lines.append(f"\u2002`{i:02d}`\u2002`{truncate(title, QUEUE_TITLE_MAX_LENGTH)}`")
    value = "\u200b" + "\n".join(lines)

    remaining = len(upcoming) - display_count
    if remaining > 0:
        more = DiscordUIMessages.EMBED_QUEUE_MORE.format(
            count=remaining, plural="s" if remaining > 1 else ""
        )
        value += "\n" + more
    return value


def render_now_playing(
    session: PlaybackSession,
    *,
    prefix: str = "/",
    bar_length: int = 18,
    display_count: int = 10,
) -> NowPlayingPayload | None:
    """Build the now-playing embed payload, or None when nothing is current."""
    track = session.current
    if track is None:
        return None

    position = session.display_position_ms
    bar = build_progress_bar(position, track.duration_ms, bar_length)
    progress = f"`{format_clock(position)}`  {bar}  `{format_clock(track.duration_ms)}`"

    return NowPlayingPayload(
        title=format_track_title(track.title, track.author, track.requested_as_url),
        description=progress,
        color=NOW_PLAYING_COLOR,
        fields=(
            EmbedField(
                name=DiscordUIMessages.EMBED_QUEUE_FIELD,
                value=_queue_summary(session, display_count),
            ),
        ),
        footer=_footer(session.status.value, prefix),
        thumbnail_url=track.artwork_url or None,
    )


def render_stopped(prefix: str = "/") -> NowPlayingPayload:
    return NowPlayingPayload(
        title=DiscordUIMessages.EMBED_STOPPED_TITLE,
        color=STOPPED_COLOR,
        footer=_footer("Stopped", prefix),
    )


def render_controls(session: PlaybackSession) -> tuple[ControlSpec, ...]:
    """The five playback buttons, in display order."""
    return (
        ControlSpec(
            action=ControlAction.PREVIOUS,
            label="|◀",
            tone=ButtonTone.SECONDARY,
            disabled=not session.history,
        ),
        ControlSpec(action=ControlAction.PLAY_PAUSE, label="▶||", tone=ButtonTone.PRIMARY),
        ControlSpec(
            action=ControlAction.SKIP,
            label="▶|",
            tone=ButtonTone.SECONDARY,
            disabled=not session.upcoming,
        ),
        ControlSpec(
            action=ControlAction.SHUFFLE,
            label=DiscordUIMessages.BUTTON_SHUFFLE,
            tone=ButtonTone.SUCCESS,
        ),
        ControlSpec(action=ControlAction.STOP, label="⏹", tone=ButtonTone.DANGER),
    )


def render_confirm_controls() -> tuple[ControlSpec, ...]:
    return (
        ControlSpec(
            action=ControlAction.CONFIRM_STOP,
            label=DiscordUIMessages.BUTTON_CONFIRM_STOP,
            tone=ButtonTone.DANGER,
        ),
        ControlSpec(
            action=ControlAction.CANCEL_STOP,
            label=DiscordUIMessages.BUTTON_CANCEL_STOP,
            tone=ButtonTone.SECONDARY,
        ),
    )


def render_frame(
    session: PlaybackSession,
    *,
    prefix: str = "/",
    bar_length: int = 18,
    display_count: int = 10,
) -> RenderedFrame | None:
    payload = render_now_playing(
        session, prefix=prefix, bar_length=bar_length, display_count=display_count
    )
    if payload is None:
        return None
    return RenderedFrame(embed=payload, controls=render_controls(session))


def to_embed(payload: NowPlayingPayload) -> discord.Embed:
    embed = discord.Embed(
        title=payload.title,
        description=payload.description,
        color=discord.Color(payload.color),
    )
    for field in payload.fields:
        embed.add_field(name=field.name, value=field.value, inline=field.inline)
    embed.set_footer(text=payload.footer)
    if payload.thumbnail_url:
        embed.set_thumbnail(url=payload.thumbnail_url)
    return embed

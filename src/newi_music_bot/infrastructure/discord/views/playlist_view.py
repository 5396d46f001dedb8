"""Paginated listing of history, current track and upcoming queue."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

import discord

from newi_music_bot.domain.shared.messages import DiscordUIMessages
from newi_music_bot.infrastructure.discord.views.base_view import BaseInteractiveView
from newi_music_bot.utils.reply import format_track_title, truncate

if TYPE_CHECKING:
    from ....domain.music.entities import PlaybackSession

logger = logging.getLogger(__name__)

PLAYLIST_TITLE_LENGTH = 45


def build_playlist_pages(session: PlaybackSession, page_size: int) -> list[list[str]]:
    """Merged-view lines split into pages; numbers are the ones ``/jump`` accepts."""
    lines = []
    for index, track in session.merged_view():
        title = truncate(format_track_title(track.title, track.author, track.requested_as_url), PLAYLIST_TITLE_LENGTH)
        if index == 0:
            lines.append(f"**Now** `{index}` `{title}`")
        else:
            lines.append(f" `{index}` `{title}`")
    return [lines[i : i + page_size] for i in range(0, len(lines), page_size)] or [[]]


def current_page_index(session: PlaybackSession, page_size: int) -> int:
    """Page holding the current track, or the first page when stopped."""
    if session.current is None:
        return 0
    return len(session.history) // page_size


def build_playlist_embed(lines: list[str], page: int, pages: int, prefix: str) -> discord.Embed:
    embed = discord.Embed(
        title=DiscordUIMessages.EMBED_PLAYLIST_TITLE,
        color=discord.Color.blue(),
        description="\n".join(lines) or DiscordUIMessages.STATE_QUEUE_EMPTY,
    )
    embed.set_footer(text=DiscordUIMessages.EMBED_PLAYLIST_FOOTER.format(page=page + 1, pages=pages, prefix=prefix))
    return embed


class PlaylistView(BaseInteractiveView):
    """Previous / Refresh / Next navigation over a snapshot of the playlist.

    Refresh rebuilds the pages from the live session and jumps back to the
    page holding the current track.
    """

    def __init__(
        self,
        *,
        session: PlaybackSession,
        page_size: int,
        prefix: str = "/",
        on_close: Callable[[PlaylistView], None] | None = None,
        timeout: float | None = 600.0,
    ) -> None:
        super().__init__(guild_id=session.guild_id, timeout=timeout)
        self.session = session
        self.page_size = page_size
        self.prefix = prefix
        self._on_close = on_close
        self.pages: list[list[str]] = []
        self.page = 0
        self.rebuild()

    def rebuild(self) -> None:
        self.pages = build_playlist_pages(self.session, self.page_size)
        self.page = min(current_page_index(self.session, self.page_size), len(self.pages) - 1)
        self._sync_buttons()

    def build_embed(self) -> discord.Embed:
        return build_playlist_embed(self.pages[self.page], self.page, len(self.pages), self.prefix)

    def _sync_buttons(self) -> None:
        self.previous_button.disabled = self.page == 0
        self.next_button.disabled = self.page >= len(self.pages) - 1

    async def _show(self, interaction: discord.Interaction) -> None:
        self._sync_buttons()
        await interaction.response.edit_message(embed=self.build_embed(), view=self)

    @discord.ui.button(label=DiscordUIMessages.BUTTON_PAGE_PREVIOUS, style=discord.ButtonStyle.secondary)
    async def previous_button(
        self, interaction: discord.Interaction, button: discord.ui.Button[PlaylistView]
    ) -> None:
        self.page = max(0, self.page - 1)
        await self._show(interaction)

    @discord.ui.button(label=DiscordUIMessages.BUTTON_PAGE_REFRESH, style=discord.ButtonStyle.primary)
    async def refresh_button(
        self, interaction: discord.Interaction, button: discord.ui.Button[PlaylistView]
    ) -> None:
        self.rebuild()
        await self._show(interaction)

    @discord.ui.button(label=DiscordUIMessages.BUTTON_PAGE_NEXT, style=discord.ButtonStyle.secondary)
    async def next_button(
        self, interaction: discord.Interaction, button: discord.ui.Button[PlaylistView]
    ) -> None:
        self.page = min(len(self.pages) - 1, self.page + 1)
        await self._show(interaction)

    async def on_timeout(self) -> None:
        self._disable_items()
        if self._on_close is not None:
            self._on_close(self)
        if self.message is None:
            return
        try:
            await self.message.edit(view=None)
        except discord.HTTPException:
            logger.debug("Failed to strip playlist buttons in guild %s", self.guild_id)

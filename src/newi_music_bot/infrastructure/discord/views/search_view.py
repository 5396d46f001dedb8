"""Select menu listing search results for the user to pick from."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

import discord

from newi_music_bot.domain.shared.messages import DiscordUIMessages
from newi_music_bot.infrastructure.discord.services.safe_transport import safe_edit
from newi_music_bot.infrastructure.discord.views.base_view import BaseInteractiveView
from newi_music_bot.utils.reply import format_clock, format_track_title, truncate

if TYPE_CHECKING:
    from ....domain.music.entities import Track

logger = logging.getLogger(__name__)

MAX_RESULTS = 10

PickCallback = Callable[[discord.Interaction, "Track"], Awaitable[None]]
ExpireCallback = Callable[["SearchView"], None]


class SearchSelect(discord.ui.Select["SearchView"]):
    def __init__(self, tracks: Sequence[Track]) -> None:
        options = [
            discord.SelectOption(
                label=truncate(f"{i}. {format_track_title(t.title, t.author)}", 100),
                description=truncate(f"{t.author or 'Unknown'} • {format_clock(t.duration_ms)}", 100),
                value=str(i - 1),
            )
            for i, t in enumerate(tracks, start=1)
        ]
        super().__init__(placeholder=DiscordUIMessages.SEARCH_PLACEHOLDER, options=options)

    async def callback(self, interaction: discord.Interaction) -> None:
        view = self.view
        if view is None:
            return
        await view.pick(interaction, int(self.values[0]))


class SearchView(BaseInteractiveView):
    """One-shot picker; the first choice wins and the menu is closed."""

    def __init__(
        self,
        *,
        guild_id: int,
        requester_id: int,
        tracks: Sequence[Track],
        on_pick: PickCallback,
        on_expire: ExpireCallback | None = None,
        timeout: float | None = 60.0,
    ) -> None:
        super().__init__(guild_id=guild_id, timeout=timeout)
        self.requester_id = requester_id
        self.tracks = list(tracks[:MAX_RESULTS])
        self._on_pick = on_pick
        self._on_expire = on_expire
        self.add_item(SearchSelect(self.tracks))

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self.requester_id

    async def pick(self, interaction: discord.Interaction, index: int) -> None:
        self.stop()
        self._disable_items()
        if self._on_expire is not None:
            self._on_expire(self)
        try:
            await interaction.response.edit_message(view=self)
        except discord.HTTPException as e:
            logger.debug("Could not close search menu in guild %s: %s", self.guild_id, e)
        await self._on_pick(interaction, self.tracks[index])

    async def on_timeout(self) -> None:
        self._disable_items()
        if self._on_expire is not None:
            self._on_expire(self)
        try:
            await safe_edit(self.message, content=DiscordUIMessages.SEARCH_EXPIRED, view=None)
        except discord.DiscordException as e:
            logger.debug("Could not expire search menu in guild %s: %s", self.guild_id, e)

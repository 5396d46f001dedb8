"""Confirm/cancel prompt guarding the queue clear command."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

import discord

from newi_music_bot.domain.shared.messages import DiscordUIMessages
from newi_music_bot.infrastructure.discord.services.safe_transport import safe_delete
from newi_music_bot.infrastructure.discord.views.base_view import BaseInteractiveView

logger = logging.getLogger(__name__)

CLEAR_CONFIRM_TIMEOUT_S = 10.0


class ClearConfirmView(BaseInteractiveView):
    def __init__(
        self,
        *,
        guild_id: int,
        requester_id: int,
        on_confirm: Callable[[], Awaitable[None]],
        on_close: Callable[[ClearConfirmView], None] | None = None,
        timeout: float | None = CLEAR_CONFIRM_TIMEOUT_S,
    ) -> None:
        super().__init__(guild_id=guild_id, timeout=timeout)
        self.requester_id = requester_id
        self._on_confirm = on_confirm
        self._on_close = on_close

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self.requester_id

    @discord.ui.button(label=DiscordUIMessages.BUTTON_CONFIRM_CLEAR, style=discord.ButtonStyle.danger)
    async def confirm_button(
        self, interaction: discord.Interaction, button: discord.ui.Button[ClearConfirmView]
    ) -> None:
        self._close()
        await self._on_confirm()
        await interaction.response.edit_message(content=DiscordUIMessages.ACTION_QUEUE_CLEARED, view=None)

    @discord.ui.button(label=DiscordUIMessages.BUTTON_CANCEL_CLEAR, style=discord.ButtonStyle.secondary)
    async def cancel_button(
        self, interaction: discord.Interaction, button: discord.ui.Button[ClearConfirmView]
    ) -> None:
        self._close()
        await interaction.response.edit_message(content=DiscordUIMessages.ACTION_CLEAR_CANCELLED, view=None)

    async def on_timeout(self) -> None:
        self._close()
        try:
            await safe_delete(self.message)
        except discord.DiscordException as e:
            logger.debug("Could not remove clear prompt in guild %s: %s", self.guild_id, e)

    def _close(self) -> None:
        self.stop()
        self._disable_items()
        if self._on_close is not None:
            self._on_close(self)

"""Base class for interactive Discord views with common patterns."""

from __future__ import annotations

import discord


class BaseInteractiveView(discord.ui.View):
    """Base view remembering the message it is attached to."""

    def __init__(self, *, guild_id: int, timeout: float | None = 180.0) -> None:
        super().__init__(timeout=timeout)
        self.guild_id = guild_id
        self._message: discord.Message | None = None

    @property
    def message(self) -> discord.Message | None:
        return self._message

    def set_message(self, message: discord.Message) -> None:
        self._message = message

    def _disable_items(self) -> None:
        for item in self.children:
            if isinstance(item, (discord.ui.Button, discord.ui.Select)):
                item.disabled = True

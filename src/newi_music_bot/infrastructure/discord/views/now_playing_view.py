"""Control row attached to the now-playing status message."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

import discord

from newi_music_bot.infrastructure.discord.services.now_playing_renderer import (
    ControlAction,
    ControlSpec,
    render_confirm_controls,
)
from newi_music_bot.infrastructure.discord.views.base_view import BaseInteractiveView


class ControlHandler(Protocol):
    async def handle_interaction(
        self, guild_id: int, interaction: discord.Interaction, action: ControlAction
    ) -> None: ...

    async def on_collector_end(self, view: NowPlayingView) -> None: ...


class ControlButton(discord.ui.Button["NowPlayingView"]):
    def __init__(self, spec: ControlSpec) -> None:
        super().__init__(
            style=spec.tone.style,
            label=spec.label,
            custom_id=spec.action.value,
            disabled=spec.disabled,
        )
        self.action = spec.action

    async def callback(self, interaction: discord.Interaction) -> None:
        view = self.view
        if view is None:
            return
        await view.handler.handle_interaction(view.guild_id, interaction, self.action)


class NowPlayingView(BaseInteractiveView):
    """Interaction collector for one status message.

    The same view instance is kept for the lifetime of the message and its
    buttons are swapped in place, so only one collector ever listens on it.
    """

    def __init__(
        self,
        *,
        handler: ControlHandler,
        guild_id: int,
        controls: Iterable[ControlSpec],
        timeout: float | None = None,
    ) -> None:
        super().__init__(guild_id=guild_id, timeout=timeout)
        self.handler = handler
        self.apply_controls(controls)

    @property
    def actions(self) -> list[ControlAction]:
        return [item.action for item in self.children if isinstance(item, ControlButton)]

    def apply_controls(self, controls: Iterable[ControlSpec]) -> None:
        self.clear_items()
        for spec in controls:
            self.add_item(ControlButton(spec))

    def show_confirmation(self) -> None:
        self.apply_controls(render_confirm_controls())

    async def on_timeout(self) -> None:
        await self.handler.on_collector_end(self)

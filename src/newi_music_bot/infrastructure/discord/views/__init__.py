"""Discord UI views and components."""

from __future__ import annotations

from newi_music_bot.infrastructure.discord.views.base_view import BaseInteractiveView
from newi_music_bot.infrastructure.discord.views.now_playing_view import (
    ControlButton,
    NowPlayingView,
)
from newi_music_bot.infrastructure.discord.views.search_view import SearchView

__all__ = [
    "BaseInteractiveView",
    "ControlButton",
    "NowPlayingView",
    "SearchView",
]

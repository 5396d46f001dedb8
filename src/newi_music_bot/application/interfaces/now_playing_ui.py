"""Port interface for the status message the application layer drives."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.music.entities import PlaybackSession


class NowPlayingUI(ABC):
    @abstractmethod
    async def refresh(self, session: PlaybackSession, channel: object | None = None, *, fast: bool = False) -> bool:
        """Re-render the status message; returns True when something was sent or edited."""
        ...

    @abstractmethod
    def schedule_refresh(self, session: PlaybackSession, delay: float, *, fast: bool = False) -> None:
        """Refresh after ``delay`` seconds, replacing any pending delayed refresh."""
        ...

    @abstractmethod
    async def show_stopped(self, session: PlaybackSession) -> None:
        """Cancel UI timers and the collector, render the stopped variant and drop the handle."""
        ...

    @abstractmethod
    async def notify(self, session: PlaybackSession, text: str) -> None:
        """Post a plain chat message next to the status message."""
        ...

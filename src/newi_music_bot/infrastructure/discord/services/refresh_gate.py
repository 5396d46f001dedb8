"""Throttle and diff gate deciding whether a status refresh reaches Discord."""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ....domain.music.entities import NowPlayingState


class RefreshDecision(Enum):
    SKIP = "skip"
    RENDER_NOW = "render_now"
    DEFER = "defer"


class RefreshGate:
    """Per-session throttle keyed on ``NowPlayingState.last_update``/``rendered``.

    A fast refresh always renders. A normal refresh is skipped when the
    candidate equals the last rendered frame, and deferred while inside the
    minimum interval.
    """

    def __init__(self, *, min_interval_s: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._min_interval = min_interval_s
        self._clock = clock

    @property
    def min_interval(self) -> float:
        return self._min_interval

    def decide(self, state: NowPlayingState, candidate: Any, *, fast: bool = False) -> RefreshDecision:
        if fast:
            return RefreshDecision.RENDER_NOW
        if state.rendered is not None and candidate == state.rendered:
            return RefreshDecision.SKIP
        if self.remaining(state) > 0:
            return RefreshDecision.DEFER
        return RefreshDecision.RENDER_NOW

    def remaining(self, state: NowPlayingState) -> float:
        """Seconds left in the throttle window (0 when outside it)."""
        if state.last_update is None:
            return 0.0
        return max(0.0, self._min_interval - (self._clock() - state.last_update))

    def record(self, state: NowPlayingState, rendered: Any) -> None:
        state.last_update = self._clock()
        state.rendered = rendered

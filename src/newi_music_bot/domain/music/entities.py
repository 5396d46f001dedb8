"""Core domain entities for the music bounded context."""

from __future__ import annotations

import asyncio
import random
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from newi_music_bot.domain.music.value_objects import LoadType, PlaybackStatus
from newi_music_bot.domain.shared.exceptions import (
    BusinessRuleViolationError,
    InvalidOperationError,
)
from newi_music_bot.domain.shared.messages import ErrorMessages
from newi_music_bot.domain.shared.types import (
    DiscordSnowflake,
    DurationMs,
    NonEmptyStr,
    NonNegativeInt,
    PositiveInt,
    VolumeInt,
)


class Track(BaseModel):
    """Immutable descriptor of a playable track.

    ``engine_track`` carries the audio engine's own handle so the track can be
    replayed without another lookup. It never leaves the process.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    identifier: NonEmptyStr
    title: str
    author: str | None = None
    duration_ms: DurationMs = 0
    uri: str | None = None
    artwork_url: str | None = None
    is_stream: bool = False

    requested_as_url: bool = False
    requested_by_id: DiscordSnowflake | None = None
    requested_by_name: str | None = None

    engine_track: Any = Field(default=None, exclude=True, repr=False)

    def with_request(
        self,
        *,
        as_url: bool,
        user_id: int | None = None,
        user_name: str | None = None,
    ) -> Track:
        """Return a copy of this track stamped with how and by whom it was requested."""
        return self.model_copy(
            update={
                "requested_as_url": as_url,
                "requested_by_id": user_id,
                "requested_by_name": user_name,
            }
        )


class SearchResult(BaseModel):
    """Tracks returned by an engine lookup."""

    model_config = ConfigDict(frozen=True)

    load_type: LoadType
    tracks: tuple[Track, ...] = ()
    playlist_name: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.tracks


def _cancel(task: asyncio.Task[Any] | None) -> None:
    # A timer may end up cancelling itself (pause auto-stop runs stop); let it finish.
    if task is None or task.done():
        return
    try:
        current = asyncio.current_task()
    except RuntimeError:
        current = None
    if task is not current:
        task.cancel()


class NowPlayingState:
    """Runtime handles for the status message of one session.

    Every ``cancel_*`` helper drops the reference after cancelling and is safe
    to call repeatedly.
    """

    def __init__(self) -> None:
        self.message: Any = None
        self.message_sent_at: float | None = None
        self.rendered: Any = None
        self.last_update: float | None = None
        self.collector: Any = None
        self.confirm_task: asyncio.Task[None] | None = None
        self.confirm_expires_at: float | None = None
        self.periodic_task: asyncio.Task[None] | None = None
        self.pending_refresh: asyncio.Task[None] | None = None
        self.pause_stop_task: asyncio.Task[None] | None = None
        self.refreshing = False

    @property
    def confirming(self) -> bool:
        return self.confirm_task is not None

    def cancel_periodic(self) -> None:
        task, self.periodic_task = self.periodic_task, None
        _cancel(task)

    def cancel_pending_refresh(self) -> None:
        task, self.pending_refresh = self.pending_refresh, None
        _cancel(task)

    def cancel_confirmation(self) -> None:
        task, self.confirm_task = self.confirm_task, None
        self.confirm_expires_at = None
        _cancel(task)

    def cancel_pause_stop(self) -> None:
        task, self.pause_stop_task = self.pause_stop_task, None
        _cancel(task)

    def detach_collector(self) -> Any:
        """Stop and drop the interaction collector, returning it (or None)."""
        collector, self.collector = self.collector, None
        if collector is not None:
            collector.stop()
        return collector

    def forget_message(self) -> None:
        self.message = None
        self.message_sent_at = None
        self.rendered = None
        self.last_update = None

    def cancel_timers(self) -> None:
        self.cancel_periodic()
        self.cancel_pending_refresh()
        self.cancel_confirmation()
        self.cancel_pause_stop()

    def reset(self) -> None:
        self.cancel_timers()
        self.detach_collector()
        self.forget_message()
        self.refreshing = False


_SNAPSHOT_FIELDS = ("current", "playing", "paused", "position_ms", "paused_position_ms")


class PlaybackSession(BaseModel):
    """Playback and UI state for a single Discord guild.

    ``history`` is most-recent-last. ``current`` is None exactly when the
    session is stopped.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    guild_id: DiscordSnowflake
    text_channel_id: DiscordSnowflake | None = None
    voice_channel_id: DiscordSnowflake | None = None
    node_label: str | None = None

    current: Track | None = None
    upcoming: list[Track] = Field(default_factory=list)
    history: list[Track] = Field(default_factory=list)

    playing: bool = False
    paused: bool = False
    position_ms: NonNegativeInt = 0
    paused_position_ms: NonNegativeInt | None = None

    volume: VolumeInt = 50
    speed: float = Field(default=1.0, gt=0.0)
    connected: bool = False

    max_queue_size: PositiveInt = 200
    max_history_size: PositiveInt = 1000
    track_started_at: float | None = None

    ui: NowPlayingState = Field(default_factory=NowPlayingState, exclude=True, repr=False)

    @property
    def status(self) -> PlaybackStatus:
        if self.paused:
            return PlaybackStatus.PAUSED
        if self.playing:
            return PlaybackStatus.PLAYING
        return PlaybackStatus.STOPPED

    @property
    def is_active(self) -> bool:
        return self.playing or self.paused

    @property
    def display_position_ms(self) -> int:
        if self.paused and self.paused_position_ms is not None:
            return self.paused_position_ms
        return self.position_ms

    # ── Queue ───────────────────────────────────────────────────────

    def enqueue(self, track: Track) -> int:
        """Append a track and return its 1-based position in the upcoming queue."""
        if len(self.upcoming) >= self.max_queue_size:
            raise BusinessRuleViolationError(
                rule="MAX_QUEUE_SIZE",
                message=ErrorMessages.QUEUE_FULL.format(limit=self.max_queue_size),
            )
        self.upcoming.append(track)
        return len(self.upcoming)

    def enqueue_many(self, tracks: list[Track] | tuple[Track, ...]) -> int:
        """Append as many tracks as fit and return how many were added."""
        room = max(0, self.max_queue_size - len(self.upcoming))
        accepted = list(tracks[:room])
        self.upcoming.extend(accepted)
        return len(accepted)

    def _push_history(self, track: Track) -> None:
        self.history.append(track)
        overflow = len(self.history) - self.max_history_size
        if overflow > 0:
            del self.history[:overflow]

    def _trim_upcoming(self) -> int:
        overflow = len(self.upcoming) - self.max_queue_size
        if overflow <= 0:
            return 0
        del self.upcoming[-overflow:]
        return overflow

    def shuffle_upcoming(self, rng: random.Random | None = None) -> None:
        """Fisher-Yates shuffle of the upcoming queue in place."""
        rand = rng or random
        items = self.upcoming
        for i in range(len(items) - 1, 0, -1):
            j = rand.randint(0, i)
            items[i], items[j] = items[j], items[i]

    # ── Playback transitions ────────────────────────────────────────

    def start(self, track: Track) -> None:
        self.current = track
        self.playing = True
        self.paused = False
        self.paused_position_ms = None
        self.position_ms = 0

    def advance(self) -> Track | None:
        """Retire the current track to history and pop the next upcoming one."""
        if self.current is not None:
            self._push_history(self.current)
        self.paused = False
        self.paused_position_ms = None
        self.position_ms = 0

        if not self.upcoming:
            self.current = None
            self.playing = False
            return None

        self.current = self.upcoming.pop(0)
        return self.current

    def step_back(self) -> Track | None:
        """Make the most recent history entry current, pushing current back to upcoming.

        A full queue loses its last entry to make room.
        """
        if not self.history:
            return None

        previous = self.history.pop()
        if self.current is not None:
            self.upcoming.insert(0, self.current)
        self._trim_upcoming()
        self.current = previous
        self.paused = False
        self.paused_position_ms = None
        self.position_ms = 0
        return previous

    def mark_paused(self, position_ms: int) -> None:
        self.paused = True
        self.position_ms = max(0, position_ms)
        self.paused_position_ms = self.position_ms

    def mark_resumed(self) -> None:
        self.paused = False
        self.paused_position_ms = None
        if self.current is not None:
            self.playing = True

    def clear(self) -> None:
        self.current = None
        self.upcoming.clear()
        self.history.clear()
        self.playing = False
        self.paused = False
        self.paused_position_ms = None
        self.position_ms = 0
        self.track_started_at = None

    def clear_queue(self) -> int:
        """Drop upcoming and history but keep the current track. Returns how many were removed."""
        removed = len(self.upcoming) + len(self.history)
        self.upcoming.clear()
        self.history.clear()
        return removed

    def snapshot(self) -> dict[str, Any]:
        """Copy of the queue and transport fields, for rolling back a failed transition."""
        state = {name: getattr(self, name) for name in _SNAPSHOT_FIELDS}
        state["upcoming"] = list(self.upcoming)
        state["history"] = list(self.history)
        return state

    def restore(self, state: dict[str, Any]) -> None:
        for name in _SNAPSHOT_FIELDS:
            setattr(self, name, state[name])
        self.upcoming[:] = state["upcoming"]
        self.history[:] = state["history"]

    # ── Merged view ─────────────────────────────────────────────────

    def merged_view(self) -> list[tuple[int, Track]]:
        """History, current and upcoming as ``(index, track)`` pairs.

        History is indexed backwards from -1 (most recent), current is 0 and
        upcoming counts forward from 1.
        """
        entries = [(i - len(self.history), t) for i, t in enumerate(self.history)]
        if self.current is not None:
            entries.append((0, self.current))
        entries.extend((i + 1, t) for i, t in enumerate(self.upcoming))
        return entries

    def jump_to(self, index: int) -> Track:
        """Make the track at ``index`` of the merged view current.

        Tracks passed over move to history (forward jump) or back to the
        front of upcoming (backward jump), so the merged order is preserved.
        Entries pushed past the queue bound fall off the end.
        """
        if index == 0:
            if self.current is None:
                raise InvalidOperationError("jump", "stopped", ErrorMessages.JUMP_OUT_OF_RANGE)
            return self.current

        if index > 0:
            if index > len(self.upcoming):
                raise InvalidOperationError("jump", f"{len(self.upcoming)} upcoming", ErrorMessages.JUMP_OUT_OF_RANGE)
            passed = ([self.current] if self.current is not None else []) + self.upcoming[: index - 1]
            target = self.upcoming[index - 1]
            del self.upcoming[:index]
            for track in passed:
                self._push_history(track)
        else:
            if -index > len(self.history):
                raise InvalidOperationError("jump", f"{len(self.history)} in history", ErrorMessages.JUMP_OUT_OF_RANGE)
            pos = len(self.history) + index
            target = self.history[pos]
            displaced = self.history[pos + 1 :] + ([self.current] if self.current is not None else [])
            del self.history[pos:]
            self.upcoming[:0] = displaced
            self._trim_upcoming()

        self.current = target
        self.paused = False
        self.paused_position_ms = None
        self.position_ms = 0
        return target

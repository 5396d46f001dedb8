"""Typed engine events and the in-memory bus that dispatches them."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from newi_music_bot.domain.music.value_objects import TrackEndReason
from newi_music_bot.domain.shared.messages import LogTemplates
from newi_music_bot.domain.shared.types import (
    DiscordSnowflake,
    NonEmptyStr,
    UtcDatetimeField,
    utcnow,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="DomainEvent")
EventHandler = Callable[[T], Awaitable[None]]


class DomainEvent(BaseModel):
    """Base class for all domain events."""

    model_config = ConfigDict(frozen=True)

    event_id: NonEmptyStr = Field(default_factory=lambda: str(uuid4()))
    occurred_at: UtcDatetimeField = Field(default_factory=utcnow)


# === Track Events ===


class TrackStarted(DomainEvent):
    guild_id: DiscordSnowflake
    track_title: str = ""


class TrackEnded(DomainEvent):
    guild_id: DiscordSnowflake
    reason: TrackEndReason = TrackEndReason.FINISHED
    track_title: str = ""


class TrackFailed(DomainEvent):
    guild_id: DiscordSnowflake
    track_title: str = ""
    message: str = ""


class QueueEnded(DomainEvent):
    guild_id: DiscordSnowflake


# === Node Events ===


class NodeConnected(DomainEvent):
    node_label: str


class NodeDisconnected(DomainEvent):
    node_label: str
    reason: str = ""


class NodeErrored(DomainEvent):
    node_label: str
    reason: str = ""


class NodeDestroyed(DomainEvent):
    node_label: str
    reason: str = ""


NODE_DOWN_EVENTS: tuple[type[DomainEvent], ...] = (NodeDisconnected, NodeErrored, NodeDestroyed)


# === Event Bus ===


class EventBus:
    """In-memory pub/sub bus keyed by event type.

    Handlers for one event run concurrently. A handler that raises is logged
    and does not affect its siblings.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler[Any]]] = defaultdict(list)

    def subscribe(self, event_type: type[T], handler: EventHandler[T]) -> None:
        self._handlers[event_type].append(handler)
        logger.debug("Subscribed handler to: %s", event_type.__name__)

    def unsubscribe(self, event_type: type[T], handler: EventHandler[T]) -> None:
        handlers = self._handlers[event_type]
        if handler in handlers:
            handlers.remove(handler)
            logger.debug("Unsubscribed handler from %s", event_type.__name__)

    def handler_count(self, event_type: type[DomainEvent]) -> int:
        return len(self._handlers.get(event_type, []))

    async def publish(self, event: DomainEvent) -> None:
        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))

        if not handlers:
            logger.debug("No handlers for %s", event_type.__name__)
            return

        logger.debug("Publishing %s to %d handlers", event_type.__name__, len(handlers))

        async def safe_call(handler: EventHandler[Any]) -> None:
            try:
                await handler(event)
            except Exception:
                logger.exception(LogTemplates.EVENT_HANDLER_FAILED, event_type.__name__)

        async with asyncio.TaskGroup() as tg:
            for handler in handlers:
                tg.create_task(safe_call(handler))

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()
        logger.debug("Cleared all event handlers")

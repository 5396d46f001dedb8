"""Message edit/delete wrappers that absorb "already gone" and retry one rate limit."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import discord

from newi_music_bot.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_S = 1.0


def retry_after(error: BaseException) -> float | None:
    """Server-requested delay for a rate-limit error, or None for any other error."""
    if isinstance(error, discord.RateLimited):
        return float(error.retry_after)
    if isinstance(error, discord.HTTPException) and error.status == 429:
        headers = getattr(error.response, "headers", None) or {}
        try:
            return float(headers.get("Retry-After", DEFAULT_RETRY_AFTER_S))
        except (TypeError, ValueError):
            return DEFAULT_RETRY_AFTER_S
    return None


async def _call_with_retry(op_name: str, call: Callable[[], Awaitable[Any]]) -> None:
    try:
        await call()
        return
    except discord.NotFound:
        raise
    except (discord.HTTPException, discord.RateLimited) as e:
        delay = retry_after(e)
        if delay is None:
            raise
        logger.warning(LogTemplates.TRANSPORT_RATE_LIMITED, op_name, delay)
        await asyncio.sleep(delay)

    await call()


async def safe_edit(message: discord.Message | None, **payload: Any) -> bool:
    """Edit ``message``; returns False when there is no message or it no longer exists."""
    if message is None:
        return False
    try:
        await _call_with_retry("edit", lambda: message.edit(**payload))
    except discord.NotFound:
        logger.debug(LogTemplates.TRANSPORT_MESSAGE_GONE, getattr(message, "id", "?"), "edit")
        return False
    return True


async def safe_delete(message: discord.Message | None) -> bool:
    """Delete ``message``; returns False when there is no message or it was already gone."""
    if message is None:
        return False
    try:
        await _call_with_retry("delete", message.delete)
    except discord.NotFound:
        logger.debug(LogTemplates.TRANSPORT_MESSAGE_GONE, getattr(message, "id", "?"), "delete")
        return False
    return True

"""Reusable Pydantic Annotated types for domain-wide validation."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BeforeValidator, Field

DiscordSnowflake = Annotated[int, Field(gt=0, lt=2**64)]
"""Positive integer that fits a Discord snowflake (1 … 2^64-1)."""

NonNegativeInt = Annotated[int, Field(ge=0)]

PositiveInt = Annotated[int, Field(gt=0)]

VolumeInt = Annotated[int, Field(ge=0, le=100)]
"""Player volume percentage in [0, 100]."""

DurationMs = Annotated[int, Field(ge=0)]
"""Track length or position in milliseconds; 0 for live streams."""

NonEmptyStr = Annotated[str, Field(min_length=1)]


def _ensure_utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (UTC)")
    return v.astimezone(UTC)


UtcDatetimeField = Annotated[datetime, BeforeValidator(_ensure_utc)]
"""Timezone-aware datetime, normalised to UTC on input."""


def utcnow() -> datetime:
    return datetime.now(UTC)

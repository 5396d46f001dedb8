# ruff: noqa: N999
"""
Domain Layer

Contains pure playback logic:
- shared/: Cross-cutting types, exceptions, messages and events
- music/: Track, session and queue rules
"""

from newi_music_bot.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]

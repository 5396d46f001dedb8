"""
Shared Domain Kernel

Contains types and exceptions shared across the domain.
"""

from newi_music_bot.domain.shared.exceptions import (
    AudioEngineError,
    BusinessRuleViolationError,
    DomainError,
    InvalidOperationError,
)

__all__ = [
    "DomainError",
    "BusinessRuleViolationError",
    "InvalidOperationError",
    "AudioEngineError",
]

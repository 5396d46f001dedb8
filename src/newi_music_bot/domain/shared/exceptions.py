"""Base exception classes for domain-level errors."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class BusinessRuleViolationError(DomainError):
    """Raised when a business rule is violated."""

    def __init__(self, rule: str, message: str | None = None) -> None:
        msg = message or f"Business rule violated: {rule}"
        super().__init__(msg, code="BUSINESS_RULE_VIOLATION")
        self.rule = rule


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state


class AudioEngineError(DomainError):
    """Raised when the audio engine fails a search, connect or playback call."""

    def __init__(self, operation: str, message: str | None = None) -> None:
        msg = message or f"Audio engine failed during '{operation}'"
        super().__init__(msg, code="AUDIO_ENGINE_ERROR")
        self.operation = operation

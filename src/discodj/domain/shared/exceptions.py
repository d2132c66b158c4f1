"""Base exception classes for domain-level errors."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ValidationError(DomainError):
    """Raised when user-supplied input fails validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state


class InvalidQueueIndexError(DomainError):
    """Raised when a queue index is outside the current queue bounds."""

    def __init__(self, index: int, queue_length: int, message: str | None = None) -> None:
        msg = message or f"Index {index + 1} is out of range (queue has {queue_length} tracks)"
        super().__init__(msg, code="INVALID_QUEUE_INDEX")
        self.index = index
        self.queue_length = queue_length


class TrackResolutionError(DomainError):
    """Raised when a track cannot be resolved into something playable."""

    def __init__(self, query: str, message: str | None = None) -> None:
        msg = message or f"Could not resolve '{query}'"
        super().__init__(msg, code="TRACK_RESOLUTION_FAILED")
        self.query = query

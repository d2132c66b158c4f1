"""
Shared Domain Kernel

Contains exceptions, message catalogues and constrained types shared across the package.
"""

from discodj.domain.shared.exceptions import (
    DomainError,
    InvalidOperationError,
    InvalidQueueIndexError,
    TrackResolutionError,
    ValidationError,
)

__all__ = [
    "DomainError",
    "ValidationError",
    "InvalidOperationError",
    "InvalidQueueIndexError",
    "TrackResolutionError",
]

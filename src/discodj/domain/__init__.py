# ruff: noqa: N999
"""
Domain Layer

Contains pure playback logic organized by bounded contexts:
- shared/: Cross-cutting exceptions, message catalogues and constrained types
- music/: Track, room state, queue rules and the playback clock
"""

from discodj.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]

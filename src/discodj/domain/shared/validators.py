"""Shared validators for domain models and user input.

These are plain functions so they can back Pydantic ``field_validator``
hooks as well as direct checks in the application layer.
"""

from __future__ import annotations

import math

from discodj.domain.shared.exceptions import ValidationError
from discodj.domain.shared.messages import ErrorMessages
from discodj.domain.shared.types import MAX_VOLUME, MIN_VOLUME


def validate_discord_snowflake(value: int) -> int:
    """Validate a Discord snowflake ID.

    Discord snowflake IDs are 64-bit unsigned integers representing unique
    identifiers for users, guilds, channels, messages, etc.

    Raises:
        ValueError: If the snowflake ID is invalid.
    """
    if value <= 0:
        raise ValueError(ErrorMessages.INVALID_SNOWFLAKE)
    if value >= 2**64:
        raise ValueError(ErrorMessages.SNOWFLAKE_TOO_LARGE)
    return value


def validate_volume(value: int) -> int:
    """Return *value* if it is a valid room volume, else raise ``ValidationError``."""
    if not MIN_VOLUME <= value <= MAX_VOLUME:
        raise ValidationError(ErrorMessages.INVALID_VOLUME, field="volume")
    return value


def clamp_volume(value: object, default: int) -> int:
    """Coerce arbitrary persisted data into the 0..200 volume range."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return int(max(MIN_VOLUME, min(MAX_VOLUME, value)))

"""Voice channel and permission guard functions for Discord cogs."""

from discodj.infrastructure.discord.guards.voice_guards import (
    check_user_in_bot_channel,
    ensure_dj,
    ensure_user_in_voice,
    get_member,
    has_dj_permission,
    send_ephemeral,
)

__all__ = [
    "check_user_in_bot_channel",
    "ensure_dj",
    "ensure_user_in_voice",
    "get_member",
    "has_dj_permission",
    "send_ephemeral",
]

"""Reusable guard functions for Discord slash commands and panel buttons.

These are free functions that accept explicit dependencies rather than relying
on a specific cog instance, making them usable from any cog or view.
"""

from __future__ import annotations

import discord

from discodj.domain.shared.messages import DiscordUIMessages


async def send_ephemeral(interaction: discord.Interaction, message: str) -> None:
    """Send an ephemeral message, handling both fresh and already-responded interactions."""
    if interaction.response.is_done():
        await interaction.followup.send(message, ephemeral=True)
    else:
        await interaction.response.send_message(message, ephemeral=True)


async def get_member(interaction: discord.Interaction) -> discord.Member | None:
    """Validate that the interaction comes from a guild member. Returns None with error on failure."""
    if not interaction.guild:
        await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
        return None

    user = interaction.user
    if not isinstance(user, discord.Member):
        await send_ephemeral(interaction, DiscordUIMessages.STATE_VERIFY_VOICE_FAILED)
        return None

    return user


async def ensure_user_in_voice(interaction: discord.Interaction) -> discord.Member | None:
    """Return the member if they are in a voice channel, else reply and return None."""
    member = await get_member(interaction)
    if member is None:
        return None

    if not member.voice or not member.voice.channel:
        await send_ephemeral(interaction, DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE)
        return None

    return member


async def check_user_in_bot_channel(interaction: discord.Interaction) -> discord.Member | None:
    """Return the member if they share the bot's voice channel.

    Sends an ephemeral rejection and returns None otherwise. When the bot is
    not connected anywhere, being in any voice channel is enough.
    """
    member = await ensure_user_in_voice(interaction)
    if member is None:
        return None

    assert member.voice is not None and member.voice.channel is not None
    guild = member.guild
    if guild.voice_client and guild.voice_client.channel:
        if member.voice.channel.id != guild.voice_client.channel.id:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_MUST_BE_IN_VOICE)
            return None

    return member


def has_dj_permission(member: discord.Member, role_name: str) -> bool:
    """Members with Manage Server or the DJ role may use controls in DJ-only mode."""
    if member.guild_permissions.manage_guild:
        return True
    wanted = role_name.casefold()
    return any(role.name.casefold() == wanted for role in member.roles)


async def ensure_dj(
    interaction: discord.Interaction,
    member: discord.Member,
    *,
    dj_only: bool,
    role_name: str,
) -> bool:
    """Check DJ-only mode. Returns False with an ephemeral error when the member is not allowed."""
    if not dj_only or has_dj_permission(member, role_name):
        return True

    await send_ephemeral(interaction, DiscordUIMessages.ERROR_DJ_ONLY.format(role=role_name))
    return False

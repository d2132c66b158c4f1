"""Tests for the voice and DJ guards shared by slash commands and panel buttons."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from discodj.domain.shared.messages import DiscordUIMessages
from discodj.infrastructure.discord.guards.voice_guards import (
    check_user_in_bot_channel,
    ensure_dj,
    ensure_user_in_voice,
    has_dj_permission,
    send_ephemeral,
)


def _make_member(*, in_voice: bool = True, channel_id: int = 100, bot_channel_id: int | None = 100) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    if in_voice:
        member.voice = MagicMock()
        member.voice.channel = MagicMock()
        member.voice.channel.id = channel_id
    else:
        member.voice = None

    member.guild = MagicMock()
    if bot_channel_id is not None:
        member.guild.voice_client = MagicMock()
        member.guild.voice_client.channel = MagicMock()
        member.guild.voice_client.channel.id = bot_channel_id
    else:
        member.guild.voice_client = None
    return member


def _make_interaction(user=None, *, in_guild: bool = True, responded: bool = False) -> MagicMock:
    interaction = MagicMock(spec=discord.Interaction)
    interaction.guild = MagicMock() if in_guild else None
    interaction.user = user if user is not None else _make_member()
    interaction.response = MagicMock()
    interaction.response.is_done = MagicMock(return_value=responded)
    interaction.response.send_message = AsyncMock()
    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()
    return interaction


def _role(name: str) -> MagicMock:
    role = MagicMock(spec=discord.Role)
    role.name = name
    return role


def _dj_member(*, manage_guild: bool = False, roles: tuple[str, ...] = ()) -> MagicMock:
    member = _make_member()
    member.guild_permissions = MagicMock()
    member.guild_permissions.manage_guild = manage_guild
    member.roles = [_role(r) for r in roles]
    return member


# =============================================================================
# send_ephemeral
# =============================================================================


class TestSendEphemeral:
    @pytest.mark.asyncio
    async def test_fresh_interaction_uses_response(self):
        interaction = _make_interaction()

        await send_ephemeral(interaction, "hi")

        interaction.response.send_message.assert_awaited_once_with("hi", ephemeral=True)
        interaction.followup.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deferred_interaction_uses_followup(self):
        interaction = _make_interaction(responded=True)

        await send_ephemeral(interaction, "hi")

        interaction.followup.send.assert_awaited_once_with("hi", ephemeral=True)


# =============================================================================
# Voice checks
# =============================================================================


class TestVoiceChecks:
    """Who may control playback from where."""

    @pytest.mark.asyncio
    async def test_outside_guild(self):
        interaction = _make_interaction(in_guild=False)

        assert await ensure_user_in_voice(interaction) is None
        interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_SERVER_ONLY, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_non_member_user(self):
        interaction = _make_interaction(MagicMock(spec=discord.User))

        assert await ensure_user_in_voice(interaction) is None
        interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_VERIFY_VOICE_FAILED, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_not_in_voice(self):
        interaction = _make_interaction(_make_member(in_voice=False))

        assert await check_user_in_bot_channel(interaction) is None
        interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_same_channel_as_bot(self):
        member = _make_member(channel_id=100, bot_channel_id=100)
        interaction = _make_interaction(member)

        assert await check_user_in_bot_channel(interaction) is member
        interaction.response.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_different_channel_from_bot(self):
        interaction = _make_interaction(_make_member(channel_id=100, bot_channel_id=200))

        assert await check_user_in_bot_channel(interaction) is None
        interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_MUST_BE_IN_VOICE, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_bot_not_connected(self):
        member = _make_member(bot_channel_id=None)

        assert await check_user_in_bot_channel(_make_interaction(member)) is member


# =============================================================================
# DJ-only mode
# =============================================================================


class TestDjPermission:
    def test_manage_guild_always_allowed(self):
        assert has_dj_permission(_dj_member(manage_guild=True), "DJ")

    def test_role_matched_case_insensitively(self):
        assert has_dj_permission(_dj_member(roles=("everyone", "dj")), "DJ")

    def test_without_role(self):
        assert not has_dj_permission(_dj_member(roles=("Listener",)), "DJ")

    @pytest.mark.asyncio
    async def test_ensure_dj_off(self):
        interaction = _make_interaction()

        assert await ensure_dj(interaction, _dj_member(), dj_only=False, role_name="DJ")
        interaction.response.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ensure_dj_rejects(self):
        interaction = _make_interaction()

        assert not await ensure_dj(interaction, _dj_member(), dj_only=True, role_name="Selector")
        interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.ERROR_DJ_ONLY.format(role="Selector"), ephemeral=True
        )

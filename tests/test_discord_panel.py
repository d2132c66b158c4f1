"""Tests for the Discord side of the panel: embed, persistent view, display surface and button routing."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from discodj.application.services.panel_models import PanelControls
from discodj.application.services.panel_renderer import render_panel
from discodj.domain.music.entities import PanelRef
from discodj.domain.music.room import RoomState
from discodj.domain.music.value_objects import PlayerStatus
from discodj.domain.shared.messages import DiscordUIMessages, ErrorMessages
from discodj.infrastructure.discord.services.display import DiscordDisplaySurface, build_panel_embed
from discodj.infrastructure.discord.services.panel_actions import PanelActions
from discodj.infrastructure.discord.views.panel_view import PanelView, custom_id_for

from .conftest import CHANNEL_ID, ROOM_ID, ControllerHarness, make_track


def _custom_ids(view: PanelView) -> list[str]:
    return [item.custom_id for item in view.children]


def _button(view: PanelView, action: str) -> discord.ui.Button:
    return next(item for item in view.children if item.custom_id == custom_id_for(action))


def _payload(*, playing: bool = True, queued: int = 0):
    room = RoomState(room_id=ROOM_ID)
    if playing:
        room.now_playing = make_track("Now", thumbnail="https://img.example/now.jpg")
        room.status = PlayerStatus.PLAYING
        room.clock.on_track_start()
    room.enqueue([make_track(f"T{i}") for i in range(queued)])
    return render_panel(room)


# =============================================================================
# Embed
# =============================================================================


class TestPanelEmbed:
    def test_playing_embed(self):
        embed = build_panel_embed(_payload(queued=2))

        assert embed.title == DiscordUIMessages.PANEL_TITLE_PLAYING
        assert embed.thumbnail.url == "https://img.example/now.jpg"
        assert embed.fields[-1].name == DiscordUIMessages.PANEL_UP_NEXT
        assert embed.footer.text == "Page 1/1 · 2 queued"

    def test_idle_embed(self):
        embed = build_panel_embed(_payload(playing=False))

        assert embed.title == DiscordUIMessages.PANEL_TITLE_IDLE
        assert embed.fields[-1].value == DiscordUIMessages.PANEL_UP_NEXT_EMPTY


# =============================================================================
# PanelView
# =============================================================================


class TestPanelView:
    """Button layout follows the rendered controls."""

    @pytest.mark.asyncio
    async def test_persistent_view_has_every_button_enabled(self):
        view = PanelView.persistent(MagicMock())

        assert view.timeout is None
        assert view.is_persistent()
        assert _custom_ids(view) == [
            "music:prev",
            "music:toggle",
            "music:skip",
            "music:stop",
            "music:page_prev",
            "music:page_next",
        ]
        assert not any(item.disabled for item in view.children)

    @pytest.mark.asyncio
    async def test_paused_shows_resume(self):
        view = PanelView(MagicMock(), PanelControls(is_paused=True, has_track=True))

        assert _button(view, "toggle").label == DiscordUIMessages.BUTTON_RESUME

    @pytest.mark.asyncio
    async def test_idle_disables_transport(self):
        view = PanelView(MagicMock(), PanelControls())

        assert _button(view, "skip").disabled
        assert _button(view, "stop").disabled
        assert "music:page_next" not in _custom_ids(view)

    @pytest.mark.asyncio
    async def test_page_buttons_follow_position(self):
        view = PanelView(
            MagicMock(),
            PanelControls(has_track=True, show_pages=True, page_prev_enabled=False, page_next_enabled=True),
        )

        assert _button(view, "page_prev").disabled
        assert not _button(view, "page_next").disabled

    @pytest.mark.asyncio
    async def test_click_routes_to_handler(self):
        handler = MagicMock()
        handler.handle = AsyncMock()
        view = PanelView(handler, PanelControls(has_track=True))
        interaction = MagicMock()

        await _button(view, "skip").callback(interaction)

        handler.handle.assert_awaited_once_with(interaction, "skip")


# =============================================================================
# DiscordDisplaySurface
# =============================================================================


class TestDiscordDisplaySurface:
    @pytest.fixture
    def channel(self):
        channel = MagicMock(spec=discord.TextChannel)
        channel.send = AsyncMock(return_value=MagicMock(id=987654321))
        channel.fetch_message = AsyncMock()
        return channel

    @pytest.fixture
    def bot(self, channel):
        bot = MagicMock()
        bot.get_channel = MagicMock(return_value=channel)
        return bot

    @pytest.mark.asyncio
    async def test_send_returns_ref(self, bot, channel):
        surface = DiscordDisplaySurface(bot, MagicMock())

        ref = await surface.send(CHANNEL_ID, _payload())

        assert ref == PanelRef(channel_id=CHANNEL_ID, message_id=987654321)
        kwargs = channel.send.call_args.kwargs
        assert isinstance(kwargs["embed"], discord.Embed)
        assert isinstance(kwargs["view"], PanelView)

    @pytest.mark.asyncio
    async def test_view_omitted_until_handler_attached(self, bot):
        surface = DiscordDisplaySurface(bot)

        assert surface.build_view(_payload()) is None
        surface.attach_handler(MagicMock())
        assert isinstance(surface.build_view(_payload()), PanelView)

    @pytest.mark.asyncio
    async def test_edit_missing_message(self, bot, channel):
        channel.fetch_message.side_effect = discord.NotFound(MagicMock(status=404, reason="Not Found"), "gone")
        surface = DiscordDisplaySurface(bot, MagicMock())
        ref = PanelRef(channel_id=CHANNEL_ID, message_id=1)

        assert await surface.edit(ref, _payload()) is False
        assert await surface.fetch_message(ref) is None

    @pytest.mark.asyncio
    async def test_edit_server_error_propagates(self, bot, channel):
        """A 5xx on an existing message is not reported as a missing message."""
        message = MagicMock()
        message.edit = AsyncMock(
            side_effect=discord.HTTPException(MagicMock(status=503, reason="Service Unavailable"), "busy")
        )
        channel.fetch_message.return_value = message
        surface = DiscordDisplaySurface(bot, MagicMock())

        with pytest.raises(discord.HTTPException):
            await surface.edit(PanelRef(channel_id=CHANNEL_ID, message_id=1), _payload())

    @pytest.mark.asyncio
    async def test_fetch_server_error_propagates(self, bot, channel):
        channel.fetch_message.side_effect = discord.HTTPException(
            MagicMock(status=500, reason="Internal Server Error"), "oops"
        )
        surface = DiscordDisplaySurface(bot, MagicMock())

        with pytest.raises(discord.HTTPException):
            await surface.fetch_message(PanelRef(channel_id=CHANNEL_ID, message_id=1))

    @pytest.mark.asyncio
    async def test_edit_message_deleted_during_edit(self, bot, channel):
        message = MagicMock()
        message.edit = AsyncMock(side_effect=discord.NotFound(MagicMock(status=404, reason="Not Found"), "gone"))
        channel.fetch_message.return_value = message
        surface = DiscordDisplaySurface(bot, MagicMock())

        assert await surface.edit(PanelRef(channel_id=CHANNEL_ID, message_id=1), _payload()) is False

    @pytest.mark.asyncio
    async def test_edit_existing_message(self, bot, channel):
        message = MagicMock()
        message.edit = AsyncMock()
        channel.fetch_message.return_value = message
        surface = DiscordDisplaySurface(bot, MagicMock())

        assert await surface.edit(PanelRef(channel_id=CHANNEL_ID, message_id=1), _payload()) is True
        message.edit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_channel(self, bot):
        bot.get_channel.return_value = None
        bot.fetch_channel = AsyncMock(side_effect=discord.NotFound(MagicMock(status=404, reason="x"), "x"))
        surface = DiscordDisplaySurface(bot)

        assert await surface.channel_exists(CHANNEL_ID) is False
        with pytest.raises(LookupError):
            await surface.send(CHANNEL_ID, _payload())

    @pytest.mark.asyncio
    async def test_notify(self, bot, channel):
        await DiscordDisplaySurface(bot).notify(CHANNEL_ID, "hello")

        channel.send.assert_awaited_once_with("hello")


# =============================================================================
# PanelActions
# =============================================================================


def _interaction(*, manage_guild: bool = True, role_names: tuple[str, ...] = ()) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.voice = MagicMock()
    member.voice.channel = MagicMock()
    member.voice.channel.id = 444444444444444444
    member.guild = MagicMock()
    member.guild.id = ROOM_ID
    member.guild.voice_client = None
    member.guild_permissions = MagicMock(manage_guild=manage_guild)
    roles = []
    for name in role_names:
        role = MagicMock(spec=discord.Role)
        role.name = name
        roles.append(role)
    member.roles = roles

    interaction = MagicMock(spec=discord.Interaction)
    interaction.guild = member.guild
    interaction.user = member
    interaction.response = MagicMock()
    interaction.response.is_done = MagicMock(return_value=True)
    interaction.response.defer = AsyncMock()
    interaction.response.send_message = AsyncMock()
    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()
    return interaction


class TestPanelActions:
    """Button clicks run through the room's executor."""

    @pytest.fixture
    def actions(self, harness: ControllerHarness) -> PanelActions:
        return PanelActions(controller=harness.controller, executor=harness.executor)

    @pytest.mark.asyncio
    async def test_skip(self, harness: ControllerHarness, actions: PanelActions):
        await harness.start(make_track("A"), make_track("B"))
        interaction = _interaction()

        await actions.handle(interaction, "skip")
        await harness.settle()

        interaction.response.defer.assert_awaited_once()
        assert harness.room.now_playing.title == "B"

    @pytest.mark.asyncio
    async def test_toggle(self, harness: ControllerHarness, actions: PanelActions):
        await harness.start(make_track("A"))

        await actions.handle(_interaction(), "toggle")

        assert harness.room.status is PlayerStatus.PAUSED

    @pytest.mark.asyncio
    async def test_domain_error_reported(self, harness: ControllerHarness, actions: PanelActions):
        interaction = _interaction()

        await actions.handle(interaction, "skip")

        interaction.followup.send.assert_awaited_once_with(ErrorMessages.NOTHING_PLAYING, ephemeral=True)

    @pytest.mark.asyncio
    async def test_dj_only_blocks_controls(self, harness: ControllerHarness, actions: PanelActions):
        await harness.start(make_track("A"), make_track("B"))
        harness.room.settings.dj_only = True
        interaction = _interaction(manage_guild=False, role_names=("Listener",))

        await actions.handle(interaction, "stop")

        interaction.response.defer.assert_not_awaited()
        assert harness.room.now_playing.title == "A"

    @pytest.mark.asyncio
    async def test_dj_role_allowed(self, harness: ControllerHarness, actions: PanelActions):
        await harness.start(make_track("A"), make_track("B"))
        harness.room.settings.dj_only = True

        await actions.handle(_interaction(manage_guild=False, role_names=("DJ",)), "stop")

        assert harness.room.now_playing is None

    @pytest.mark.asyncio
    async def test_paging_ignores_dj_only(self, harness: ControllerHarness, actions: PanelActions):
        await harness.start(*(make_track(f"T{i}") for i in range(15)))
        harness.room.settings.dj_only = True

        await actions.handle(_interaction(manage_guild=False), "page_next")

        assert harness.room.queue_page == 1

    @pytest.mark.asyncio
    async def test_unknown_action_ignored(self, harness: ControllerHarness, actions: PanelActions):
        interaction = _interaction()

        await actions.handle(interaction, "explode")

        interaction.response.defer.assert_not_awaited()

"""Persistent button row attached to a room's panel message."""

from __future__ import annotations

import logging
from typing import Final, Protocol

import discord

from discodj.application.services.panel_models import PanelControls
from discodj.domain.shared.messages import DiscordUIMessages

logger = logging.getLogger(__name__)

CUSTOM_ID_PREFIX: Final[str] = "music:"


class PanelActionHandler(Protocol):
    async def handle(self, interaction: discord.Interaction, action: str) -> None: ...


def custom_id_for(action: str) -> str:
    return f"{CUSTOM_ID_PREFIX}{action}"


class PanelView(discord.ui.View):
    """Prev / Pause-Resume / Skip / Stop, plus page buttons when the queue spans pages.

    Every button carries a fixed ``music:<action>`` custom id and the view has
    no timeout, so one instance registered at startup keeps dispatching clicks
    on panels posted before a restart.
    """

    def __init__(self, handler: PanelActionHandler, controls: PanelControls | None = None) -> None:
        super().__init__(timeout=None)
        self._handler = handler
        persistent = controls is None
        controls = controls or PanelControls()

        self._add_button(
            "prev",
            DiscordUIMessages.BUTTON_PREV,
            disabled=not (persistent or controls.can_go_back),
        )
        self._add_button(
            "toggle",
            DiscordUIMessages.BUTTON_RESUME if controls.is_paused else DiscordUIMessages.BUTTON_PAUSE,
            style=discord.ButtonStyle.primary,
            disabled=not (persistent or controls.has_track),
        )
        self._add_button("skip", DiscordUIMessages.BUTTON_SKIP, disabled=not (persistent or controls.has_track))
        self._add_button(
            "stop",
            DiscordUIMessages.BUTTON_STOP,
            style=discord.ButtonStyle.danger,
            disabled=not (persistent or controls.has_track),
        )

        if persistent or controls.show_pages:
            self._add_button(
                "page_prev",
                DiscordUIMessages.BUTTON_PAGE_PREV,
                row=1,
                disabled=not (persistent or controls.page_prev_enabled),
            )
            self._add_button(
                "page_next",
                DiscordUIMessages.BUTTON_PAGE_NEXT,
                row=1,
                disabled=not (persistent or controls.page_next_enabled),
            )

    @classmethod
    def persistent(cls, handler: PanelActionHandler) -> PanelView:
        """The view registered with ``bot.add_view`` to route clicks after a restart."""
        return cls(handler)

    def _add_button(
        self,
        action: str,
        label: str,
        *,
        style: discord.ButtonStyle = discord.ButtonStyle.secondary,
        disabled: bool = False,
        row: int = 0,
    ) -> None:
        button: discord.ui.Button[PanelView] = discord.ui.Button(
            label=label,
            style=style,
            custom_id=custom_id_for(action),
            disabled=disabled,
            row=row,
        )

        async def callback(interaction: discord.Interaction) -> None:
            await self._handler.handle(interaction, action)

        button.callback = callback  # type: ignore[method-assign]
        self.add_item(button)

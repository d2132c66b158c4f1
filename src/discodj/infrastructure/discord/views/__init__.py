"""Discord UI views and components."""

from __future__ import annotations

from discodj.infrastructure.discord.views.panel_view import PanelActionHandler, PanelView

__all__ = [
    "PanelActionHandler",
    "PanelView",
]

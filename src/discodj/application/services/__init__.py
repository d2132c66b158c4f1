"""
Application Services

Orchestration of room state: serial execution, playback control and panel sync.
"""

from discodj.application.services.best_effort import best_effort
from discodj.application.services.panel_models import PanelPayload
from discodj.application.services.panel_renderer import render_panel
from discodj.application.services.panel_sync import PanelSync
from discodj.application.services.playback_controller import PlaybackController
from discodj.application.services.progress_ticker import ProgressTicker
from discodj.application.services.serial_executor import SerialExecutor

__all__ = [
    "best_effort",
    "PanelPayload",
    "PanelSync",
    "PlaybackController",
    "ProgressTicker",
    "SerialExecutor",
    "render_panel",
]

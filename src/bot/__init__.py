"""Discord bot runtime components: presence, panel refresh loop and commands."""

from .helpers import PresenceManager
from .panel_updater import PanelUpdater

__all__ = [
    "PresenceManager",
    "PanelUpdater",
]

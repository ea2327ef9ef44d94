"""Discord slash command registration.

Exports register_status_commands() which registers /panel, /status, /online
and /rawlist on the bot's command tree.
"""

from .status_commands import register_status_commands

__all__ = ["register_status_commands"]

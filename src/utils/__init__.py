"""General-purpose utilities for MC Status Panel."""

from .rate_limiting import CommandCooldown, QUERY_COOLDOWN, PANEL_COOLDOWN

__all__ = [
    "CommandCooldown",
    "QUERY_COOLDOWN",
    "PANEL_COOLDOWN",
]

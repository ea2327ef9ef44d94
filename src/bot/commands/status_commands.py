"""Slash command registration for the status commands.

Commands are top-level (no group): /panel, /status, /online, /rawlist.
With admin visibility they are also registered with Manage Server as the
default member permission, so Discord hides them from everyone else.
"""

from typing import Any, Dict

import discord
from discord import app_commands
import structlog

from bot.commands.command_handlers import (
    BaseCommandHandler,
    CommandResult,
    OnlineCommandHandler,
    PanelCommandHandler,
    RawListCommandHandler,
    StatusCommandHandler,
)
from bot.helpers import send_ephemeral_error
from utils.rate_limiting import PANEL_COOLDOWN, QUERY_COOLDOWN

logger = structlog.get_logger()

GENERIC_ERROR = "⚠️ An error occurred."


async def send_command_response(interaction: discord.Interaction, result: CommandResult) -> None:
    """Deliver a CommandResult through the initial response or the followup webhook."""
    kwargs: Dict[str, Any] = {"ephemeral": result.ephemeral}
    if result.content is not None:
        kwargs["content"] = result.content
    if result.embed is not None:
        kwargs["embed"] = result.embed
    if result.view is not None:
        kwargs["view"] = result.view

    if result.followup or interaction.response.is_done():
        await interaction.followup.send(**kwargs)
    else:
        await interaction.response.send_message(**kwargs)


async def run_handler(handler: BaseCommandHandler, interaction: discord.Interaction) -> None:
    """Run a handler; any failure becomes a generic ephemeral error reply."""
    try:
        result = await handler.execute(interaction)
        await send_command_response(interaction, result)
    except Exception as e:
        logger.error(
            "command_failed",
            command=handler.name,
            user_id=interaction.user.id,
            error=str(e),
            exc_info=True,
        )
        await send_ephemeral_error(interaction, GENERIC_ERROR)


def build_handlers(bot: Any) -> Dict[str, BaseCommandHandler]:
    """Create one handler per command from the bot's services."""
    return {
        "panel": PanelCommandHandler(bot.config, PANEL_COOLDOWN, bot.reconciler),
        "status": StatusCommandHandler(bot.config, QUERY_COOLDOWN, bot.status_service),
        "online": OnlineCommandHandler(bot.config, QUERY_COOLDOWN, bot.status_service),
        "rawlist": RawListCommandHandler(bot.config, QUERY_COOLDOWN, bot.status_service),
    }


def register_status_commands(bot: Any) -> Dict[str, BaseCommandHandler]:
    """
    Register the status slash commands on bot.tree.

    Args:
        bot: DiscordBot with config, status_service, reconciler and tree

    Returns:
        The handlers by command name
    """
    handlers = build_handlers(bot)

    @app_commands.command(name="panel", description="Create or restart the status panel in this channel.")
    async def panel_command(interaction: discord.Interaction) -> None:
        await run_handler(handlers["panel"], interaction)

    @app_commands.command(name="status", description="Show the current server status.")
    async def status_command(interaction: discord.Interaction) -> None:
        await run_handler(handlers["status"], interaction)

    @app_commands.command(name="online", description="Show how many players are online.")
    async def online_command(interaction: discord.Interaction) -> None:
        await run_handler(handlers["online"], interaction)

    @app_commands.command(name="rawlist", description="Show the raw status source response (debug).")
    async def rawlist_command(interaction: discord.Interaction) -> None:
        await run_handler(handlers["rawlist"], interaction)

    commands = [panel_command, status_command, online_command, rawlist_command]
    for command in commands:
        if bot.config.admin_only:
            command.default_permissions = discord.Permissions(manage_guild=True)
        bot.tree.add_command(command)

    logger.info(
        "slash_commands_registered",
        commands=[command.name for command in commands],
        visibility=bot.config.command_visibility.value,
    )
    return handlers

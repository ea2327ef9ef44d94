# Copyright (c) 2025 Stephen Clau
#
# This file is part of MC Status Panel.
#
# MC Status Panel is dual-licensed:
#
# 1. GNU Affero General Public License v3.0 (AGPL-3.0)
#    See LICENSE file for full terms
#
# 2. Commercial License
#    For proprietary use without AGPL requirements
#    Contact: licensing@laudiversified.com
#
# SPDX-License-Identifier: AGPL-3.0-only OR Commercial

"""
Command handlers for the status slash commands.

Each handler takes its dependencies through the constructor and returns a
CommandResult; the Discord closures in status_commands.py only deliver it.

    /panel    force-recreate the panel in the invoking channel
    /status   panel embed and link buttons (ephemeral)
    /online   one-line player count
    /rawlist  unparsed status source output (debug)
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Tuple

import discord
import structlog

from config import Config, PanelScope
from embeds import EmbedBuilder, build_link_view
from status_parser import PlayerCount, clean_minecraft_text

logger = structlog.get_logger()

RAW_TEXT_LIMIT = 1900


# ═════════════════════════════════════════════════════════════════════════════
# DEPENDENCY PROTOCOLS
# ═════════════════════════════════════════════════════════════════════════════


class StatusProvider(Protocol):
    async def get_counts(self) -> PlayerCount:
        ...

    async def raw_text(self) -> str:
        ...


class PanelProvider(Protocol):
    async def reconcile(
        self,
        location_key: Any,
        channel_id: Optional[Any] = None,
        force_new: bool = False,
    ) -> Optional[Any]:
        ...


class RateLimiter(Protocol):
    def is_rate_limited(self, user_id: int) -> Tuple[bool, Optional[int]]:
        ...


# ═════════════════════════════════════════════════════════════════════════════
# RESULT TYPE
# ═════════════════════════════════════════════════════════════════════════════


@dataclass
class CommandResult:
    """What to send back for one command invocation."""

    success: bool
    content: Optional[str] = None
    embed: Optional[discord.Embed] = None
    view: Optional[discord.ui.View] = None
    ephemeral: bool = True
    followup: bool = False  # True once the handler deferred the response


def is_authorized(interaction: discord.Interaction, config: Config) -> bool:
    """Admin visibility requires Manage Server or Administrator in the guild."""
    if not config.admin_only:
        return True

    permissions = getattr(interaction.user, "guild_permissions", None)
    if permissions is None:
        return False
    return bool(permissions.manage_guild or permissions.administrator)


class BaseCommandHandler:
    """Shared gatekeeping: permission policy, then rate limiting, then defer."""

    name = "base"

    def __init__(self, config: Config, cooldown: RateLimiter) -> None:
        self.config = config
        self.cooldown = cooldown

    async def _gate(self, interaction: discord.Interaction) -> Optional[CommandResult]:
        """Return a rejection result, or None when the command may proceed."""
        logger.info(
            "handler_invoked",
            handler=type(self).__name__,
            user=interaction.user.name,
            user_id=interaction.user.id,
        )

        if not is_authorized(interaction, self.config):
            logger.info("command_denied", command=self.name, user_id=interaction.user.id)
            return CommandResult(
                success=False,
                embed=EmbedBuilder.error_embed(
                    "You need the **Manage Server** permission to use this command."
                ),
            )

        is_limited, retry = self.cooldown.is_rate_limited(interaction.user.id)
        if is_limited:
            return CommandResult(
                success=False,
                embed=EmbedBuilder.cooldown_embed(int(retry or 0)),
            )
        return None

    async def execute(self, interaction: discord.Interaction) -> CommandResult:
        rejection = await self._gate(interaction)
        if rejection is not None:
            return rejection

        # Remote queries can exceed Discord's 3 s acknowledgement window
        await interaction.response.defer(ephemeral=True, thinking=True)
        result = await self.run(interaction)
        result.followup = True
        return result

    async def run(self, interaction: discord.Interaction) -> CommandResult:
        raise NotImplementedError


class PanelCommandHandler(BaseCommandHandler):
    """/panel: create or restart the panel in the current channel."""

    name = "panel"

    def __init__(self, config: Config, cooldown: RateLimiter, reconciler: PanelProvider) -> None:
        super().__init__(config, cooldown)
        self.reconciler = reconciler

    def location_key(self, interaction: discord.Interaction) -> Optional[str]:
        if self.config.panel_scope is PanelScope.GUILD:
            return str(interaction.guild_id) if interaction.guild_id else None
        return str(interaction.channel_id) if interaction.channel_id else None

    async def execute(self, interaction: discord.Interaction) -> CommandResult:
        rejection = await self._gate(interaction)
        if rejection is not None:
            return rejection

        key = self.location_key(interaction)
        if key is None or interaction.channel_id is None:
            return CommandResult(
                success=False,
                embed=EmbedBuilder.error_embed("⚠️ I can't place a panel here. Use this in a server channel."),
            )

        await interaction.response.defer(ephemeral=True, thinking=True)
        message = await self.reconciler.reconcile(
            key,
            channel_id=interaction.channel_id,
            force_new=True,
        )

        if message is None:
            return CommandResult(
                success=False,
                content="⚠️ I couldn't post the panel in this channel. Check that I can send messages and embeds here.",
                followup=True,
            )

        logger.info("panel_command_completed", location_key=key, message_id=message.id)
        return CommandResult(
            success=True,
            content="✅ Panel ready. It will refresh automatically.",
            followup=True,
        )


class StatusCommandHandler(BaseCommandHandler):
    """/status: the panel embed, privately."""

    name = "status"

    def __init__(self, config: Config, cooldown: RateLimiter, status: StatusProvider) -> None:
        super().__init__(config, cooldown)
        self.status = status

    async def run(self, interaction: discord.Interaction) -> CommandResult:
        counts = await self.status.get_counts()
        return CommandResult(
            success=True,
            embed=EmbedBuilder.panel_embed(self.config, counts),
            view=build_link_view(self.config),
        )


class OnlineCommandHandler(BaseCommandHandler):
    """/online: the player counter only."""

    name = "online"

    def __init__(self, config: Config, cooldown: RateLimiter, status: StatusProvider) -> None:
        super().__init__(config, cooldown)
        self.status = status

    async def run(self, interaction: discord.Interaction) -> CommandResult:
        counts = await self.status.get_counts()
        content = f"👥 Players online: **{counts.display()}**"
        if not counts.known:
            content += " (the server did not report a count)"
        return CommandResult(success=True, content=content)


class RawListCommandHandler(BaseCommandHandler):
    """/rawlist: the cleaned, unparsed status text for debugging patterns."""

    name = "rawlist"

    def __init__(self, config: Config, cooldown: RateLimiter, status: StatusProvider) -> None:
        super().__init__(config, cooldown)
        self.status = status

    async def run(self, interaction: discord.Interaction) -> CommandResult:
        try:
            raw = await self.status.raw_text()
        except Exception as e:
            logger.warning("rawlist_query_failed", error=str(e))
            return CommandResult(
                success=False,
                content=f"Could not read the status source ({self.config.status_source.value}): {str(e) or type(e).__name__}",
            )

        cleaned = clean_minecraft_text(raw).replace("```", "`\u200b``")
        if len(cleaned) > RAW_TEXT_LIMIT:
            cleaned = cleaned[:RAW_TEXT_LIMIT] + "…"
        return CommandResult(success=True, content=f"```\n{cleaned or '(empty response)'}\n```")

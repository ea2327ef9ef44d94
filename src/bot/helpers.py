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

"""Helper utilities for Discord bot operations: presence text and interaction replies."""

import asyncio
from typing import Any, Optional

import discord
import structlog

from status_parser import PlayerCount

logger = structlog.get_logger()

ACTIVITY_NAME_LIMIT = 128


def format_presence_text(counts: PlayerCount, server_name: str) -> str:
    """Presence line, e.g. 'Online: 3/20 | My Server' or 'Online: ? | My Server'."""
    return f"Online: {counts.display()} | {server_name}"[:ACTIVITY_NAME_LIMIT]


class PresenceManager:
    """Keep the bot's presence text in sync with the player count."""

    def __init__(self, bot: Any, interval: float = 60.0) -> None:
        """
        Initialize presence manager.

        Args:
            bot: DiscordBot instance (status_service, config, change_presence)
            interval: Seconds between presence refreshes
        """
        self.bot = bot
        self.interval = interval
        self._presence_task: Optional[asyncio.Task] = None

    async def update(self) -> None:
        """Query the status source once and push the presence text."""
        if not self.bot._connected or getattr(self.bot, "user", None) is None:
            return

        try:
            counts = await self.bot.status_service.get_counts()
            text = format_presence_text(counts, self.bot.config.mc_name)
            activity = discord.Activity(type=discord.ActivityType.watching, name=text)
            await self.bot.change_presence(status=discord.Status.online, activity=activity)
            logger.debug("presence_updated", text=text)
        except Exception as e:
            logger.warning("presence_update_failed", error=str(e))

    async def _update_presence_loop(self) -> None:
        """Refresh presence every interval until the client is closed."""
        logger.info("presence_update_loop_started", interval=self.interval)
        try:
            while not self.bot.is_closed():
                await self.update()
                await asyncio.sleep(self.interval)
        except asyncio.CancelledError:
            logger.info("presence_update_loop_cancelled")
            raise
        except Exception as e:
            logger.error("presence_update_loop_error", error=str(e), exc_info=True)
        finally:
            logger.info("presence_update_loop_stopped")

    async def start(self) -> None:
        """Start the presence update loop if not already running."""
        if self._presence_task is None or self._presence_task.done():
            self._presence_task = asyncio.create_task(self._update_presence_loop())
            logger.info("presence_updater_started")
        else:
            logger.debug("presence_updater_already_running")

    async def stop(self) -> None:
        """Stop the presence update loop."""
        if self._presence_task:
            self._presence_task.cancel()
            try:
                await self._presence_task
            except asyncio.CancelledError:
                pass
            self._presence_task = None
            logger.info("presence_updater_stopped")


async def send_ephemeral_error(interaction: discord.Interaction, message: str) -> None:
    """Reply with an ephemeral error whether or not the interaction was already answered."""
    try:
        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)
    except discord.HTTPException as e:
        logger.warning("error_reply_failed", error=str(e))

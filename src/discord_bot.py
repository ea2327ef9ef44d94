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

"""Discord bot client.

Delegates concerns to specialized modules:
- bot.helpers: presence text loop and ephemeral error replies
- bot.panel_updater: fixed-interval panel refresh
- bot.commands: /panel, /status, /online, /rawlist
"""

import asyncio
from typing import Any, Optional

import discord
from discord import app_commands
import structlog

from bot import PanelUpdater, PresenceManager
from bot.commands import register_status_commands
from config import Config, RegistrationScope, StatusSourceKind

logger = structlog.get_logger()

READY_TIMEOUT_SECONDS = 30.0


class DiscordBot(discord.Client):
    """Discord client owning the command tree and the background loops."""

    def __init__(self, config: Config, *, intents: Optional[discord.Intents] = None):
        """
        Initialize Discord bot.

        Args:
            config: Application config
            intents: Discord intents (auto-configured if None)
        """
        if intents is None:
            intents = discord.Intents.default()
            # Relay payloads are plain messages posted by another bot
            intents.message_content = config.status_source is StatusSourceKind.RELAY

        super().__init__(intents=intents, application_id=config.application_id)

        self.config = config
        self.token = config.discord_token
        self.tree = app_commands.CommandTree(self)
        # discord.Client owns _ready and replaces it in login()
        self._bot_ready = asyncio.Event()
        self._commands_synced = False
        self._connected = False
        self._connection_task: Optional[asyncio.Task] = None

        # Wired by the application once the status source exists
        self.status_service: Optional[Any] = None
        self.reconciler: Optional[Any] = None

        self.presence_manager = PresenceManager(bot=self, interval=config.presence_update_seconds)
        self.panel_updater: Optional[PanelUpdater] = None

        logger.info(
            "discord_bot_initialized",
            server_name=config.mc_name,
            status_source=config.status_source.value,
            registration_scope=config.registration_scope.value,
        )

    def set_services(self, status_service: Any, reconciler: Any) -> None:
        """Attach the status service and panel reconciler used by commands and loops."""
        self.status_service = status_service
        self.reconciler = reconciler
        self.panel_updater = PanelUpdater(
            bot=self,
            reconciler=reconciler,
            interval=self.config.status_update_seconds,
        )
        logger.info("bot_services_attached")

    # ========================================================================
    # Bot Lifecycle
    # ========================================================================

    async def setup_hook(self) -> None:
        """Called when the bot is starting up. Set up commands here."""
        if self.status_service is None or self.reconciler is None:
            raise RuntimeError("set_services() must be called before the bot connects")

        register_status_commands(self)
        logger.info("discord_bot_setup_complete")

    async def sync_commands(self) -> None:
        """Publish the command tree globally or to the configured guild."""
        try:
            if self.config.registration_scope is RegistrationScope.GUILD:
                guild = discord.Object(id=int(self.config.guild_id or 0))
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info(
                    "commands_synced_to_guild",
                    guild_id=guild.id,
                    commands=[cmd.name for cmd in synced],
                )
            else:
                synced = await self.tree.sync()
                logger.info(
                    "commands_synced_globally",
                    count=len(synced),
                    commands=[cmd.name for cmd in synced],
                )
        except Exception as e:
            logger.error("command_sync_failed", error=str(e), exc_info=True)

    # ========================================================================
    # Discord Event Handlers
    # ========================================================================

    async def on_ready(self) -> None:
        """Called when bot is ready (fires on initial connect AND reconnects)."""
        if self.user is None:
            logger.error("discord_bot_ready_but_no_user")
            return

        logger.info(
            "discord_bot_ready",
            bot_name=self.user.name,
            bot_id=self.user.id,
            guilds=len(self.guilds),
        )

        self._connected = True
        self._bot_ready.set()

        if not self._commands_synced:
            self._commands_synced = True
            await self.sync_commands()

        await self._start_loops()

    async def on_resumed(self) -> None:
        """Called when a dropped gateway session is resumed (no ready event)."""
        self._connected = True
        logger.info("discord_bot_resumed")
        await self._start_loops()

    async def _start_loops(self) -> None:
        """Start presence and panel loops; no-op for loops already running."""
        await self.presence_manager.start()
        if self.panel_updater is not None:
            await self.panel_updater.start()

    async def on_disconnect(self) -> None:
        """Called when bot disconnects."""
        self._connected = False
        logger.warning("discord_bot_disconnected")

    async def on_error(self, event: str, *args, **kwargs) -> None:
        """Called when an error occurs."""
        logger.error("discord_bot_error", event=event, exc_info=True)

    # ========================================================================
    # Connection Management
    # ========================================================================

    async def connect_bot(self) -> None:
        """Log in, connect in the background and wait for the ready event."""
        try:
            logger.info("connecting_to_discord")
            await self.login(self.token)
            self._connection_task = asyncio.create_task(self.connect())

            try:
                await asyncio.wait_for(self._bot_ready.wait(), timeout=READY_TIMEOUT_SECONDS)
                logger.info("discord_bot_connected")
            except asyncio.TimeoutError:
                logger.error("discord_bot_connection_timeout")
                if self._connection_task is not None:
                    self._connection_task.cancel()
                    try:
                        await self._connection_task
                    except asyncio.CancelledError:
                        pass
                raise ConnectionError(
                    f"Discord bot connection timed out after {READY_TIMEOUT_SECONDS:.0f} seconds"
                )
        except discord.errors.LoginFailure as e:
            logger.error("discord_login_failed", error=str(e))
            raise ConnectionError(f"Discord login failed: {e}")
        except ConnectionError:
            raise
        except Exception as e:
            logger.error("discord_bot_connection_failed", error=str(e), exc_info=True)
            raise

    async def disconnect_bot(self) -> None:
        """Stop the loops and close the gateway connection."""
        if self._connected or self._connection_task is not None:
            logger.info("disconnecting_from_discord")

            # Set flag first so loops exit on their next check
            self._connected = False

            await self.presence_manager.stop()
            if self.panel_updater is not None:
                await self.panel_updater.stop()

            if self._connection_task is not None:
                if not self._connection_task.done():
                    self._connection_task.cancel()
                    try:
                        await self._connection_task
                    except asyncio.CancelledError:
                        pass
                self._connection_task = None

            if not self.is_closed():
                await self.close()
            logger.info("discord_bot_disconnected")

    @property
    def is_connected(self) -> bool:
        """Check if bot is connected to Discord."""
        return self._connected

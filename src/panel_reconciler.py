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
Panel reconciliation: keep exactly one live panel message per location key.

Per key the lifecycle is Absent -> Active. An Active record whose message was
deleted behaves like Absent on the next pass: a fresh message is created and
the record is overwritten. Records are never torn down.
"""

from __future__ import annotations

from typing import Any, Optional, Union

import discord
import structlog

from config import Config
from embeds import EmbedBuilder, build_link_view
from panel_store import PanelStore
from status_service import StatusService

logger = structlog.get_logger()


class PanelReconciler:
    """Edit-or-create the panel message for a location key and persist where it lives."""

    def __init__(
        self,
        bot: Any,
        config: Config,
        store: PanelStore,
        status: StatusService,
    ) -> None:
        """
        Args:
            bot: Discord client (get_channel / fetch_channel)
            config: Application config used for rendering
            store: PanelRecord persistence
            status: Failure-tolerant status query front
        """
        self.bot = bot
        self.config = config
        self.store = store
        self.status = status

    async def _resolve_channel(self, channel_id: int) -> Optional[Any]:
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(channel_id)
            except (discord.DiscordException, ValueError) as e:
                logger.warning("panel_channel_unavailable", channel_id=channel_id, error=str(e))
                return None

        if not isinstance(channel, discord.abc.Messageable):
            logger.warning("panel_channel_not_text", channel_id=channel_id)
            return None
        return channel

    async def _fetch_message(self, channel: Any, message_id: str) -> Optional[Any]:
        try:
            return await channel.fetch_message(int(message_id))
        except (discord.NotFound, discord.Forbidden) as e:
            logger.info("panel_message_missing", message_id=message_id, error=str(e))
        except (discord.HTTPException, ValueError) as e:
            logger.warning("panel_message_fetch_failed", message_id=message_id, error=str(e))
        return None

    async def reconcile(
        self,
        location_key: Union[str, int],
        channel_id: Optional[Union[str, int]] = None,
        force_new: bool = False,
    ) -> Optional[Any]:
        """
        Refresh (or create) the panel for one location key.

        Args:
            location_key: Channel id or guild id the panel is tracked under
            channel_id: Target channel; defaults to the stored channel, then the key itself
            force_new: Ignore the stored message id and always post a new panel

        Returns:
            The edited or created message, or None when the cycle was skipped
        """
        key = str(location_key)
        record = self.store.get(key)

        target = channel_id if channel_id is not None else (record.channel_id if record else key)
        try:
            target_id = int(target)
        except (TypeError, ValueError):
            logger.warning("panel_channel_id_invalid", location_key=key, channel_id=target)
            return None

        channel = await self._resolve_channel(target_id)
        if channel is None:
            logger.info("panel_reconcile_skipped", location_key=key, channel_id=target_id)
            return None

        counts = await self.status.get_counts()
        embed = EmbedBuilder.panel_embed(self.config, counts)
        view = build_link_view(self.config)

        # A record pointing at another channel is stale for this target
        message_id: Optional[str] = None
        if not force_new and record is not None and record.channel_id == str(target_id):
            message_id = record.message_id

        if message_id:
            message = await self._fetch_message(channel, message_id)
            if message is not None:
                try:
                    await message.edit(embed=embed, view=view)
                except discord.NotFound:
                    logger.info("panel_message_vanished_during_edit", message_id=message_id)
                except discord.HTTPException as e:
                    logger.warning(
                        "panel_edit_failed",
                        location_key=key,
                        message_id=message_id,
                        error=str(e),
                    )
                    return None
                else:
                    self.store.set(key, target_id, message.id)
                    logger.debug("panel_edited", location_key=key, message_id=message.id)
                    return message

        try:
            created = await channel.send(embed=embed, view=view)
        except discord.HTTPException as e:
            logger.warning("panel_send_failed", location_key=key, channel_id=target_id, error=str(e))
            return None

        self.store.set(key, target_id, created.id)
        logger.info(
            "panel_created",
            location_key=key,
            channel_id=target_id,
            message_id=created.id,
            forced=force_new,
        )
        return created

    async def refresh_all(self) -> int:
        """
        Reconcile every stored location key. A failing key never stops the others.

        Returns:
            Number of panels successfully refreshed
        """
        refreshed = 0
        for key in self.store.keys():
            try:
                if await self.reconcile(key) is not None:
                    refreshed += 1
            except Exception as e:
                logger.error("panel_refresh_failed", location_key=key, error=str(e), exc_info=True)
        return refreshed
